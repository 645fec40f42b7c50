"""
DailyWord - custom exceptions
"""
from __future__ import annotations

from typing import Any, List, Optional


class DailyWordError(Exception):
    """Base exception for DailyWord"""

    def __init__(self, message: str, code: str = "DAILYWORD_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class ConfigurationError(DailyWordError):
    """A required key or credential is missing"""

    def __init__(self, message: str):
        super().__init__(message, code="CONFIGURATION_ERROR")


class UpstreamError(DailyWordError):
    """Search or devotional-content provider failed (non-2xx or transport)"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, code="UPSTREAM_ERROR")
        self.status_code = status_code


class AIError(DailyWordError):
    """AI model provider failure"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Any = None,
        code: str = "AI_ERROR",
    ):
        super().__init__(message, code=code)
        self.status_code = status_code
        self.body = body


class AIRateLimitError(AIError):
    """Provider signalled quota exhaustion (HTTP 429 or equivalent)"""

    def __init__(
        self,
        message: str,
        retry_after: Optional[float] = None,
        details: Optional[List[dict]] = None,
        body: Any = None,
    ):
        super().__init__(message, status_code=429, body=body, code="AI_RATE_LIMITED")
        self.retry_after = retry_after
        self.details = details or []


class AIOutputError(AIError):
    """Model output did not match the requested schema"""

    def __init__(self, message: str, text: Optional[str] = None, value: Any = None):
        super().__init__(message, code="AI_OUTPUT_INVALID")
        self.text = text
        self.value = value


class NotAuthenticatedError(DailyWordError):
    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, code="AUTH_ERROR")
