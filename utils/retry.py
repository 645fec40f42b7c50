from __future__ import annotations

import json
import logging
import re
import time
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_RETRIES = 2
RETRY_DELAY_BASE = 2.0  # seconds
RETRY_INFO_TYPE = "type.googleapis.com/google.rpc.RetryInfo"

_RETRY_IN_RE = re.compile(r"retry in ([\d.]+)s", re.IGNORECASE)


def is_rate_limited(error: BaseException) -> bool:
    """True when the error carries HTTP 429 or an equivalent structured code."""
    if getattr(error, "status_code", None) == 429:
        return True
    body = _error_body(error)
    if isinstance(body, dict):
        inner = body.get("error")
        if isinstance(inner, dict) and inner.get("code") == 429:
            return True
    return False


def _error_body(error: BaseException) -> Any:
    body = getattr(error, "body", None)
    if isinstance(body, (str, bytes)):
        try:
            return json.loads(body)
        except ValueError:
            return None
    return body


def _parse_seconds(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(str(value).strip().rstrip("s"))
    except ValueError:
        return None


def extract_retry_after(error: BaseException) -> Optional[float]:
    """Provider-specified wait in seconds, or None.

    Looked up, in order, from an explicit ``retry_after`` attribute, a
    ``RetryInfo`` entry in the structured error details, and a
    "Please retry in Ns" hint in the message.
    """
    explicit = _parse_seconds(getattr(error, "retry_after", None))
    if explicit is not None:
        return explicit

    details = list(getattr(error, "details", None) or [])
    body = _error_body(error)
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        details.extend(body["error"].get("details") or [])
    for detail in details:
        if isinstance(detail, dict) and detail.get("@type") == RETRY_INFO_TYPE:
            delay = _parse_seconds(detail.get("retryDelay"))
            if delay is not None:
                return delay

    match = _RETRY_IN_RE.search(str(error))
    if match:
        return float(match.group(1))
    return None


def with_retry(
    operation: Callable[[], T],
    max_retries: int = MAX_RETRIES,
    base_delay: float = RETRY_DELAY_BASE,
    sleep: Optional[Callable[[float], None]] = None,
    no_retry: Tuple[Type[BaseException], ...] = (),
) -> T:
    """Run ``operation`` with up to ``max_retries`` extra attempts.

    Rate-limited failures wait for the provider's retry-after when one can be
    extracted; everything else backs off exponentially
    (``base_delay * 2 ** attempt``). Errors listed in ``no_retry`` propagate
    immediately. The last error is re-raised once attempts are exhausted.
    """
    sleep = sleep or time.sleep
    attempt = 0
    while True:
        try:
            return operation()
        except no_retry:
            raise
        except Exception as exc:
            if attempt >= max_retries:
                raise
            delay = None
            if is_rate_limited(exc):
                delay = extract_retry_after(exc)
                logger.warning(
                    "Quota exceeded (attempt %s/%s)", attempt + 1, max_retries + 1
                )
            if delay is None:
                delay = base_delay * (2 ** attempt)
            logger.warning(
                "Attempt %s/%s failed: %s. Retrying in %.1fs",
                attempt + 1,
                max_retries + 1,
                exc,
                delay,
            )
            sleep(delay)
            attempt += 1
