from __future__ import annotations

import hashlib
import hmac
import time
from typing import Optional

from fastapi import HTTPException, Request, status

from config import load_config

SESSION_COOKIE_NAME = "session"
DEFAULT_SESSION_DAYS = 30


def _get_auth_config() -> dict:
    config = load_config()
    return config.get("auth", {})


def get_session_days() -> int:
    auth_cfg = _get_auth_config()
    days = auth_cfg.get("session_days", DEFAULT_SESSION_DAYS)
    try:
        return int(days)
    except (TypeError, ValueError):
        return DEFAULT_SESSION_DAYS


def _session_secret() -> Optional[bytes]:
    secret = _get_auth_config().get("session_secret")
    if not secret:
        return None
    return hashlib.sha256(secret.encode("utf-8")).digest()


def _sign(secret: bytes, payload: str) -> str:
    return hmac.new(secret, payload.encode("utf-8"), hashlib.sha256).hexdigest()


def create_session_token(user_id: str, duration_days: Optional[int] = None) -> str:
    """Signed ``user_id:expires:signature`` token for ``user_id``."""
    secret = _session_secret()
    if secret is None:
        raise ValueError("Session secret not configured")
    if not user_id or ":" in user_id:
        raise ValueError("Invalid user id")
    days = duration_days if duration_days is not None else get_session_days()
    expires_at = int(time.time()) + int(days) * 86400
    payload = f"{user_id}:{expires_at}"
    return f"{payload}:{_sign(secret, payload)}"


def verify_session_token(token: Optional[str]) -> Optional[str]:
    """User id carried by a valid, unexpired token, else None."""
    secret = _session_secret()
    if not token or secret is None:
        return None
    try:
        user_id, expires_str, signature = token.split(":", 2)
    except ValueError:
        return None
    expected = _sign(secret, f"{user_id}:{expires_str}")
    if not hmac.compare_digest(signature, expected):
        return None
    try:
        expires_at = int(expires_str)
    except ValueError:
        return None
    if expires_at < int(time.time()):
        return None
    return user_id or None


def _token_from_request(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return request.cookies.get(SESSION_COOKIE_NAME)


def get_current_user_id(request: Request) -> Optional[str]:
    return verify_session_token(_token_from_request(request))


def require_user(request: Request) -> str:
    user_id = get_current_user_id(request)
    if user_id:
        return user_id
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
