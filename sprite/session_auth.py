"""Signed session tokens and the FastAPI dependencies that read them.

A token has the form ``<user_id>.<issued_at>.<signature>`` where the
signature is the hex HMAC-SHA256 of ``<user_id>.<issued_at>`` keyed with
``SESSION_SECRET``. Tokens are issued by the auth provider; this module only
verifies them.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import time

from fastapi import Cookie, Header, HTTPException

from . import config
from .onboarding.errors import Unauthenticated

logger = logging.getLogger(__name__)

SESSION_COOKIE = "sprite_session"

# Tolerated clock skew for tokens issued slightly in the future
CLOCK_SKEW = 60

__all__ = [
    "SESSION_COOKIE",
    "require_user_id",
    "sign_session_token",
    "verify_session_token",
]


def _secret() -> str:
    secret = config.get_settings().session_secret
    if not secret:
        logger.error("session secret not configured")
        raise HTTPException(status_code=503, detail="session secret not configured")
    return secret


def _signature(secret: str, payload: str) -> str:
    return hmac.new(secret.encode(), payload.encode(), hashlib.sha256).hexdigest()


def sign_session_token(user_id: int, issued_at: int | None = None) -> str:
    """Return a session token for ``user_id``."""

    if issued_at is None:
        issued_at = int(time.time())
    payload = f"{user_id}.{issued_at}"
    return f"{payload}.{_signature(_secret(), payload)}"


def verify_session_token(token: str) -> int:
    """Validate ``token`` and return the user id it was issued for.

    Raises
    ------
    Unauthenticated
        If the token is malformed, has a bad signature or is expired.
    """
    now = time.time()
    parts = token.split(".")
    if len(parts) != 3:
        raise Unauthenticated("invalid session token")
    user_raw, issued_raw, signature = parts
    try:
        user_id = int(user_raw)
        issued_at = int(issued_raw)
    except ValueError as exc:
        raise Unauthenticated("invalid session token") from exc

    expected = _signature(_secret(), f"{user_raw}.{issued_raw}")
    if not hmac.compare_digest(expected, signature):
        raise Unauthenticated("invalid session signature")

    if issued_at > now + CLOCK_SKEW:
        raise Unauthenticated("invalid session token")
    if now - issued_at > config.get_settings().session_max_age:
        raise Unauthenticated("session expired")
    return user_id


def _extract_token(authorization: str | None, cookie: str | None) -> str | None:
    if isinstance(authorization, str) and authorization.startswith("Bearer "):
        token = authorization[7:].strip()
        if token:
            return token
    return cookie or None


def require_user_id(
    authorization: str | None = Header(None),
    session_cookie: str | None = Cookie(None, alias=SESSION_COOKIE),
) -> int:
    """Dependency returning the id of the authenticated user.

    Accepts the token from ``Authorization: Bearer <token>`` or the
    ``sprite_session`` cookie.
    """
    token = _extract_token(authorization, session_cookie)
    if not token:
        raise Unauthenticated()
    return verify_session_token(token)
