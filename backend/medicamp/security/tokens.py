"""
MediCamp Backend - Session Tokens
===================================

What:  Issues and verifies the signed session token stored in the `token`
       cookie.
How:   PyJWT, HMAC-signed with ACCESS_TOKEN_SECRET. The payload carries only
       the email; the role is looked up from the users table per request so
       a role change takes effect without re-issuing tokens.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from starlette.responses import Response

from medicamp.config import settings
from medicamp.exceptions import MediCampError, UnauthenticatedError

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _secret() -> str:
    if not settings.access_token_secret:
        raise MediCampError(
            message="Session tokens are not configured on this server",
            context={"setting": "ACCESS_TOKEN_SECRET"},
        )
    return settings.access_token_secret


def issue_token(email: str, now: Optional[datetime] = None) -> str:
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "email": normalize_email(email),
        "iat": issued_at,
        "exp": issued_at + timedelta(days=settings.access_token_ttl_days),
    }
    return jwt.encode(payload, _secret(), algorithm=settings.access_token_algorithm)


def decode_token(token: str) -> str:
    """
    Returns the email the token was issued for.

    Raises:
        UnauthenticatedError: signature invalid, token expired or malformed.
    """
    try:
        payload = jwt.decode(
            token,
            _secret(),
            algorithms=[settings.access_token_algorithm],
            options={"require": ["exp", "email"]},
        )
    except jwt.ExpiredSignatureError:
        raise UnauthenticatedError(message="session expired")
    except jwt.PyJWTError as e:
        logger.info("Rejected session token: %s", type(e).__name__)
        raise UnauthenticatedError()

    email = payload.get("email")
    if not isinstance(email, str) or not email:
        raise UnauthenticatedError()
    return normalize_email(email)


def _cookie_flags() -> dict:
    # Cross-site frontend in production needs SameSite=None, which browsers
    # only accept together with Secure.
    if settings.is_production:
        return {"secure": True, "samesite": "none"}
    return {"secure": False, "samesite": "strict"}


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.access_token_cookie,
        value=token,
        httponly=True,
        max_age=settings.access_token_ttl_days * 24 * 3600,
        **_cookie_flags(),
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.access_token_cookie,
        httponly=True,
        **_cookie_flags(),
    )
