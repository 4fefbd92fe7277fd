"""
MediCamp Backend - Caller Dependencies
========================================

FastAPI dependencies that turn the session cookie into a Caller. Routes that
need a signed-in user depend on get_current_caller; routes gated on a fixed
capability use require(...).
"""

import logging
from typing import Callable, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from medicamp.config import settings
from medicamp.database import get_db_session
from medicamp.models.user import Role, User
from medicamp.security.policy import Caller, Capability, authorize
from medicamp.security.tokens import decode_token

logger = logging.getLogger(__name__)


async def get_optional_caller(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> Optional[Caller]:
    """Resolves the caller from the cookie; None when no cookie was sent."""
    token = request.cookies.get(settings.access_token_cookie)
    if not token:
        return None

    email = decode_token(token)
    user = await db.get(User, email)
    role = user.role_enum if user is not None else Role.PARTICIPANT
    return Caller(email=email, role=role)


async def get_current_caller(
    caller: Optional[Caller] = Depends(get_optional_caller),
) -> Caller:
    return authorize(caller, Capability.AUTHENTICATED)


def require(*capabilities: Capability) -> Callable:
    """
    Dependency factory for capabilities that need no owner, e.g.
    `Depends(require(Capability.ORGANIZER))`.
    """
    if Capability.SELF_OWNER in capabilities:
        raise ValueError("SELF_OWNER depends on the record; call authorize() in the service")

    async def dependency(caller: Optional[Caller] = Depends(get_optional_caller)) -> Caller:
        return authorize(caller, *capabilities)

    return dependency
