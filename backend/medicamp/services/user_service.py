"""
MediCamp Backend - User Service
=================================

What:  Sign-in persistence and profile management.
How:   save_user is an idempotent insert keyed by email: the first sign-in
       creates the row, every later one returns it unchanged. Concurrent
       first sign-ins race on the primary key and the loser re-reads the row.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from medicamp.config import settings
from medicamp.database import violates_unique
from medicamp.exceptions import DatabaseError, MediCampError, NotFoundError
from medicamp.models.user import Role, User
from medicamp.schemas.user import (
    RoleResponse,
    SaveUserResponse,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from medicamp.security.policy import Caller, Capability, authorize
from medicamp.security.tokens import normalize_email

logger = logging.getLogger(__name__)


class UserService:

    async def _load(self, db: AsyncSession, email: str) -> User:
        result = await db.execute(
            select(User).where(User.email == email).execution_options(populate_existing=True)
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError(resource="user", resource_id=email)
        return user

    async def save_user(
        self, db: AsyncSession, email: str, profile: UserCreate, caller: Caller
    ) -> SaveUserResponse:
        authorize(caller, Capability.SELF_OWNER, owner_email=email)
        email = normalize_email(email)

        try:
            existing = await db.get(User, email)
            if existing is not None:
                return SaveUserResponse(
                    created=False,
                    message="user already exist",
                    user=UserResponse.model_validate(existing),
                )

            role = Role.ORGANIZER if email in settings.organizer_emails_set else Role.PARTICIPANT
            user = User(email=email, name=profile.name, photo=profile.photo, role=role.value)
            try:
                async with db.begin_nested():
                    db.add(user)
            except IntegrityError as e:
                if not violates_unique(e, "users_pkey", "users", "email"):
                    raise
                return SaveUserResponse(
                    created=False,
                    message="user already exist",
                    user=UserResponse.model_validate(await self._load(db, email)),
                )

            logger.info("User %s created with role %s", email, role.value)
            return SaveUserResponse(
                created=True,
                message="user created",
                user=UserResponse.model_validate(user),
            )
        except MediCampError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error saving user %s: %s", email, str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})

    async def get_user(self, db: AsyncSession, email: str, caller: Caller) -> UserResponse:
        authorize(caller, Capability.SELF_OWNER, Capability.ORGANIZER, owner_email=email)
        try:
            return UserResponse.model_validate(await self._load(db, normalize_email(email)))
        except SQLAlchemyError as e:
            raise DatabaseError(context={"error_type": type(e).__name__})

    async def update_profile(
        self, db: AsyncSession, email: str, patch: UserUpdate, caller: Caller
    ) -> UserResponse:
        """Updates name/photo of the caller's own profile. Email is immutable."""
        authorize(caller, Capability.SELF_OWNER, owner_email=email)
        try:
            user = await self._load(db, normalize_email(email))
            for field, value in patch.model_dump(exclude_unset=True).items():
                setattr(user, field, value)
            await db.flush()
            return UserResponse.model_validate(user)
        except MediCampError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error updating user %s: %s", email, str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})

    async def get_role(self, db: AsyncSession, email: str, caller: Caller) -> RoleResponse:
        authorize(caller, Capability.SELF_OWNER, owner_email=email)
        try:
            user = await self._load(db, normalize_email(email))
        except SQLAlchemyError as e:
            raise DatabaseError(context={"error_type": type(e).__name__})
        return RoleResponse(email=user.email, role=user.role_enum)


user_service = UserService()
