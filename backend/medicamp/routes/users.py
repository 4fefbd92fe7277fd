"""
MediCamp Backend - User Routes
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from medicamp.database import get_db_session
from medicamp.schemas.common import ErrorResponse
from medicamp.schemas.user import (
    RoleResponse,
    SaveUserResponse,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from medicamp.security.dependencies import get_current_caller
from medicamp.security.policy import Caller
from medicamp.services.user_service import user_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.post(
    "/{email}",
    response_model=SaveUserResponse,
    responses={201: {"model": SaveUserResponse}, 403: {"model": ErrorResponse}},
    summary="Save the signed-in user (idempotent)",
)
async def save_user(
    email: str,
    response: Response,
    profile: UserCreate = UserCreate(),
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db_session),
) -> SaveUserResponse:
    result = await user_service.save_user(db, email, profile, caller)
    response.status_code = 201 if result.created else 200
    return result


@router.get("/{email}", response_model=UserResponse, summary="Get a user profile")
async def get_user(
    email: str,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return await user_service.get_user(db, email, caller)


@router.patch("/{email}", response_model=UserResponse, summary="Update own profile")
async def update_user(
    email: str,
    patch: UserUpdate,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return await user_service.update_profile(db, email, patch, caller)


@router.get("/{email}/role", response_model=RoleResponse, summary="Get own role")
async def get_role(
    email: str,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db_session),
) -> RoleResponse:
    return await user_service.get_role(db, email, caller)
