"""
MediCamp Backend - User Schemas
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from medicamp.models.user import Role


class TokenRequest(BaseModel):
    """Body of POST /jwt."""
    email: EmailStr


class UserCreate(BaseModel):
    """Profile sent by the frontend after the identity provider signs the user in."""
    name: Optional[str] = Field(default=None, max_length=255)
    photo: Optional[str] = Field(default=None, max_length=2048)


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=255)
    photo: Optional[str] = Field(default=None, max_length=2048)


class UserResponse(BaseModel):
    email: str
    name: Optional[str] = None
    photo: Optional[str] = None
    role: Role
    created_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, v):
        return Role.parse(v.value if isinstance(v, Role) else v)


class SaveUserResponse(BaseModel):
    """Wraps the saved user; `created` is False when the user already existed."""
    created: bool
    message: str
    user: UserResponse


class RoleResponse(BaseModel):
    email: str
    role: Role
