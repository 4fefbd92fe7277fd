"""
MediCamp Backend - User Model
===============================

What:  ORM model for the `users` table.
How:   Keyed by email. Rows are created on first sign-in and mutated only by
       the profile patch; they are never deleted by the API.
"""

import enum
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, String, text
from sqlalchemy.orm import Mapped, mapped_column

from medicamp.database import Base


class Role(str, enum.Enum):
    PARTICIPANT = "participant"
    ORGANIZER = "organizer"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Role":
        """Maps stored role strings to a Role; the legacy 'user' means participant."""
        if value == cls.ORGANIZER.value:
            return cls.ORGANIZER
        return cls.PARTICIPANT


class User(Base):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(320),
        primary_key=True,
        comment="Login identity; unique key for the user",
    )
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    photo: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=Role.PARTICIPANT.value,
        server_default=text("'participant'"),
        comment="participant or organizer",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def role_enum(self) -> Role:
        return Role.parse(self.role)

    def __repr__(self) -> str:
        return f"<User(email='{self.email}', role='{self.role}')>"
