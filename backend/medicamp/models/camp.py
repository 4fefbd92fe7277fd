"""
MediCamp Backend - Camp Model
===============================

What:  ORM model for the `camps` table.
How:   `participant_count` is only ever changed with single UPDATE statements
       of the form `participant_count = participant_count +/- 1`; the CHECK
       constraint keeps it non-negative at the storage level.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from medicamp.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Camp(Base):
    """
    A medical camp published by an organizer.

    Any organizer may edit or delete any camp; `created_by` is recorded for
    display only. Deleting a camp cascades to its registrations.
    """

    __tablename__ = "camps"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    image: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="When the camp takes place",
    )
    fees: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    healthcare_professional: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    participant_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )
    created_by: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        CheckConstraint("participant_count >= 0", name="ck_camps_participant_count_non_negative"),
        CheckConstraint("fees >= 0", name="ck_camps_fees_non_negative"),
        Index("idx_camps_participant_count", "participant_count"),
    )

    def __repr__(self) -> str:
        return f"<Camp(id={self.id}, name='{self.name}', participants={self.participant_count})>"
