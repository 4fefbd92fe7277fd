"""
MediCamp Backend - Registration Model
=======================================

What:  ORM model for the `registrations` table: one participant's signup for
       one camp, carrying payment and confirmation state.

State machine:
    (Pending, Pay) --confirm payment--> (Processing, Paid)
    (Processing, Paid) --organizer confirms--> (Confirmed, Paid)
    Deletion is possible from every state and is terminal for the row.

The compound unique constraint on (camp_id, participant_email) is the only
guard against double registration; concurrent attempts race on the INSERT
and every loser receives an IntegrityError.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from medicamp.database import Base


class ConfirmationStatus(str, enum.Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    CONFIRMED = "Confirmed"


class PaymentStatus(str, enum.Enum):
    PAY = "Pay"
    PAID = "Paid"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Registration(Base):
    __tablename__ = "registrations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    camp_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("camps.id", ondelete="CASCADE"),
        nullable=False,
    )
    participant_email: Mapped[str] = mapped_column(
        String(320),
        ForeignKey("users.email"),
        nullable=False,
    )
    participant_name: Mapped[str] = mapped_column(String(255), nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    phone_number: Mapped[str] = mapped_column(String(40), nullable=False)
    gender: Mapped[str] = mapped_column(String(20), nullable=False)
    emergency_contact: Mapped[str] = mapped_column(String(255), nullable=False)
    confirmation_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ConfirmationStatus.PENDING.value,
    )
    payment_status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=PaymentStatus.PAY.value,
    )
    transaction_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Payment provider reference recorded when payment is confirmed",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        UniqueConstraint("camp_id", "participant_email", name="uq_registrations_camp_participant"),
        Index("idx_registrations_participant_email", "participant_email"),
        Index("idx_registrations_payment_created", "payment_status", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Registration(id={self.id}, camp_id={self.camp_id}, "
            f"email='{self.participant_email}', "
            f"state=({self.confirmation_status}, {self.payment_status}))>"
        )
