"""
MediCamp Backend - Feedback Model
===================================

Participant feedback for a camp. Rows are immutable once written and there
is no uniqueness constraint: a participant may submit several times.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from medicamp.database import Base


class Feedback(Base):
    __tablename__ = "feedback"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    camp_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("camps.id", ondelete="CASCADE"),
        nullable=False,
    )
    participant_name: Mapped[str] = mapped_column(String(255), nullable=False)
    participant_email: Mapped[str] = mapped_column(String(320), nullable=False)
    participant_image: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    feedback: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_feedback_rating_range"),
        Index("idx_feedback_date", "date"),
    )
