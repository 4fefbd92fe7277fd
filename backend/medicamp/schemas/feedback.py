"""
MediCamp Backend - Feedback Schemas
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class FeedbackCreate(BaseModel):
    camp_id: uuid.UUID
    rating: int = Field(ge=1, le=5)
    feedback: str = Field(min_length=1, max_length=5000)


class FeedbackResponse(BaseModel):
    id: uuid.UUID
    camp_id: uuid.UUID
    participant_name: str
    participant_email: str
    participant_image: Optional[str] = None
    rating: int
    feedback: str
    date: datetime

    model_config = {"from_attributes": True}
