"""
MediCamp Backend - Camp Schemas
=================================

Request bodies for organizer camp management and the response shapes used
both standalone and embedded in joined registration listings.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class CampSort(str, Enum):
    NEWEST = "newest"
    MOST_REGISTERED = "most_registered"
    FEES_ASC = "fees_asc"
    FEES_DESC = "fees_desc"
    NAME = "name"


class CountDirection(str, Enum):
    INCREASE = "increase"
    DECREASE = "decrease"


class CampCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    image: Optional[str] = Field(default=None, max_length=2048)
    location: str = Field(min_length=1, max_length=255)
    date: datetime
    fees: float = Field(ge=0, description="Registration fee in major currency units")
    healthcare_professional: str = Field(min_length=1, max_length=255)
    description: str = Field(default="")


class CampUpdate(BaseModel):
    """Partial update; only fields that are present are written."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    image: Optional[str] = Field(default=None, max_length=2048)
    location: Optional[str] = Field(default=None, min_length=1, max_length=255)
    date: Optional[datetime] = None
    fees: Optional[float] = Field(default=None, ge=0)
    healthcare_professional: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None


class CampResponse(BaseModel):
    id: uuid.UUID
    name: str
    image: Optional[str] = None
    location: str
    date: datetime
    fees: float
    healthcare_professional: str
    description: str
    participant_count: int
    created_by: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class CampListResponse(BaseModel):
    camps: List[CampResponse]
    total_count: int
    offset: int
    limit: int
    has_more: bool


class ParticipantCountUpdate(BaseModel):
    direction: CountDirection
