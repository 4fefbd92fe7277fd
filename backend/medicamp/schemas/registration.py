"""
MediCamp Backend - Registration Schemas
=========================================

Registration details supplied by the participant, the registration record
itself, and the registration-joined-with-camp rows returned by listings.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from medicamp.models.registration import ConfirmationStatus, PaymentStatus
from medicamp.schemas.camp import CampResponse


class RegistrationCreate(BaseModel):
    participant_name: str = Field(min_length=1, max_length=255)
    age: int = Field(ge=0, le=150)
    phone_number: str = Field(min_length=3, max_length=40)
    gender: str = Field(min_length=1, max_length=20)
    emergency_contact: str = Field(min_length=1, max_length=255)


class PaymentConfirmation(BaseModel):
    transaction_id: Optional[str] = Field(default=None, max_length=255)


class ConfirmationUpdate(BaseModel):
    """
    Organizer request to change a registration's confirmation status.

    `status` is a free string so unsupported targets reach the service and
    are rejected there with an InvalidTransition error.
    """
    participant_email: str
    status: str = Field(default=ConfirmationStatus.CONFIRMED.value)


class RegistrationResponse(BaseModel):
    id: uuid.UUID
    camp_id: uuid.UUID
    participant_email: str
    participant_name: str
    age: int
    phone_number: str
    gender: str
    emergency_contact: str
    confirmation_status: ConfirmationStatus
    payment_status: PaymentStatus
    transaction_id: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class RegistrationWithCamp(RegistrationResponse):
    camp: CampResponse


class PaidRegistrationPage(BaseModel):
    items: List[RegistrationWithCamp]
    total_count: int
    offset: int
    limit: int
    has_more: bool


class RegistrationRequest(RegistrationCreate):
    """Body of the register endpoint; names the participant being registered."""
    participant_email: EmailStr
