"""
MediCamp Backend - Payment Schemas
"""

import uuid

from pydantic import BaseModel, Field


class PaymentIntentRequest(BaseModel):
    camp_id: uuid.UUID


class PaymentIntentResponse(BaseModel):
    client_secret: str = Field(description="Secret the browser passes to the payment SDK")
    amount: int = Field(description="Charge amount in minor currency units")
    currency: str
