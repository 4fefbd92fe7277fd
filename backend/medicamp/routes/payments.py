"""
MediCamp Backend - Payment Routes
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from medicamp.database import get_db_session
from medicamp.schemas.common import ErrorResponse
from medicamp.schemas.payment import PaymentIntentRequest, PaymentIntentResponse
from medicamp.security.dependencies import get_current_caller
from medicamp.security.policy import Caller
from medicamp.services.payment_service import payment_service

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post(
    "/intent",
    response_model=PaymentIntentResponse,
    responses={
        404: {"model": ErrorResponse},
        503: {"description": "Payment provider unavailable", "model": ErrorResponse},
    },
    summary="Start paying the fee of an own registration",
)
async def create_payment_intent(
    body: PaymentIntentRequest,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db_session),
) -> PaymentIntentResponse:
    return await payment_service.create_payment_intent(db, body.camp_id, caller)
