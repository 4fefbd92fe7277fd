"""
MediCamp Backend - Payment Service
====================================

What:  Starts the payment for a participant's own registration.
How:   The amount is derived server-side from the camp fee (never taken from
       the client) and converted to minor units. The registration itself is
       NOT touched here: it only advances when the participant calls
       confirm_payment after the provider reports success, so any provider
       failure leaves the ledger exactly as it was.
"""

import logging
import uuid
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from medicamp.config import settings
from medicamp.exceptions import DatabaseError, NotFoundError, ValidationError
from medicamp.models.camp import Camp
from medicamp.models.registration import PaymentStatus
from medicamp.schemas.payment import PaymentIntentResponse
from medicamp.security.policy import Caller
from medicamp.services.payment_base import PaymentProvider
from medicamp.services.registration_ledger import registration_ledger

logger = logging.getLogger(__name__)


def to_minor_units(fees: Decimal) -> int:
    return int((Decimal(fees) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentService:

    def __init__(self, provider: Optional[PaymentProvider] = None):
        self._provider = provider

    @property
    def provider(self) -> PaymentProvider:
        if self._provider is None:
            from medicamp.services.stripe_service import payment_provider
            self._provider = payment_provider
        return self._provider

    async def create_payment_intent(
        self, db: AsyncSession, camp_id: uuid.UUID, caller: Caller
    ) -> PaymentIntentResponse:
        """
        Raises:
            NotRegisteredError: caller has no registration for the camp.
            ValidationError: registration already paid, or the camp is free.
            PaymentServiceError / CircuitBreakerOpenError: provider failure.
        """
        registration = await registration_ledger.get_own_registration(db, camp_id, caller)
        if registration.payment_status == PaymentStatus.PAID:
            raise ValidationError(
                message="This registration has already been paid",
                field="camp_id",
            )

        try:
            camp = await db.get(Camp, camp_id)
        except SQLAlchemyError as e:
            raise DatabaseError(context={"camp_id": str(camp_id), "error_type": type(e).__name__})
        if camp is None:
            raise NotFoundError(resource="camp", resource_id=str(camp_id))

        amount = to_minor_units(camp.fees)
        if amount <= 0:
            raise ValidationError(message="This camp has no fee to pay", field="camp_id")

        client_secret = await self.provider.create_payment_intent(
            amount_minor_units=amount,
            currency=settings.payment_currency,
            metadata={
                "camp_id": str(camp_id),
                "registration_id": str(registration.id),
                "participant_email": registration.participant_email,
            },
        )
        logger.info("Payment intent started for registration %s", registration.id)
        return PaymentIntentResponse(
            client_secret=client_secret,
            amount=amount,
            currency=settings.payment_currency,
        )


payment_service = PaymentService()
