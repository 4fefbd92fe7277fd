"""
MediCamp Backend - Stripe Payment Provider
============================================

What:  PaymentProvider backed by Stripe PaymentIntents.
How:   The synchronous Stripe SDK call runs in the threadpool under an
       asyncio timeout. Every failure (Stripe error, timeout, network) is
       recorded by the circuit breaker and surfaced as PaymentServiceError.
       Calls are not retried: the SDK's own network retries are disabled and
       nothing here loops, so a failed intent leaves no partial state.
"""

import asyncio
import logging
import time
import uuid
from typing import Dict, Optional

import stripe
from starlette.concurrency import run_in_threadpool

from medicamp.config import settings
from medicamp.exceptions import PaymentServiceError
from medicamp.services.circuit_breaker import CircuitBreaker
from medicamp.services.payment_base import PaymentProvider

logger = logging.getLogger(__name__)


class StripePaymentProvider(PaymentProvider):

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = settings.stripe_secret_key if api_key is None else api_key
        self.timeout = settings.payment_timeout_seconds
        stripe.max_network_retries = 0

        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

        logger.info(
            "StripePaymentProvider initialized (configured=%s, timeout=%ds, "
            "circuit_breaker(threshold=%d, recovery=%ds))",
            bool(self.api_key),
            self.timeout,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def create_payment_intent(
        self,
        amount_minor_units: int,
        currency: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> str:
        if not self.configured:
            raise PaymentServiceError(
                message="Payments are not configured on this server",
                context={"setting": "STRIPE_SECRET_KEY"},
            )

        request_id = str(uuid.uuid4())[:8]
        self.circuit_breaker.can_execute()

        start_time = time.time()
        try:
            intent = await asyncio.wait_for(
                run_in_threadpool(
                    stripe.PaymentIntent.create,
                    amount=amount_minor_units,
                    currency=currency,
                    payment_method_types=["card"],
                    metadata=metadata or {},
                    api_key=self.api_key,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            self.circuit_breaker.record_failure()
            logger.error("[%s] Stripe PaymentIntent timed out after %ds", request_id, self.timeout)
            raise PaymentServiceError(
                message="The payment service did not respond in time. Please try again.",
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"request_id": request_id, "timeout": self.timeout},
            )
        except stripe.StripeError as e:
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] Stripe rejected PaymentIntent: %s (%s)",
                request_id, e.user_message or str(e), type(e).__name__,
            )
            raise PaymentServiceError(
                message=e.user_message or "The payment could not be started. Please try again.",
                context={"request_id": request_id, "error_type": type(e).__name__},
            )

        self.circuit_breaker.record_success()
        logger.info(
            "[%s] PaymentIntent %s created (%d %s) in %.0fms",
            request_id, intent.id, amount_minor_units, currency,
            (time.time() - start_time) * 1000,
        )
        return intent.client_secret

    async def health_check(self) -> str:
        if not self.configured:
            return "unconfigured"
        if self.circuit_breaker.state == CircuitBreaker.OPEN:
            return "circuit_open"
        try:
            await asyncio.wait_for(
                run_in_threadpool(stripe.Balance.retrieve, api_key=self.api_key),
                timeout=5,
            )
            return "available"
        except (stripe.StripeError, asyncio.TimeoutError) as e:
            logger.warning("Stripe health check failed: %s", type(e).__name__)
            return "unavailable"


payment_provider = StripePaymentProvider()
