"""
MediCamp Backend - Payment Tests (Mocked Stripe)
==================================================

What:  Tests for PaymentService, StripePaymentProvider and the circuit breaker.
How:   The Stripe SDK is patched; no network calls are made.

What we test:
    ✅ Amount is derived from the camp fee in minor units
    ✅ Only a registered, unpaid participant can start a payment
    ✅ Provider failures surface as PaymentServiceError and leave the
       registration untouched (fail closed)
    ✅ Stripe is called once per attempt (no automatic retries)
    ✅ Circuit breaker opens, rejects, half-opens with a single trial, closes
"""

import time
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import stripe

from medicamp.exceptions import (
    CircuitBreakerOpenError,
    NotRegisteredError,
    PaymentServiceError,
    ValidationError,
)
from medicamp.models.registration import ConfirmationStatus, PaymentStatus
from medicamp.schemas.registration import RegistrationCreate
from medicamp.services.circuit_breaker import CircuitBreaker
from medicamp.services.payment_base import PaymentProvider
from medicamp.services.payment_service import PaymentService, to_minor_units
from medicamp.services.registration_ledger import registration_ledger
from medicamp.services.stripe_service import StripePaymentProvider

DETAILS = RegistrationCreate(
    participant_name="Alice Smith",
    age=34,
    phone_number="+1-555-0100",
    gender="female",
    emergency_contact="Carol Smith +1-555-0199",
)


async def _register(session_factory, camp_id, caller):
    async with session_factory() as session:
        await registration_ledger.register(session, camp_id, caller.email, DETAILS, caller)
        await session.commit()


def _fake_provider(**kwargs) -> MagicMock:
    provider = MagicMock(spec=PaymentProvider)
    provider.create_payment_intent = AsyncMock(**kwargs)
    return provider


class TestMinorUnits:

    @pytest.mark.parametrize(
        "fees, expected",
        [
            (Decimal("25.50"), 2550),
            (Decimal("50"), 5000),
            (Decimal("0.005"), 1),
            (Decimal("19.99"), 1999),
        ],
    )
    def test_conversion(self, fees, expected):
        assert to_minor_units(fees) == expected


class TestCreatePaymentIntent:
    """Tests for PaymentService.create_payment_intent()."""

    @pytest.mark.asyncio
    async def test_intent_for_registered_participant(self, session_factory, seeded, participant):
        await _register(session_factory, seeded["camp_id"], participant)
        provider = _fake_provider(return_value="pi_1_secret_abc")
        service = PaymentService(provider=provider)

        async with session_factory() as session:
            intent = await service.create_payment_intent(session, seeded["camp_id"], participant)

        assert intent.client_secret == "pi_1_secret_abc"
        assert intent.amount == 2550
        assert intent.currency == "usd"
        provider.create_payment_intent.assert_awaited_once()
        kwargs = provider.create_payment_intent.await_args.kwargs
        assert kwargs["amount_minor_units"] == 2550
        assert kwargs["metadata"]["participant_email"] == participant.email

    @pytest.mark.asyncio
    async def test_requires_registration(self, session_factory, seeded, participant):
        provider = _fake_provider(return_value="unused")
        service = PaymentService(provider=provider)

        async with session_factory() as session:
            with pytest.raises(NotRegisteredError):
                await service.create_payment_intent(session, seeded["camp_id"], participant)
        provider.create_payment_intent.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_already_paid_is_rejected(self, session_factory, seeded, participant):
        await _register(session_factory, seeded["camp_id"], participant)
        async with session_factory() as session:
            await registration_ledger.confirm_payment(session, seeded["camp_id"], participant)
            await session.commit()
        service = PaymentService(provider=_fake_provider(return_value="unused"))

        async with session_factory() as session:
            with pytest.raises(ValidationError):
                await service.create_payment_intent(session, seeded["camp_id"], participant)

    @pytest.mark.asyncio
    async def test_free_camp_has_nothing_to_pay(self, session_factory, seeded, participant):
        await _register(session_factory, seeded["free_camp_id"], participant)
        service = PaymentService(provider=_fake_provider(return_value="unused"))

        async with session_factory() as session:
            with pytest.raises(ValidationError):
                await service.create_payment_intent(session, seeded["free_camp_id"], participant)

    @pytest.mark.asyncio
    async def test_provider_failure_leaves_registration_untouched(
        self, session_factory, seeded, participant
    ):
        await _register(session_factory, seeded["camp_id"], participant)
        service = PaymentService(
            provider=_fake_provider(side_effect=PaymentServiceError(message="card network down"))
        )

        async with session_factory() as session:
            with pytest.raises(PaymentServiceError):
                await service.create_payment_intent(session, seeded["camp_id"], participant)

        async with session_factory() as session:
            registration = await registration_ledger.get_own_registration(
                session, seeded["camp_id"], participant
            )
        assert registration.payment_status == PaymentStatus.PAY
        assert registration.confirmation_status == ConfirmationStatus.PENDING


class TestStripePaymentProvider:
    """Tests for StripePaymentProvider with the SDK patched."""

    @pytest.mark.asyncio
    async def test_success_returns_client_secret(self):
        provider = StripePaymentProvider(api_key="sk_test_x")
        intent = SimpleNamespace(id="pi_1", client_secret="pi_1_secret")

        with patch("medicamp.services.stripe_service.stripe.PaymentIntent.create", return_value=intent) as create:
            secret = await provider.create_payment_intent(2550, "usd", {"camp_id": "c"})

        assert secret == "pi_1_secret"
        create.assert_called_once()
        assert create.call_args.kwargs["amount"] == 2550
        assert create.call_args.kwargs["api_key"] == "sk_test_x"
        assert provider.circuit_breaker.state == CircuitBreaker.CLOSED

    @pytest.mark.asyncio
    async def test_stripe_error_is_not_retried(self):
        provider = StripePaymentProvider(api_key="sk_test_x")
        error = stripe.APIConnectionError("connection reset")

        with patch("medicamp.services.stripe_service.stripe.PaymentIntent.create", side_effect=error) as create:
            with pytest.raises(PaymentServiceError):
                await provider.create_payment_intent(2550, "usd")

        assert create.call_count == 1
        assert provider.circuit_breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_unconfigured_provider_fails_closed(self):
        provider = StripePaymentProvider(api_key="")

        with patch("medicamp.services.stripe_service.stripe.PaymentIntent.create") as create:
            with pytest.raises(PaymentServiceError):
                await provider.create_payment_intent(2550, "usd")

        create.assert_not_called()
        assert await provider.health_check() == "unconfigured"

    @pytest.mark.asyncio
    async def test_circuit_opens_after_repeated_failures(self):
        provider = StripePaymentProvider(api_key="sk_test_x")
        provider.circuit_breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=60)
        error = stripe.APIConnectionError("connection reset")

        with patch("medicamp.services.stripe_service.stripe.PaymentIntent.create", side_effect=error) as create:
            for _ in range(2):
                with pytest.raises(PaymentServiceError):
                    await provider.create_payment_intent(2550, "usd")
            with pytest.raises(CircuitBreakerOpenError):
                await provider.create_payment_intent(2550, "usd")

        assert create.call_count == 2
        assert await provider.health_check() == "circuit_open"


class TestCircuitBreaker:
    """Tests for the CircuitBreaker state machine."""

    def test_initial_state_is_closed(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        assert cb.state == CircuitBreaker.CLOSED
        assert cb.failure_count == 0

    def test_stays_closed_under_threshold(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        for _ in range(4):
            cb.record_failure()
        assert cb.state == CircuitBreaker.CLOSED
        assert cb.can_execute() is True

    def test_open_circuit_rejects_calls(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=60)
        cb.record_failure()

        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            cb.can_execute()
        assert 1 <= exc_info.value.recovery_time <= 60

    def test_half_open_after_recovery_timeout(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=60)
        cb.record_failure()
        cb.last_failure_time = time.time() - 61

        assert cb.can_execute() is True
        assert cb.state == CircuitBreaker.HALF_OPEN

    def test_half_open_admits_a_single_trial(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=60)
        cb.record_failure()
        cb.last_failure_time = time.time() - 61

        assert cb.can_execute() is True
        with pytest.raises(CircuitBreakerOpenError):
            cb.can_execute()
        assert cb.state == CircuitBreaker.HALF_OPEN

    def test_unreported_trial_frees_slot_after_timeout(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=60)
        cb.record_failure()
        cb.last_failure_time = time.time() - 61
        cb.can_execute()
        cb.trial_started_at = time.time() - 61

        assert cb.can_execute() is True
        with pytest.raises(CircuitBreakerOpenError):
            cb.can_execute()

    def test_half_open_success_closes(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=60)
        cb.record_failure()
        cb.last_failure_time = time.time() - 61
        cb.can_execute()

        cb.record_success()
        assert cb.state == CircuitBreaker.CLOSED
        assert cb.failure_count == 0

    def test_half_open_failure_reopens(self):
        cb = CircuitBreaker(failure_threshold=3, recovery_timeout=60)
        for _ in range(3):
            cb.record_failure()
        cb.last_failure_time = time.time() - 61
        cb.can_execute()

        cb.record_failure()
        assert cb.state == CircuitBreaker.OPEN
