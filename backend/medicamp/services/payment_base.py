"""
MediCamp Backend - Abstract Payment Provider Interface
========================================================

What:  Contract for the hosted payment collaborator.
How:   Concrete providers inherit from PaymentProvider. Callers only see the
       client secret; everything else about the provider stays opaque.
Who:   PaymentService creates intents; the health route probes availability.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional


class PaymentProvider(ABC):
    """
    Contract:
        - create_payment_intent() returns the client secret of a new intent
        - provider errors and timeouts surface as PaymentServiceError
        - calls are never retried by the provider wrapper
    """

    @abstractmethod
    async def create_payment_intent(
        self,
        amount_minor_units: int,
        currency: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> str:
        """
        Creates a payment intent and returns its client secret.

        Args:
            amount_minor_units: Charge in the currency's smallest unit (cents).
            currency: ISO 4217 code, lower case.
            metadata: Opaque key/values stored with the intent.

        Raises:
            PaymentServiceError: provider rejected the call, timed out or is
                not configured.
            CircuitBreakerOpenError: too many recent failures.
        """
        ...

    @abstractmethod
    async def health_check(self) -> str:
        """Returns 'available', 'unavailable', 'unconfigured' or 'circuit_open'."""
        ...
