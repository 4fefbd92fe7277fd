"""
MediCamp Backend - Circuit Breaker
====================================

Guards calls to the payment provider so that, while it is failing, requests
fail immediately instead of each waiting for a timeout.

State Machine:
    CLOSED     normal operation; failures are counted
               → failure_count >= threshold: OPEN
    OPEN       every call raises CircuitBreakerOpenError
               → recovery_timeout elapsed: HALF_OPEN
    HALF_OPEN  one trial call is let through; concurrent calls are rejected
               until it reports back (or recovery_timeout passes without a
               report, which frees the slot for a new trial)
               → success: CLOSED; failure: OPEN (timer restarts)

Not shared across processes; each uvicorn worker keeps its own state.
"""

import logging
import time
from typing import Optional

from medicamp.exceptions import CircuitBreakerOpenError

logger = logging.getLogger(__name__)


class CircuitBreaker:

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None
        self.trial_started_at: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Returns True when a call may proceed.

        Raises:
            CircuitBreakerOpenError: OPEN and the recovery timeout has not
                elapsed, or HALF_OPEN with the trial call still running.
        """
        now = time.time()
        if self.state == self.OPEN:
            elapsed = now - (self.last_failure_time or 0)
            if elapsed < self.recovery_timeout:
                raise CircuitBreakerOpenError(
                    recovery_time=max(1, int(self.recovery_timeout - elapsed))
                )
            logger.info("Payment circuit breaker HALF_OPEN after %.1fs", elapsed)
            self.state = self.HALF_OPEN
            self.trial_started_at = now
        elif self.state == self.HALF_OPEN:
            running = now - (self.trial_started_at or 0)
            if running < self.recovery_timeout:
                raise CircuitBreakerOpenError(
                    recovery_time=max(1, int(self.recovery_timeout - running))
                )
            logger.warning("Payment circuit breaker trial call never reported; starting another")
            self.trial_started_at = now
        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Payment circuit breaker CLOSED (provider recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None
        self.trial_started_at = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Payment circuit breaker back to OPEN (trial call failed)")
            self.state = self.OPEN
            self.trial_started_at = None
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Payment circuit breaker OPEN after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN
