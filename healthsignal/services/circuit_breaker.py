"""Circuit breaker around the narrative collaborator."""

from datetime import datetime
from typing import Literal

from healthsignal.services.clock import Clock, SystemClock

CircuitState = Literal["closed", "open", "half-open"]


class CircuitBreakerState:
    """
    Simple circuit breaker for narrative service calls.

    While half-open only one trial call is admitted at a time. A trial that
    never reports back (cancelled task) stops blocking others once the
    recovery timeout has passed again.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        clock: Clock | None = None,
    ) -> None:
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.clock = clock or SystemClock()
        self.failure_count = 0
        self.last_failure_time: datetime | None = None
        self.probe_started_at: datetime | None = None
        self.state: CircuitState = "closed"

    def can_execute(self) -> bool:
        """Check if operation can execute based on circuit breaker state."""

        if self.state == "closed":
            return True

        if self.state == "open":
            if self._elapsed_since(self.last_failure_time) >= self.recovery_timeout:
                self.state = "half-open"
                return self._start_probe()
            return False

        # half-open: a single trial call at a time
        if self.probe_started_at is None:
            return self._start_probe()
        if self._elapsed_since(self.probe_started_at) >= self.recovery_timeout:
            return self._start_probe()
        return False

    def record_success(self) -> None:
        """Record successful operation."""
        self.failure_count = 0
        self.probe_started_at = None
        self.state = "closed"

    def record_failure(self) -> None:
        """Record failed operation."""
        self.failure_count += 1
        self.last_failure_time = self.clock.now()
        self.probe_started_at = None

        # A failed probe while half-open reopens immediately
        if self.state == "half-open" or self.failure_count >= self.failure_threshold:
            self.state = "open"

    def _start_probe(self) -> bool:
        self.probe_started_at = self.clock.now()
        return True

    def _elapsed_since(self, moment: datetime | None) -> float:
        if moment is None:
            return 0.0
        return (self.clock.now() - moment).total_seconds()
