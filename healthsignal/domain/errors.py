"""
Failure variants for the narrative collaborator boundary.

These are carried as values inside ``Result.err`` rather than raised across
the orchestrator boundary, so each expected failure is visible at the call site.
"""


class NarrativeError(Exception):
    """Base class for every narrative collaborator failure."""


class NarrativeUnavailableError(NarrativeError):
    """No credential configured, or the circuit breaker is open."""


class InsufficientHistoryError(NarrativeError):
    """Not enough logs for the requested synthesis."""

    def __init__(self, required: int, available: int) -> None:
        super().__init__(f"Need at least {required} logs, got {available}")
        self.required = required
        self.available = available


class NarrativeTimeoutError(NarrativeError):
    """The collaborator did not answer within the configured timeout."""


class MalformedNarrativeError(NarrativeError):
    """The collaborator answered with data that does not match the response schema."""


class NarrativeServiceError(NarrativeError):
    """Transport or provider failure while calling the collaborator."""
