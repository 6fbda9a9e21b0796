"""
Injectable time and identifier sources.

Every wall-clock read and every generated artifact id in the pipeline goes
through these, so tests can pin timestamps, latency and ids exactly.
"""

import time
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Protocol

IdGenerator = Callable[[], str]


class Clock(Protocol):
    def now(self) -> datetime:
        """Current wall-clock time, timezone-aware."""
        ...

    def monotonic(self) -> float:
        """Monotonic seconds, only meaningful as a difference."""
        ...


class SystemClock:
    """Clock backed by the real system time."""

    def now(self) -> datetime:
        return datetime.now(UTC)

    def monotonic(self) -> float:
        return time.perf_counter()


def uuid_id_generator() -> str:
    return str(uuid.uuid4())
