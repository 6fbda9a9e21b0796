"""Builders and test doubles for the intelligence pipeline tests."""

from __future__ import annotations

import asyncio
import itertools
from datetime import UTC, datetime, timedelta
from typing import Any

from healthsignal.domain.models import AIMemoryNode, DateRange, HealthLog, InsightType
from healthsignal.services.narrative import InsightDraft, NarrativeContext
from healthsignal.services.result import Result

BASE_DATE = datetime(2026, 3, 1, 8, 0, tzinfo=UTC)
FIXED_NOW = datetime(2026, 3, 20, 9, 30, tzinfo=UTC)


def make_log(
    index: int,
    *,
    sleep: int = 7,
    stress: int = 3,
    energy: int = 7,
    mood: int = 7,
    user_id: str = "user-1",
) -> HealthLog:
    return HealthLog(
        id=f"log-{index}",
        user_id=user_id,
        date=BASE_DATE + timedelta(days=index),
        mood=mood,
        energy=energy,
        sleep_quality=sleep,
        stress=stress,
        notes="",
    )


def make_history(count: int, **overrides: int) -> list[HealthLog]:
    return [make_log(i, **overrides) for i in range(count)]


class FakeClock:
    """Clock pinned to FIXED_NOW whose monotonic reading advances by ``step`` per read."""

    def __init__(self, step: float = 0.25, now: datetime = FIXED_NOW) -> None:
        self.step = step
        self._now = now
        self._ticks = itertools.count()

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now = self._now + timedelta(seconds=seconds)

    def monotonic(self) -> float:
        return next(self._ticks) * self.step


class SequentialIds:
    def __init__(self, prefix: str = "artifact") -> None:
        self.prefix = prefix
        self._counter = itertools.count(1)

    def __call__(self) -> str:
        return f"{self.prefix}-{next(self._counter)}"


class FakeNarrative:
    """Test double that implements the NarrativeCollaborator protocol."""

    model_name = "fake-model"

    def __init__(
        self,
        response: Any = None,
        *,
        error: BaseException | None = None,
        delay_seconds: float = 0.0,
    ) -> None:
        self.response = response
        self.error = error
        self.delay_seconds = delay_seconds
        self.call_count = 0
        self.last_context: NarrativeContext | None = None
        self.last_logs: list[HealthLog] | None = None

    async def generate_insight(self, logs, memory_nodes, context):  # type: ignore[no-untyped-def]
        self.call_count += 1
        self.last_context = context
        self.last_logs = list(logs)

        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

        if self.error is not None:
            raise self.error

        return self.response


def make_draft(**overrides: Any) -> InsightDraft:
    fields: dict[str, Any] = {
        "title": "Sleep momentum is building",
        "description": "Based on your 14-day sleep trend, recovery is improving steadily.",
        "type": InsightType.POSITIVE,
        "confidence_score": 82,
        "reasoning": ["Sleep quality rose three days in a row."],
        "prediction": "Energy likely stays high tomorrow.",
    }
    fields.update(overrides)
    return InsightDraft(**fields)


def ok_draft(**overrides: Any) -> Result:
    return Result.ok(make_draft(**overrides))


def make_memory_node(lineage: list[str], user_id: str = "user-1") -> AIMemoryNode:
    return AIMemoryNode(
        id=f"memory-{len(lineage)}",
        user_id=user_id,
        date_range=DateRange(start="2026-03-01", end="2026-03-07"),
        summary="A steady week with good sleep.",
        key_patterns=["consistent bedtime"],
        emotional_tone="calm",
        lineage_ids=lineage,
    )
