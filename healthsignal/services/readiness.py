"""
Deterministic readiness estimation.

The composite score weights the three most recent logs as:
- Sleep quality (50% of the 0-100 range): dominant recovery signal
- Inverted stress (30%): secondary
- Same-day energy (20%): fast-moving tertiary signal

No model is involved, so a readiness score is always available even when
narrative synthesis is not.
"""

import math
from collections.abc import Sequence

import structlog

from healthsignal.domain.models import HealthLog, ReadinessScore, ReadinessState

logger = structlog.get_logger(__name__)

CALIBRATION_WINDOW = 3
CALIBRATION_SCORE = 50
CALIBRATION_REASON = "Calibration phase: baseline not yet established."

PUSH_THRESHOLD = 85
RECOVER_THRESHOLD = 40
STRESS_REST_THRESHOLD = 7

STATE_REASONS: dict[ReadinessState, str] = {
    ReadinessState.PUSH: (
        "Physiological recovery is peak. High intensity training or cognitive work recommended."
    ),
    ReadinessState.RECOVER: (
        "Multiple recovery signals detected. Reduce load and prioritize sleep phases."
    ),
    ReadinessState.REST: "Stress accumulation is outpacing recovery capacity.",
    ReadinessState.MAINTAIN: "Your systems are balanced. Continue with planned activities.",
}


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class ReadinessEstimator:
    """Computes a ReadinessScore from a chronologically ordered log history."""

    def __init__(self) -> None:
        self.logger = logger.bind(component="readiness_estimator")

    def estimate(self, logs: Sequence[HealthLog]) -> ReadinessScore:
        """
        Estimate readiness from logs ordered oldest first.

        Fewer than three logs yields the fixed calibration score; this is a
        cold-start floor, not an error.
        """
        if len(logs) < CALIBRATION_WINDOW:
            self.logger.debug("readiness_calibrating", log_count=len(logs))
            return ReadinessScore(
                score=CALIBRATION_SCORE,
                state=ReadinessState.MAINTAIN,
                reason=CALIBRATION_REASON,
            )

        recent = logs[-CALIBRATION_WINDOW:]
        avg_sleep = sum(log.sleep_quality for log in recent) / CALIBRATION_WINDOW
        avg_stress = sum(log.stress for log in recent) / CALIBRATION_WINDOW
        today_energy = recent[-1].energy

        score = _round_half_up(avg_sleep * 5 + (10 - avg_stress) * 3 + today_energy * 2)

        # First matching rule wins; a high composite score is checked before acute stress
        if score >= PUSH_THRESHOLD:
            state = ReadinessState.PUSH
        elif score < RECOVER_THRESHOLD:
            state = ReadinessState.RECOVER
        elif avg_stress > STRESS_REST_THRESHOLD:
            state = ReadinessState.REST
        else:
            state = ReadinessState.MAINTAIN

        self.logger.debug(
            "readiness_estimated",
            score=score,
            state=state.value,
            avg_sleep=round(avg_sleep, 2),
            avg_stress=round(avg_stress, 2),
        )

        return ReadinessScore(
            score=score,
            state=state,
            reason=STATE_REASONS[state],
            evidence_lineage=[log.id for log in recent],
        )
