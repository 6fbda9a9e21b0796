"""
Safety guard: pre-inference screening and post-inference sanitization.

``validate`` inspects the most recent log for a distress signal, which is the
hard gate that keeps generative text away from the user, and for implausible
combinations, which are advisory only.

``sanitize`` is a best-effort textual filter over generated descriptions. It
redacts a fixed set of phrasings (dosage instructions, diagnostic claims,
treatment directives, prescriptive language). It is not a semantic guarantee:
paraphrases, other languages and clinical content that avoids these exact
phrasings pass through unchanged.
"""

import re
from collections.abc import Sequence
from typing import Protocol, TypeVar

import structlog

from healthsignal.domain.models import HealthLog, SafetyReport

logger = structlog.get_logger(__name__)

CRITICAL_STRESS_MIN = 9
CRITICAL_MOOD_MAX = 3

STABILIZING_ADVICE = (
    "Recovery-only logic is active. Biometric markers indicate high systemic strain. "
    "Minimize cognitive load and digital inputs for the next 12 hours."
)

REDACTION_MARKER = "[Clinical Boundary Reached]"

CLINICAL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\btake\s+\d+(?:\.\d+)?\s*mg\b", re.IGNORECASE),
    re.compile(r"\bdiagnos(?:e|es|ed|ing|is)\b", re.IGNORECASE),
    re.compile(r"\btreat(?:s|ed|ing)?\s+with\b", re.IGNORECASE),
    re.compile(r"\bprescrib(?:e|es|ed|ing)\b", re.IGNORECASE),
)


class _Describable(Protocol):
    description: str

    def model_copy(self, *, update: dict | None = None, deep: bool = False): ...


DescribableT = TypeVar("DescribableT", bound=_Describable)


def sanitize_text(text: str) -> str:
    """Replace every clinically risky phrase in ``text`` with the redaction marker."""
    for pattern in CLINICAL_PATTERNS:
        text = pattern.sub(REDACTION_MARKER, text)
    return text


class SafetyGuard:
    """Screens log history before inference and cleans generated output after it."""

    def __init__(self) -> None:
        self.logger = logger.bind(component="safety_guard")

    def validate(self, logs: Sequence[HealthLog]) -> SafetyReport:
        """Screen the most recent log for distress and implausible combinations."""
        if not logs:
            return SafetyReport(is_anomalous=False, distress_signal_detected=False)

        latest = logs[-1]

        critical_stress = latest.stress >= CRITICAL_STRESS_MIN and latest.mood <= CRITICAL_MOOD_MAX
        # Sleep-deprived but high-energy, or high-stress with high mood
        anomalous = (latest.sleep_quality < 3 and latest.energy > 8) or (
            latest.stress > 9 and latest.mood > 8
        )

        if critical_stress:
            self.logger.warning("distress_signal_detected", log_id=latest.id)
            return SafetyReport(
                is_anomalous=True,
                distress_signal_detected=True,
                stabilizing_advice=STABILIZING_ADVICE,
            )

        if anomalous:
            self.logger.info("anomalous_log_detected", log_id=latest.id)
            return SafetyReport(is_anomalous=True, distress_signal_detected=False)

        return SafetyReport(is_anomalous=False, distress_signal_detected=False)

    def sanitize(self, insight: DescribableT) -> DescribableT:
        """Return a copy of ``insight`` with its description redacted; other fields untouched."""
        cleaned = sanitize_text(insight.description)
        if cleaned != insight.description:
            self.logger.info("clinical_language_redacted")
            return insight.model_copy(update={"description": cleaned})
        return insight
