"""
Domain models for health-signal intelligence.

These models represent the core business concepts and are framework-agnostic.
They use Pydantic for validation but could be swapped to dataclasses if needed.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

# Ordinal self-report scale shared by mood, energy, sleep and stress
ScaleValue = Annotated[int, Field(ge=0, le=10)]

Chronotype = Literal["Lion", "Bear", "Wolf", "Dolphin", "Unknown"]


class ReadinessState(str, Enum):
    """Recommended activity load for the day."""

    PUSH = "Push"
    MAINTAIN = "Maintain"
    REST = "Rest"
    RECOVER = "Recover"


class InsightType(str, Enum):
    POSITIVE = "positive"
    WARNING = "warning"
    NEUTRAL = "neutral"


class SleepPhases(BaseModel):
    """Minutes spent in each sleep phase."""

    model_config = ConfigDict(frozen=True)

    deep: float = Field(ge=0)
    light: float = Field(ge=0)
    rem: float = Field(ge=0)
    awake: float = Field(ge=0)


class ActivityLog(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    duration: float = Field(ge=0, description="Duration in minutes")
    intensity: float = Field(ge=0, le=10)


class Micronutrients(BaseModel):
    model_config = ConfigDict(frozen=True)

    vitamin_c: float = 0.0
    vitamin_d: float = 0.0
    iron: float = 0.0
    magnesium: float = 0.0
    zinc: float = 0.0


class NutritionLog(BaseModel):
    model_config = ConfigDict(frozen=True)

    calories: float = Field(ge=0)
    protein: float = Field(ge=0, description="Grams")
    carbs: float = Field(ge=0, description="Grams")
    fats: float = Field(ge=0, description="Grams")
    description: str | None = None
    micronutrients: Micronutrients | None = None


class HealthLog(BaseModel):
    """One subject-day record. Immutable once created."""

    model_config = ConfigDict(frozen=True)  # Immutable for better reasoning

    id: str
    user_id: str
    date: datetime
    mood: ScaleValue
    energy: ScaleValue
    sleep_quality: ScaleValue
    stress: ScaleValue
    sleep_phases: SleepPhases | None = None
    activity: ActivityLog | None = None
    nutrition: NutritionLog | None = None
    symptoms: list[str] = Field(default_factory=list)
    notes: str = ""


class ReadinessScore(BaseModel):
    """Deterministic readiness for a subject on a given day."""

    model_config = ConfigDict(frozen=True)

    score: int
    state: ReadinessState
    reason: str
    evidence_lineage: list[str] = Field(
        default_factory=list, description="Ids of the logs the score was computed from"
    )


class SafetyReport(BaseModel):
    """Outcome of screening the most recent log."""

    model_config = ConfigDict(frozen=True)

    is_anomalous: bool
    distress_signal_detected: bool
    stabilizing_advice: str | None = None


class Insight(BaseModel):
    """User-facing intelligence artifact."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    title: str
    description: str
    type: InsightType
    date_generated: datetime = Field(default_factory=lambda: datetime.now(UTC))
    confidence_score: float | None = Field(default=None, ge=0.0, le=100.0)
    reasoning: list[str] | None = None
    prediction: str | None = None
    clinical_disclaimer: str


class DateRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: str
    end: str


class AIMemoryNode(BaseModel):
    """Long-term multi-day summary with lineage back to its source logs."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    date_range: DateRange
    summary: str
    key_patterns: list[str] = Field(default_factory=list)
    emotional_tone: str
    lineage_ids: list[str] = Field(default_factory=list)


class WeeklyBriefing(BaseModel):
    """Narrative summary of the past week."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    week_label: str
    narrative_summary: str
    biological_trajectory: Literal["Ascending", "Descending", "Plateau"]
    critical_correlations: list[str] = Field(default_factory=list)
    sovereignty_check: str


class NeuralAudit(BaseModel):
    """Telemetry attached to every orchestration result."""

    model_config = ConfigDict(frozen=True)

    prediction_id: str
    latency_ms: int = Field(ge=0)
    confidence: float = Field(ge=0.0, le=100.0)
    model_used: str
    timestamp: datetime


class IntelligenceResult(BaseModel):
    """Composite result consumed by the presentation layer."""

    insight: Insight
    readiness: ReadinessScore
    latency_ms: int = Field(ge=0)
    confidence: float = Field(ge=0.0, le=100.0)
    audit: NeuralAudit
