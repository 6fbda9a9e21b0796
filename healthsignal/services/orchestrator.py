"""
Intelligence orchestration: deterministic truth first, generative synthesis second.

Pipeline for one subject-day:
1. Empty history: return the fixed initialization insight immediately
2. Safety check over the full history
3. Readiness estimate over the full history (always)
4. Distress signal: build a stabilization insight locally, never call the collaborator
5. Otherwise: call the collaborator, sanitize, stamp ids
6. Finalize latency and confidence

The collaborator is the only suspension point. It is timeout-bounded and
guarded by a circuit breaker; every failure there degrades to a fixed
fallback insight so the caller always receives a complete result.
"""

import asyncio
from collections.abc import Sequence
from typing import Any

import structlog
from pydantic import ValidationError

from healthsignal.domain.errors import (
    MalformedNarrativeError,
    NarrativeError,
    NarrativeServiceError,
    NarrativeTimeoutError,
    NarrativeUnavailableError,
)
from healthsignal.domain.models import (
    AIMemoryNode,
    Chronotype,
    HealthLog,
    Insight,
    InsightType,
    IntelligenceResult,
    NeuralAudit,
    ReadinessScore,
    ReadinessState,
)
from healthsignal.services.circuit_breaker import CircuitBreakerState
from healthsignal.services.clock import Clock, IdGenerator, SystemClock, uuid_id_generator
from healthsignal.services.narrative import InsightDraft, NarrativeCollaborator, NarrativeContext
from healthsignal.services.readiness import (
    CALIBRATION_REASON,
    CALIBRATION_SCORE,
    ReadinessEstimator,
)
from healthsignal.services.result import Result
from healthsignal.services.safety import SafetyGuard

logger = structlog.get_logger(__name__)

CLINICAL_DISCLAIMER = "Non-diagnostic information for wellbeing purposes. Not medical advice."
STABILIZATION_DISCLAIMER = f"Stabilizing mode active. {CLINICAL_DISCLAIMER}"

INITIALIZED_TITLE = "Neural Core Initialized"
INITIALIZED_DESCRIPTION = "Log your first check-in to begin establishing a personal baseline."

STABILIZATION_TITLE = "Systemic Stabilization Active"
STABILIZATION_FALLBACK_ADVICE = "High strain detected. Prioritize recovery."
STABILIZATION_REASON = "Safety guard triggered by high stress/low mood correlation."

FALLBACK_TITLE = "Resilient Offline Core"
FALLBACK_DESCRIPTION = (
    "Narrative synthesis is unavailable. Recovery scores are being calculated deterministically."
)

# Values for NeuralAudit.model_used on paths that never reach a model
MODEL_DETERMINISTIC = "deterministic"
MODEL_SAFETY_GUARD = "safety-guard"
MODEL_FALLBACK = "fallback"


class IntelligenceOrchestrator:
    """
    Orchestrates the safety guard, readiness estimator and narrative collaborator.

    Holds no per-subject state: concurrent calls, including duplicate calls for
    the same subject, compute independently. The only shared state is the
    circuit breaker, which describes the collaborator rather than a subject.
    """

    def __init__(
        self,
        narrative: NarrativeCollaborator,
        *,
        estimator: ReadinessEstimator | None = None,
        guard: SafetyGuard | None = None,
        clock: Clock | None = None,
        id_generator: IdGenerator | None = None,
        timeout_seconds: float = 30.0,
        circuit_breaker: CircuitBreakerState | None = None,
    ) -> None:
        self.narrative = narrative
        self.estimator = estimator or ReadinessEstimator()
        self.guard = guard or SafetyGuard()
        self.clock = clock or SystemClock()
        self.id_generator = id_generator or uuid_id_generator
        self.timeout_seconds = timeout_seconds
        self.circuit_breaker = circuit_breaker or CircuitBreakerState(clock=self.clock)
        self.logger = logger.bind(component="intelligence_orchestrator")

    async def generate_daily_intelligence(
        self,
        subject_id: str,
        logs: Sequence[HealthLog],
        memory_nodes: Sequence[AIMemoryNode],
        *,
        chronotype: Chronotype = "Unknown",
    ) -> IntelligenceResult:
        """
        Produce the daily insight and readiness for one subject.

        ``logs`` must be ordered oldest first. Never raises for a collaborator
        failure; the deterministic readiness score is always returned.
        """
        if not logs:
            return self._initialized_result(subject_id)

        start = self.clock.monotonic()
        log = self.logger.bind(subject_id=subject_id, log_count=len(logs))
        log.info("daily_intelligence_started")

        safety = self.guard.validate(logs)
        readiness = self.estimator.estimate(logs)

        if safety.distress_signal_detected:
            insight = self._stabilization_insight(subject_id, safety.stabilizing_advice)
            model_used = MODEL_SAFETY_GUARD
            log.warning("narrative_bypassed_for_distress")
        else:
            context = NarrativeContext(chronotype=chronotype, readiness_percentage=readiness.score)
            draft_result = await self._invoke_narrative(logs, memory_nodes, context)

            if draft_result.is_ok():
                insight = self._stamp(subject_id, self.guard.sanitize(draft_result.unwrap()))
                model_used = getattr(self.narrative, "model_name", "narrative")
            else:
                error = draft_result.unwrap_err()
                log.warning(
                    "narrative_fallback_used",
                    error_type=type(error).__name__,
                    error=str(error),
                )
                insight = self._fallback_insight(subject_id)
                model_used = MODEL_FALLBACK

        latency_ms = max(0, round((self.clock.monotonic() - start) * 1000))
        confidence = insight.confidence_score or 0.0

        log.info(
            "daily_intelligence_completed",
            insight_type=insight.type.value,
            readiness_state=readiness.state.value,
            readiness_score=readiness.score,
            is_anomalous=safety.is_anomalous,
            distress=safety.distress_signal_detected,
            latency_ms=latency_ms,
            model_used=model_used,
        )

        return IntelligenceResult(
            insight=insight,
            readiness=readiness,
            latency_ms=latency_ms,
            confidence=confidence,
            audit=self._audit(insight, latency_ms, confidence, model_used),
        )

    async def _invoke_narrative(
        self,
        logs: Sequence[HealthLog],
        memory_nodes: Sequence[AIMemoryNode],
        context: NarrativeContext,
    ) -> Result[InsightDraft, NarrativeError]:
        """Call the collaborator and reduce every outcome to a typed result."""
        if not self.circuit_breaker.can_execute():
            self.logger.warning("narrative_circuit_open")
            return Result.err(NarrativeUnavailableError("Narrative circuit breaker is open"))

        try:
            raw: Any = await asyncio.wait_for(
                self.narrative.generate_insight(logs, memory_nodes, context),
                timeout=self.timeout_seconds,
            )
            result = self._coerce(raw)
        except TimeoutError:
            result = Result.err(
                NarrativeTimeoutError(f"Narrative synthesis exceeded {self.timeout_seconds}s")
            )
        except Exception as e:
            self.logger.exception("narrative_collaborator_raised", error=str(e))
            result = Result.err(NarrativeServiceError(str(e)))

        # Missing credentials say nothing about the collaborator's health
        if result.is_ok():
            self.circuit_breaker.record_success()
        elif not isinstance(result.unwrap_err(), NarrativeUnavailableError):
            self.circuit_breaker.record_failure()

        return result

    def _coerce(self, raw: Any) -> Result[InsightDraft, NarrativeError]:
        """Validate whatever the collaborator returned into a Result of InsightDraft."""
        if isinstance(raw, Result):
            if raw.is_err():
                error = raw.unwrap_err()
                if isinstance(error, NarrativeError):
                    return raw
                return Result.err(NarrativeServiceError(str(error)))
            raw = raw.unwrap()

        if isinstance(raw, InsightDraft):
            return Result.ok(raw)

        try:
            return Result.ok(InsightDraft.model_validate(raw))
        except ValidationError as e:
            return Result.err(MalformedNarrativeError(str(e)))

    def _stamp(self, subject_id: str, draft: InsightDraft) -> Insight:
        return Insight(
            id=self.id_generator(),
            user_id=subject_id,
            title=draft.title,
            description=draft.description,
            type=draft.type,
            date_generated=self.clock.now(),
            confidence_score=draft.confidence_score,
            reasoning=draft.reasoning,
            prediction=draft.prediction,
            clinical_disclaimer=CLINICAL_DISCLAIMER,
        )

    def _stabilization_insight(self, subject_id: str, advice: str | None) -> Insight:
        return Insight(
            id=self.id_generator(),
            user_id=subject_id,
            title=STABILIZATION_TITLE,
            description=advice or STABILIZATION_FALLBACK_ADVICE,
            type=InsightType.WARNING,
            date_generated=self.clock.now(),
            confidence_score=100,
            reasoning=[STABILIZATION_REASON],
            clinical_disclaimer=STABILIZATION_DISCLAIMER,
        )

    def _fallback_insight(self, subject_id: str) -> Insight:
        return Insight(
            id=self.id_generator(),
            user_id=subject_id,
            title=FALLBACK_TITLE,
            description=FALLBACK_DESCRIPTION,
            type=InsightType.NEUTRAL,
            date_generated=self.clock.now(),
            clinical_disclaimer=CLINICAL_DISCLAIMER,
        )

    def _initialized_result(self, subject_id: str) -> IntelligenceResult:
        """Terminal result for a subject with no history; guard and estimator do not run."""
        self.logger.info("daily_intelligence_initialized", subject_id=subject_id)
        insight = Insight(
            id=self.id_generator(),
            user_id=subject_id,
            title=INITIALIZED_TITLE,
            description=INITIALIZED_DESCRIPTION,
            type=InsightType.NEUTRAL,
            date_generated=self.clock.now(),
            confidence_score=100,
            clinical_disclaimer=CLINICAL_DISCLAIMER,
        )
        readiness = ReadinessScore(
            score=CALIBRATION_SCORE,
            state=ReadinessState.MAINTAIN,
            reason=CALIBRATION_REASON,
        )
        return IntelligenceResult(
            insight=insight,
            readiness=readiness,
            latency_ms=0,
            confidence=100,
            audit=self._audit(insight, 0, 100, MODEL_DETERMINISTIC),
        )

    def _audit(
        self, insight: Insight, latency_ms: int, confidence: float, model_used: str
    ) -> NeuralAudit:
        return NeuralAudit(
            prediction_id=insight.id,
            latency_ms=latency_ms,
            confidence=confidence,
            model_used=model_used,
            timestamp=insight.date_generated,
        )
