"""
Integration service that combines the record store with the intelligence pipeline.

This demonstrates the complete end-to-end flow for one subject:
1. Load ordered logs and memory nodes from the store
2. Optionally detect the subject's chronotype (skipped while in distress)
3. Run the orchestrator (safety, readiness, narrative synthesis)
4. Persist the insight when configured to
5. Consolidate uncovered logs into long-term memory and produce weekly briefings
"""

from collections.abc import Sequence
from typing import Protocol

import structlog

from healthsignal.config import AppConfig, get_config
from healthsignal.domain.models import (
    AIMemoryNode,
    Chronotype,
    HealthLog,
    Insight,
    IntelligenceResult,
    WeeklyBriefing,
)
from healthsignal.services.circuit_breaker import CircuitBreakerState
from healthsignal.services.clock import Clock, IdGenerator, SystemClock, uuid_id_generator
from healthsignal.services.narrative import NarrativeServiceConfig, NarrativeSynthesisService
from healthsignal.services.orchestrator import IntelligenceOrchestrator
from healthsignal.services.safety import SafetyGuard, sanitize_text

logger = structlog.get_logger(__name__)


class HealthRecordStore(Protocol):
    """
    Persistence collaborator.

    Reads are required by the pipeline; writes are used only when the caller
    configures persistence.
    """

    async def get_logs(self, user_id: str) -> list[HealthLog]:
        """Logs for one subject, oldest first."""
        ...

    async def get_memory_nodes(self, user_id: str) -> list[AIMemoryNode]: ...

    async def add_memory_node(self, node: AIMemoryNode) -> AIMemoryNode: ...

    async def save_insight(self, insight: Insight) -> Insight: ...


class IntegratedIntelligenceService:
    """
    Main service that runs the intelligence pipeline against stored records.

    Combines:
    - Record loading from the persistence collaborator
    - Deterministic readiness and safety screening
    - Narrative synthesis with fallbacks
    - Memory consolidation and weekly briefings
    """

    def __init__(
        self,
        store: HealthRecordStore,
        config: AppConfig | None = None,
        narrative: NarrativeSynthesisService | None = None,
        clock: Clock | None = None,
        id_generator: IdGenerator | None = None,
    ) -> None:
        self.config = config or get_config()
        self.store = store
        self.clock = clock or SystemClock()
        self.id_generator = id_generator or uuid_id_generator
        self.logger = logger.bind(component="integrated_intelligence")

        self.narrative = narrative or NarrativeSynthesisService(
            NarrativeServiceConfig.from_app_config(self.config)
        )
        self.guard = SafetyGuard()
        self.orchestrator = IntelligenceOrchestrator(
            self.narrative,
            guard=self.guard,
            clock=self.clock,
            id_generator=self.id_generator,
            timeout_seconds=self.config.narrative.default_timeout_seconds,
            circuit_breaker=CircuitBreakerState(
                failure_threshold=self.config.intelligence.circuit_failure_threshold,
                recovery_timeout=self.config.intelligence.circuit_recovery_seconds,
                clock=self.clock,
            ),
        )
        self.logger.info(
            "integrated_intelligence_initialized",
            narrative_enabled=self.config.narrative.has_credentials,
        )

    async def refresh_subject(self, user_id: str) -> IntelligenceResult:
        """Run the daily pipeline for one subject from stored records."""
        logs = await self.store.get_logs(user_id)
        memory_nodes = await self.store.get_memory_nodes(user_id)

        chronotype: Chronotype = "Unknown"
        if self.config.intelligence.detect_chronotype:
            # No model call of any kind while a distress signal is active
            if self.guard.validate(logs).distress_signal_detected:
                self.logger.warning("chronotype_detection_skipped_for_distress", user_id=user_id)
            else:
                chronotype = await self.narrative.detect_chronotype(logs)

        result = await self.orchestrator.generate_daily_intelligence(
            user_id, logs, memory_nodes, chronotype=chronotype
        )

        # The initialization insight describes an empty history, not a finding
        if self.config.intelligence.persist_insights and logs:
            await self.store.save_insight(result.insight)
            self.logger.info("insight_persisted", user_id=user_id, insight_id=result.insight.id)

        return result

    async def consolidate_memory(self, user_id: str) -> AIMemoryNode | None:
        """
        Fold logs not yet covered by any memory node into a new node.

        Returns None when there is too little uncovered history or synthesis fails.
        """
        logs = await self.store.get_logs(user_id)
        memory_nodes = await self.store.get_memory_nodes(user_id)

        uncovered = self._uncovered_logs(logs, memory_nodes)
        if len(uncovered) < self.config.intelligence.memory_min_logs:
            self.logger.debug(
                "memory_consolidation_skipped",
                user_id=user_id,
                uncovered_logs=len(uncovered),
            )
            return None

        result = await self.narrative.synthesize_memory(uncovered)
        if result.is_err():
            self.logger.warning(
                "memory_consolidation_failed",
                user_id=user_id,
                error=str(result.unwrap_err()),
            )
            return None

        draft = result.unwrap()
        node = AIMemoryNode(
            id=self.id_generator(),
            user_id=user_id,
            date_range=draft.date_range,
            summary=sanitize_text(draft.summary),
            key_patterns=draft.key_patterns,
            emotional_tone=draft.emotional_tone,
            lineage_ids=draft.lineage_ids,
        )
        await self.store.add_memory_node(node)
        self.logger.info(
            "memory_node_created", user_id=user_id, node_id=node.id, lineage=len(node.lineage_ids)
        )
        return node

    async def generate_weekly_briefing(self, user_id: str) -> WeeklyBriefing | None:
        """
        Narrate the past week.

        Suppressed while a distress signal is active, like daily synthesis.
        """
        logs = await self.store.get_logs(user_id)
        memory_nodes = await self.store.get_memory_nodes(user_id)

        if self.guard.validate(logs).distress_signal_detected:
            self.logger.warning("weekly_briefing_suppressed_for_distress", user_id=user_id)
            return None

        result = await self.narrative.generate_weekly_briefing(logs, memory_nodes)
        if result.is_err():
            self.logger.warning(
                "weekly_briefing_failed", user_id=user_id, error=str(result.unwrap_err())
            )
            return None

        draft = result.unwrap()
        return WeeklyBriefing(
            id=self.id_generator(),
            user_id=user_id,
            week_label=f"Week of {self.clock.now().date().isoformat()}",
            narrative_summary=sanitize_text(draft.narrative_summary),
            biological_trajectory=draft.biological_trajectory,
            critical_correlations=draft.critical_correlations,
            sovereignty_check=draft.sovereignty_check,
        )

    @staticmethod
    def _uncovered_logs(
        logs: Sequence[HealthLog], memory_nodes: Sequence[AIMemoryNode]
    ) -> list[HealthLog]:
        covered = {log_id for node in memory_nodes for log_id in node.lineage_ids}
        return [log for log in logs if log.id not in covered]
