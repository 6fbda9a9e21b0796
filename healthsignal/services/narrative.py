"""
Narrative synthesis using Pydantic AI.

Key architectural decisions:
- Multi-agent system: one agent per synthesis task (daily insight, memory
  node, weekly briefing, chronotype)
- Type-safe AI responses: every response is validated against a Pydantic
  schema before anything downstream sees it
- Explicit failures: every call returns a ``Result``; missing credentials,
  short history, timeouts and malformed output become ``NarrativeError``
  variants instead of raised exceptions
- Untrusted output: the collaborator never decides safety. Gating and
  sanitization happen in the orchestrator
"""

import asyncio
import json
from collections.abc import Sequence
from typing import Any, Generic, Literal, Protocol, TypeVar

import structlog
from pydantic import BaseModel, Field, ValidationError
from pydantic_ai import Agent
from pydantic_ai.exceptions import UnexpectedModelBehavior

from healthsignal.config import AppConfig, model_config_for
from healthsignal.domain.errors import (
    InsufficientHistoryError,
    MalformedNarrativeError,
    NarrativeError,
    NarrativeServiceError,
    NarrativeTimeoutError,
    NarrativeUnavailableError,
)
from healthsignal.domain.models import (
    AIMemoryNode,
    Chronotype,
    DateRange,
    HealthLog,
    InsightType,
)
from healthsignal.services.result import Result

logger = structlog.get_logger(__name__)

OutputT = TypeVar("OutputT", bound=BaseModel)

ANALYTICS_SYSTEM_PROMPT = """You are a health intelligence engine specializing in predictive
forecasting, explainable reasoning and gentle behavioral nudges.

Critical rules:
1. This is a wellbeing synthesis, never a medical diagnosis. Do not name drugs, doses or treatments.
2. Be transparent: briefly reference the data lineage (e.g. "Based on your 14-day sleep trend...").
3. Personalize: use the subject's chronotype and current readiness score to tailor the advice.
4. Every item in "reasoning" must point at an observable pattern in the logs or memories."""


# Response schemas handed to the model
class InsightDraft(BaseModel):
    """Structured daily insight as returned by the collaborator."""

    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    type: InsightType
    confidence_score: float = Field(ge=0.0, le=100.0)
    reasoning: list[str] = Field(default_factory=list)
    prediction: str | None = None


class MemoryDraft(BaseModel):
    """Long-term memory node content before it is stamped with ids."""

    summary: str = Field(min_length=1)
    key_patterns: list[str] = Field(default_factory=list)
    emotional_tone: str
    date_range: DateRange
    lineage_ids: list[str] = Field(default_factory=list)


class BriefingDraft(BaseModel):
    narrative_summary: str = Field(min_length=1)
    biological_trajectory: Literal["Ascending", "Descending", "Plateau"]
    critical_correlations: list[str] = Field(default_factory=list)
    sovereignty_check: str


class ChronotypeAnswer(BaseModel):
    chronotype: Chronotype = "Unknown"


class NarrativeContext(BaseModel):
    """Optional hints that personalize the daily insight."""

    chronotype: Chronotype = "Unknown"
    readiness_percentage: int | None = None


class NarrativeServiceConfig(BaseModel):
    """Configuration for narrative synthesis with smart defaults."""

    credentials_configured: bool = False
    insight_model: str = "google-gla:gemini-2.5-pro"
    memory_model: str = "google-gla:gemini-2.5-flash"
    briefing_model: str = "google-gla:gemini-2.5-pro"
    chronotype_model: str = "google-gla:gemini-2.5-flash"
    temperature: float = Field(default=0.4, ge=0.0, le=1.0)
    timeout_seconds: float = Field(default=30.0, gt=0.0)
    max_retries: int = Field(default=1, ge=0)

    log_window: int = Field(default=14, gt=0)
    memory_min_logs: int = Field(default=7, gt=0)
    briefing_min_logs: int = Field(default=7, gt=0)
    chronotype_min_logs: int = Field(default=5, gt=0)

    @classmethod
    def from_app_config(cls, config: AppConfig) -> "NarrativeServiceConfig":
        insight = model_config_for(config, "insight")
        return cls(
            credentials_configured=config.narrative.has_credentials,
            insight_model=insight["model_name"],
            memory_model=model_config_for(config, "memory")["model_name"],
            briefing_model=model_config_for(config, "briefing")["model_name"],
            chronotype_model=model_config_for(config, "chronotype")["model_name"],
            temperature=insight["temperature"],
            timeout_seconds=insight["timeout_seconds"],
            max_retries=insight["max_retries"],
            log_window=config.narrative.log_window,
            memory_min_logs=config.intelligence.memory_min_logs,
            briefing_min_logs=config.intelligence.briefing_min_logs,
            chronotype_min_logs=config.intelligence.chronotype_min_logs,
        )


class NarrativeCollaborator(Protocol):
    """
    What the orchestrator needs from a narrative synthesis backend.

    Implementations must return ``Result.err`` for expected failures; the
    orchestrator still guards against anything raised.
    """

    model_name: str

    async def generate_insight(
        self,
        logs: Sequence[HealthLog],
        memory_nodes: Sequence[AIMemoryNode],
        context: NarrativeContext,
    ) -> Result[InsightDraft, NarrativeError]: ...


def _log_payload(logs: Sequence[HealthLog]) -> str:
    return json.dumps([log.model_dump(mode="json", exclude_none=True) for log in logs])


def _memory_payload(memory_nodes: Sequence[AIMemoryNode]) -> str:
    return json.dumps(
        [node.model_dump(mode="json", exclude={"user_id"}) for node in memory_nodes]
    )


class _StructuredAgent(Generic[OutputT]):
    """
    Thin wrapper around a Pydantic AI agent with a typed output.

    Owns the timeout and maps every failure mode to a ``NarrativeError``.
    """

    def __init__(
        self,
        name: str,
        model_name: str,
        output_type: type[OutputT],
        system_prompt: str,
        config: NarrativeServiceConfig,
    ) -> None:
        self.name = name
        self.model_name = model_name
        self.output_type = output_type
        self.config = config
        self.logger = logger.bind(component=f"{name}_agent")

        # Model resolution is deferred so agents can be built without credentials
        self.agent = Agent(
            model=model_name,
            output_type=output_type,
            system_prompt=system_prompt,
            retries=config.max_retries,
            model_settings={"temperature": config.temperature},
            defer_model_check=True,
        )

    async def run(self, prompt: str) -> Result[OutputT, NarrativeError]:
        try:
            result = await asyncio.wait_for(
                self.agent.run(user_prompt=prompt, message_history=[]),
                timeout=self.config.timeout_seconds,
            )
        except TimeoutError:
            self.logger.error("narrative_timeout", timeout_seconds=self.config.timeout_seconds)
            return Result.err(
                NarrativeTimeoutError(f"{self.name} timed out after {self.config.timeout_seconds}s")
            )
        except (UnexpectedModelBehavior, ValidationError) as e:
            self.logger.error("narrative_malformed_output", error=str(e))
            return Result.err(MalformedNarrativeError(str(e)))
        except Exception as e:
            self.logger.error("narrative_call_failed", error=str(e), error_type=type(e).__name__)
            return Result.err(NarrativeServiceError(str(e)))

        output: Any = getattr(result, "output", None)
        if isinstance(output, dict):
            try:
                output = self.output_type.model_validate(output)
            except ValidationError as e:
                self.logger.error("narrative_malformed_output", error=str(e))
                return Result.err(MalformedNarrativeError(str(e)))

        if not isinstance(output, self.output_type):
            self.logger.error("narrative_unexpected_output", output_type=type(output).__name__)
            return Result.err(
                MalformedNarrativeError(
                    f"Expected {self.output_type.__name__}, got {type(output).__name__}"
                )
            )

        return Result.ok(output)


class NarrativeSynthesisService:
    """
    Coordinates the narrative agents behind a single collaborator interface.

    Implements ``NarrativeCollaborator`` for daily insights and adds memory,
    briefing and chronotype synthesis for the integrated service.
    """

    def __init__(self, config: NarrativeServiceConfig) -> None:
        self.config = config
        self.model_name = config.insight_model
        self.logger = logger.bind(component="narrative_synthesis_service")

        self.insight_agent = _StructuredAgent(
            "insight", config.insight_model, InsightDraft, ANALYTICS_SYSTEM_PROMPT, config
        )
        self.memory_agent = _StructuredAgent(
            "memory",
            config.memory_model,
            MemoryDraft,
            "You condense daily health logs into long-term memory nodes. "
            "Always reference the source log ids you relied on in lineage_ids.",
            config,
        )
        self.briefing_agent = _StructuredAgent(
            "briefing", config.briefing_model, BriefingDraft, ANALYTICS_SYSTEM_PROMPT, config
        )
        self.chronotype_agent = _StructuredAgent(
            "chronotype",
            config.chronotype_model,
            ChronotypeAnswer,
            "You classify sleep/energy rhythms into one of: Lion, Bear, Wolf, Dolphin, Unknown.",
            config,
        )

    def _unavailable(self) -> NarrativeUnavailableError:
        return NarrativeUnavailableError("No narrative credential configured")

    async def generate_insight(
        self,
        logs: Sequence[HealthLog],
        memory_nodes: Sequence[AIMemoryNode],
        context: NarrativeContext,
    ) -> Result[InsightDraft, NarrativeError]:
        """Synthesize a daily insight from recent logs and long-term memory."""
        if not self.config.credentials_configured:
            self.logger.info("narrative_unavailable", task="insight")
            return Result.err(self._unavailable())

        return await self.insight_agent.run(self._build_insight_prompt(logs, memory_nodes, context))

    def _build_insight_prompt(
        self,
        logs: Sequence[HealthLog],
        memory_nodes: Sequence[AIMemoryNode],
        context: NarrativeContext,
    ) -> str:
        window = logs[-self.config.log_window :]
        readiness = (
            f"{context.readiness_percentage}%"
            if context.readiness_percentage is not None
            else "unknown"
        )

        return f"""Analyze these health logs and long-term memories.

LOGS ({len(window)} most recent, oldest first):
{_log_payload(window)}

MEMORIES:
{_memory_payload(memory_nodes) if memory_nodes else "No long-term memory yet"}

CONTEXT:
Subject chronotype: {context.chronotype}
Current readiness score: {readiness}

Provide a non-diagnostic insight tailored to how the chronotype may be shaping recent
trends and how the subject should use today's readiness. Confidence is 0-100."""

    async def synthesize_memory(
        self, logs: Sequence[HealthLog]
    ) -> Result[MemoryDraft, NarrativeError]:
        """Condense logs into a memory node draft whose lineage only names supplied logs."""
        if not self.config.credentials_configured:
            return Result.err(self._unavailable())
        if len(logs) < self.config.memory_min_logs:
            return Result.err(InsufficientHistoryError(self.config.memory_min_logs, len(logs)))

        summary_data = [
            {
                "d": log.date.date().isoformat(),
                "slp": log.sleep_quality,
                "str": log.stress,
                "nrg": log.energy,
                "id": log.id,
            }
            for log in logs
        ]
        result = await self.memory_agent.run(
            "Synthesize this data into a long-term memory node. "
            f"Reference data ids for lineage. Data: {json.dumps(summary_data)}"
        )
        if result.is_err():
            return result

        draft = result.unwrap()
        known_ids = [log.id for log in logs]
        known = set(known_ids)
        lineage = [log_id for log_id in draft.lineage_ids if log_id in known]
        if len(lineage) != len(draft.lineage_ids):
            self.logger.warning(
                "memory_lineage_filtered",
                dropped=len(draft.lineage_ids) - len(lineage),
            )
        return Result.ok(draft.model_copy(update={"lineage_ids": lineage or known_ids}))

    async def generate_weekly_briefing(
        self, logs: Sequence[HealthLog], memory_nodes: Sequence[AIMemoryNode]
    ) -> Result[BriefingDraft, NarrativeError]:
        """Narrate the past seven days in the context of long-term memory."""
        if not self.config.credentials_configured:
            return Result.err(self._unavailable())
        if len(logs) < self.config.briefing_min_logs:
            return Result.err(InsufficientHistoryError(self.config.briefing_min_logs, len(logs)))

        return await self.briefing_agent.run(
            "Synthesize the past 7 days of logs and long-term memories into a calm weekly "
            f"narrative. Logs: {_log_payload(logs[-7:])}. "
            f"Memories: {_memory_payload(memory_nodes)}."
        )

    async def detect_chronotype(self, logs: Sequence[HealthLog]) -> Chronotype:
        """Best-effort chronotype classification; ``Unknown`` on any failure."""
        if not self.config.credentials_configured or len(logs) < self.config.chronotype_min_logs:
            return "Unknown"

        result = await self.chronotype_agent.run(
            f"Identify chronotype: {_log_payload(logs[-10:])}"
        )
        if result.is_err():
            return "Unknown"
        return result.unwrap().chronotype
