"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Secure defaults (no API keys in code)
- A missing narrative credential is a valid deployment: the pipeline runs
  deterministic-only
"""

import os
from functools import lru_cache
from typing import Any, Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

# Load environment variables from .env file
load_dotenv()

NarrativeTask = Literal["insight", "memory", "briefing", "chronotype"]


class NarrativeProviderConfig(BaseModel):
    """Narrative collaborator (LLM) configuration with secure defaults."""

    gemini_api_key: str | None = Field(
        None, description="Gemini API key; absent means deterministic-only operation"
    )

    # Model selection for different tasks
    insight_model: str = Field(
        default="google-gla:gemini-2.5-pro", description="Model for daily insights"
    )
    memory_model: str = Field(
        default="google-gla:gemini-2.5-flash", description="Model for memory synthesis"
    )
    briefing_model: str = Field(
        default="google-gla:gemini-2.5-pro", description="Model for weekly briefings"
    )
    chronotype_model: str = Field(
        default="google-gla:gemini-2.5-flash", description="Model for chronotype detection"
    )

    # AI behavior settings
    default_temperature: float = Field(
        default=0.4, ge=0.0, le=1.0, description="Default temperature for AI models"
    )
    default_timeout_seconds: float = Field(
        default=30.0, gt=0.0, description="Upper bound on a single collaborator call"
    )
    default_max_retries: int = Field(
        default=1, ge=0, description="Default max retries for AI models"
    )
    log_window: int = Field(
        default=14, gt=0, description="Most recent logs sent to the collaborator"
    )

    @field_validator("gemini_api_key")
    def blank_key_is_absent(cls, v):
        if not v or not v.strip() or v == "your-gemini-api-key-here":
            return None
        return v.strip()

    @property
    def has_credentials(self) -> bool:
        return self.gemini_api_key is not None


class IntelligenceConfig(BaseModel):
    """Pipeline thresholds and resilience settings."""

    memory_min_logs: int = Field(default=7, gt=0, description="Logs needed for a memory node")
    briefing_min_logs: int = Field(default=7, gt=0, description="Logs needed for a briefing")
    chronotype_min_logs: int = Field(
        default=5, gt=0, description="Logs needed for chronotype detection"
    )

    # Circuit breaker around the narrative collaborator
    circuit_failure_threshold: int = Field(
        default=5, gt=0, description="Consecutive failures before the circuit opens"
    )
    circuit_recovery_seconds: float = Field(
        default=60.0, gt=0.0, description="Seconds before an open circuit is retried"
    )

    persist_insights: bool = Field(
        default=True, description="Persist generated insights through the record store"
    )
    detect_chronotype: bool = Field(
        default=False, description="Detect chronotype before daily synthesis"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Component configs
    narrative: NarrativeProviderConfig
    intelligence: IntelligenceConfig
    logging: LoggingConfig

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _parse_bool(val: str | None, default: bool) -> bool:
        if val is None:
            return default
        return val.strip().lower() in {"1", "true", "yes", "on"}

    # Detect environment
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    narrative_config = NarrativeProviderConfig(
        gemini_api_key=os.getenv("GEMINI_API_KEY"),
        insight_model=os.getenv("INSIGHT_MODEL", "google-gla:gemini-2.5-pro"),
        memory_model=os.getenv("MEMORY_MODEL", "google-gla:gemini-2.5-flash"),
        briefing_model=os.getenv("BRIEFING_MODEL", "google-gla:gemini-2.5-pro"),
        chronotype_model=os.getenv("CHRONOTYPE_MODEL", "google-gla:gemini-2.5-flash"),
        default_timeout_seconds=float(os.getenv("NARRATIVE_TIMEOUT_SECONDS", "30.0")),
        log_window=int(os.getenv("NARRATIVE_LOG_WINDOW", "14")),
    )

    intelligence_config = IntelligenceConfig(
        memory_min_logs=int(os.getenv("MEMORY_MIN_LOGS", "7")),
        briefing_min_logs=int(os.getenv("BRIEFING_MIN_LOGS", "7")),
        chronotype_min_logs=int(os.getenv("CHRONOTYPE_MIN_LOGS", "5")),
        circuit_failure_threshold=int(os.getenv("CIRCUIT_FAILURE_THRESHOLD", "5")),
        circuit_recovery_seconds=float(os.getenv("CIRCUIT_RECOVERY_SECONDS", "60.0")),
        persist_insights=_parse_bool(os.getenv("PERSIST_INSIGHTS"), True),
        detect_chronotype=_parse_bool(os.getenv("DETECT_CHRONOTYPE"), False),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        narrative=narrative_config,
        intelligence=intelligence_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
        print(f"✅ Configuration loaded for {config.environment} environment")

        if config.narrative.has_credentials:
            print("✅ Gemini API key configured")
        else:
            print("⚠️  No Gemini API key: running deterministic-only")

    except Exception as e:
        print(f"❌ Configuration validation failed: {e}")
        raise


def model_config_for(config: AppConfig, task: NarrativeTask) -> dict[str, Any]:
    """Model name and call settings for one narrative task."""
    models = {
        "insight": config.narrative.insight_model,
        "memory": config.narrative.memory_model,
        "briefing": config.narrative.briefing_model,
        "chronotype": config.narrative.chronotype_model,
    }
    if task not in models:
        raise ValueError(f"Unknown task: {task}")

    return {
        "model_name": models[task],
        "temperature": config.narrative.default_temperature,
        "timeout_seconds": config.narrative.default_timeout_seconds,
        "max_retries": config.narrative.default_max_retries,
    }


def get_model_config(task: NarrativeTask) -> dict[str, Any]:
    """Get model configuration based on task."""
    return model_config_for(get_config(), task)


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\n🔧 CONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\n🤖 NARRATIVE CONFIGURATION")
    print(f"Credentials: {'configured' if config.narrative.has_credentials else 'missing'}")
    print(f"Insight Model: {config.narrative.insight_model}")
    print(f"Memory Model: {config.narrative.memory_model}")
    print(f"Timeout: {config.narrative.default_timeout_seconds}s")
    print(f"Log Window: {config.narrative.log_window}")

    print("\n🧠 INTELLIGENCE CONFIGURATION")
    print(f"Memory Threshold: {config.intelligence.memory_min_logs} logs")
    print(f"Circuit Breaker: {config.intelligence.circuit_failure_threshold} failures")
    print(f"Persist Insights: {config.intelligence.persist_insights}")


if __name__ == "__main__":
    validate_config()
    print_config_summary()
