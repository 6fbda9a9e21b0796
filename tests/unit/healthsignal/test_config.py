"""
Tests for configuration management in `healthsignal/config.py`.

Covers:
- Environment parsing and debug defaults
- Logging level coercion to the expected Literal
- Narrative credential handling (absent, blank, placeholder)
- Boolean and numeric parsing of pipeline settings
- get_model_config mapping
- get_config cache behavior
- AppConfig validation (debug only allowed in development)
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from healthsignal.config import (
    AppConfig,
    IntelligenceConfig,
    LoggingConfig,
    NarrativeProviderConfig,
    get_config,
    get_model_config,
    load_config_from_env,
    model_config_for,
)


@pytest.fixture(autouse=True)
def clear_config_cache() -> Iterator[None]:
    """Ensure get_config cache is cleared before and after each test."""
    get_config.cache_clear()
    yield
    get_config.cache_clear()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "GEMINI_API_KEY",
        "LOG_LEVEL",
        "PERSIST_INSIGHTS",
        "DETECT_CHRONOTYPE",
        "MEMORY_MIN_LOGS",
        "CHRONOTYPE_MIN_LOGS",
        "INSIGHT_MODEL",
        "MEMORY_MODEL",
    ):
        monkeypatch.delenv(name, raising=False)


def test_load_config_dev_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "development")

    config = load_config_from_env()

    assert config.environment == "development"
    assert config.debug is True
    assert config.logging.format == "console"
    assert config.logging.level == "INFO"
    assert config.narrative.has_credentials is False
    assert config.intelligence.persist_insights is True
    assert config.intelligence.detect_chronotype is False


def test_production_uses_json_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "prod")

    config = load_config_from_env()

    assert config.environment == "production"
    assert config.debug is False
    assert config.logging.format == "json"


def test_logging_level_literal_coercion(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "staging")

    # Unknown level should coerce to INFO
    monkeypatch.setenv("LOG_LEVEL", "unknown")
    config = load_config_from_env()
    assert config.logging.level == "INFO"

    # Known level should pass through
    monkeypatch.setenv("LOG_LEVEL", "error")
    config = load_config_from_env()
    assert config.logging.level == "ERROR"


def test_gemini_key_enables_narrative(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "  test-gemini-key  ")

    config = load_config_from_env()

    assert config.narrative.has_credentials is True
    assert config.narrative.gemini_api_key == "test-gemini-key"


@pytest.mark.parametrize("value", ["", "   ", "your-gemini-api-key-here"])
def test_blank_or_placeholder_key_is_absent(value: str) -> None:
    narrative = NarrativeProviderConfig(gemini_api_key=value)

    assert narrative.gemini_api_key is None
    assert narrative.has_credentials is False


def test_pipeline_settings_parsing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PERSIST_INSIGHTS", "off")
    monkeypatch.setenv("DETECT_CHRONOTYPE", "yes")
    monkeypatch.setenv("MEMORY_MIN_LOGS", "10")
    monkeypatch.setenv("CHRONOTYPE_MIN_LOGS", "9")

    config = load_config_from_env()

    assert config.intelligence.persist_insights is False
    assert config.intelligence.detect_chronotype is True
    assert config.intelligence.memory_min_logs == 10
    assert config.intelligence.chronotype_min_logs == 9


def test_get_model_config_maps_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "development")
    # Override models via env to ensure mapping picks them up
    monkeypatch.setenv("INSIGHT_MODEL", "google-gla:gemini-2.5-flash")
    monkeypatch.setenv("MEMORY_MODEL", "google-gla:gemini-2.0-flash")

    cfg = load_config_from_env()

    insight_cfg = get_model_config("insight")
    memory_cfg = get_model_config("memory")

    assert insight_cfg["model_name"] == cfg.narrative.insight_model
    assert memory_cfg["model_name"] == cfg.narrative.memory_model
    # Shared defaults carried over
    for k in ("temperature", "timeout_seconds", "max_retries"):
        assert insight_cfg[k] == getattr(cfg.narrative, f"default_{k}")
        assert memory_cfg[k] == getattr(cfg.narrative, f"default_{k}")


def test_get_model_config_rejects_unknown_task() -> None:
    with pytest.raises(ValueError, match="Unknown task"):
        get_model_config("anomaly_detection")  # type: ignore[arg-type]


def test_get_config_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "development")

    # First call populates cache
    c1 = get_config()
    c2 = get_config()
    assert c1 is c2  # same object due to lru_cache


def test_app_config_debug_only_in_dev_validation() -> None:
    with pytest.raises(ValueError, match="debug mode is only allowed"):
        AppConfig(
            environment="production",
            debug=True,
            narrative=NarrativeProviderConfig(),
            intelligence=IntelligenceConfig(),
            logging=LoggingConfig(),
        )


def test_chronotype_min_logs_defaults_to_five() -> None:
    assert load_config_from_env().intelligence.chronotype_min_logs == 5


def test_model_config_for_reads_given_config() -> None:
    config = AppConfig(
        narrative=NarrativeProviderConfig(
            briefing_model="google-gla:gemini-2.0-flash", default_temperature=0.1
        ),
        intelligence=IntelligenceConfig(),
        logging=LoggingConfig(),
    )

    briefing_cfg = model_config_for(config, "briefing")

    assert briefing_cfg["model_name"] == "google-gla:gemini-2.0-flash"
    assert briefing_cfg["temperature"] == 0.1
