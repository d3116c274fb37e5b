"""
Tests for configuration loading.
"""

import pytest

from itinerary_pipeline.config import (
    LogLevel,
    PipelineConfig,
    PipelineSettings,
    config,
    initialize_config,
)

ENV_KEYS = [
    "GEMINI_API_KEY",
    "LOG_LEVEL",
    "DAILY_CREDIT_LIMIT",
    "MAX_DURATION_DAYS",
    "REQUEST_TIMEOUT_SECONDS",
]


@pytest.fixture
def isolated_config(monkeypatch):
    """Restore the global configuration and environment after the test."""
    for key in ENV_KEYS:
        # setenv first so teardown also drops values written by load_dotenv
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    for section in ("api", "system", "pipeline", "engine"):
        monkeypatch.setattr(config, section, getattr(config, section))
    return config


def test_initialize_config_loads_custom_env_file(isolated_config, tmp_path):
    env_file = tmp_path / "custom.env"
    env_file.write_text(
        "GEMINI_API_KEY=test-key\n"
        "LOG_LEVEL=DEBUG\n"
        "DAILY_CREDIT_LIMIT=7\n"
        "MAX_DURATION_DAYS=10\n"
        "REQUEST_TIMEOUT_SECONDS=0\n"
    )

    loaded = initialize_config(str(env_file), raise_on_error=True)

    assert loaded is config
    assert loaded.api.gemini_api_key == "test-key"
    assert loaded.system.log_level == LogLevel.DEBUG
    assert loaded.pipeline.daily_credit_limit == 7
    assert loaded.pipeline.max_duration_days == 10
    assert loaded.pipeline.request_timeout_seconds is None


def test_initialize_config_missing_file(isolated_config, tmp_path):
    with pytest.raises(FileNotFoundError):
        initialize_config(str(tmp_path / "missing.env"))


def test_validate_requires_gemini_key(isolated_config):
    settings = PipelineConfig()

    assert settings.validate() is False
    with pytest.raises(PipelineConfig.ConfigurationError):
        settings.validate(raise_error=True)


def test_pipeline_settings_defaults(isolated_config):
    settings = PipelineSettings.from_env()

    assert settings.max_traffic_locations == 3
    assert settings.daily_credit_limit == 5
    assert settings.max_duration_days == 30
    assert settings.request_timeout_seconds == 120.0
