"""Tests for runtime settings and logging configuration."""

import logging
from pathlib import Path

import pytest

from aquarium_backend.logging_config import APP_LOGGER_NAME, configure_logging
from aquarium_backend.settings import RuntimeSettings
from aquarium_core.exceptions import ConfigurationError

ENV_KEYS = (
    "AQUARIUM_DATA_DIR",
    "AQUARIUM_USAGE_POLL_SECONDS",
    "AQUARIUM_WATER_TICK_SECONDS",
    "AQUARIUM_BEHAVIOR_TICK_SECONDS",
    "AQUARIUM_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class TestRuntimeSettings:
    def test_defaults(self):
        settings = RuntimeSettings.from_env()
        assert settings.data_dir == Path("data")
        assert settings.usage_poll_seconds == 30.0
        assert settings.water_tick_seconds == 10.0
        assert settings.behavior_tick_seconds == 2.0
        assert settings.log_level is None
        assert settings.state_file == Path("data") / "app_state.json"

    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("AQUARIUM_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("AQUARIUM_USAGE_POLL_SECONDS", "5")
        monkeypatch.setenv("AQUARIUM_LOG_LEVEL", "debug")
        settings = RuntimeSettings.from_env()
        assert settings.data_dir == tmp_path
        assert settings.usage_poll_seconds == 5.0
        assert settings.log_level == "DEBUG"

    @pytest.mark.parametrize("value", ["soon", "0", "-3"])
    def test_invalid_interval(self, monkeypatch, value):
        monkeypatch.setenv("AQUARIUM_WATER_TICK_SECONDS", value)
        with pytest.raises(ConfigurationError):
            RuntimeSettings.from_env()

    def test_invalid_log_level(self, monkeypatch):
        monkeypatch.setenv("AQUARIUM_LOG_LEVEL", "LOUD")
        with pytest.raises(ConfigurationError):
            RuntimeSettings()

    def test_explicit_values_validated(self):
        with pytest.raises(ConfigurationError):
            RuntimeSettings(behavior_tick_seconds=0)


class TestConfigureLogging:
    def test_explicit_level(self):
        app_logger = configure_logging(level="warning")
        assert app_logger.name == APP_LOGGER_NAME
        assert app_logger.level == logging.WARNING
        assert logging.getLogger("aquarium_core").level == logging.WARNING

    def test_env_fallback(self, monkeypatch):
        monkeypatch.setenv("AQUARIUM_LOG_LEVEL", "ERROR")
        configure_logging()
        assert logging.getLogger(APP_LOGGER_NAME).level == logging.ERROR
        assert logging.getLogger("aquarium_backend").level == logging.ERROR

    def test_asyncio_logger_quiet_unless_debug(self):
        configure_logging(level="info")
        assert logging.getLogger("asyncio").level == logging.WARNING
        configure_logging(level="debug")
        assert logging.getLogger("asyncio").level == logging.DEBUG
