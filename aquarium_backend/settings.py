"""Runtime settings read from the environment.

All variables use the ``AQUARIUM_`` prefix:

- AQUARIUM_DATA_DIR: directory holding ``app_state.json`` (default ``data``)
- AQUARIUM_USAGE_POLL_SECONDS: usage source polling interval
- AQUARIUM_WATER_TICK_SECONDS: water quality self-tick interval
- AQUARIUM_BEHAVIOR_TICK_SECONDS: fish position tick interval
- AQUARIUM_LOG_LEVEL: log level name
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from aquarium_core.config.behavior import BEHAVIOR_UPDATE_INTERVAL
from aquarium_core.config.usage import USAGE_MONITORING_INTERVAL
from aquarium_core.config.water import WATER_UPDATE_INTERVAL
from aquarium_core.exceptions import ConfigurationError

DEFAULT_DATA_DIR = Path("data")

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _env_seconds(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be a number of seconds, got {raw!r}") from None
    if value <= 0:
        raise ConfigurationError(f"{key} must be positive, got {value}")
    return value


def _env_log_level(key: str) -> Optional[str]:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return None
    level = raw.strip().upper()
    if level not in _LOG_LEVELS:
        raise ConfigurationError(f"{key} must be one of {sorted(_LOG_LEVELS)}, got {raw!r}")
    return level


@dataclass(frozen=True)
class RuntimeSettings:
    """Settings resolved once at startup.

    Each field defaults from its environment variable when the instance is
    created, so tests can pass explicit values instead of patching the env.
    """

    data_dir: Path = field(default_factory=lambda: Path(os.getenv("AQUARIUM_DATA_DIR") or DEFAULT_DATA_DIR))
    usage_poll_seconds: float = field(
        default_factory=lambda: _env_seconds("AQUARIUM_USAGE_POLL_SECONDS", USAGE_MONITORING_INTERVAL)
    )
    water_tick_seconds: float = field(
        default_factory=lambda: _env_seconds("AQUARIUM_WATER_TICK_SECONDS", WATER_UPDATE_INTERVAL)
    )
    behavior_tick_seconds: float = field(
        default_factory=lambda: _env_seconds("AQUARIUM_BEHAVIOR_TICK_SECONDS", BEHAVIOR_UPDATE_INTERVAL)
    )
    log_level: Optional[str] = field(default_factory=lambda: _env_log_level("AQUARIUM_LOG_LEVEL"))

    def __post_init__(self) -> None:
        for name in ("usage_poll_seconds", "water_tick_seconds", "behavior_tick_seconds"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive, got {getattr(self, name)}")

    @property
    def state_file(self) -> Path:
        return self.data_dir / "app_state.json"

    @classmethod
    def from_env(cls) -> "RuntimeSettings":
        settings = cls()
        logging.getLogger(__name__).debug(f"Runtime settings: {settings}")
        return settings
