"""Calm Aquarium exception hierarchy and typed failure values.

Exceptions are reserved for programming errors and for the narrow places
where a library raises; fallible domain operations return
``Err(AppError(...))`` instead (see ``aquarium_core.result``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class AquariumError(Exception):
    """Root of all Calm Aquarium exceptions."""


class SimulationError(AquariumError):
    """Errors raised inside the simulation managers."""


class PersistenceError(AquariumError):
    """Errors during snapshot load / save / import."""


class UsageSourceError(AquariumError):
    """The platform usage-stats bridge failed or is unavailable."""


class ConfigurationError(AquariumError):
    """Invalid runtime configuration."""


class ErrorCode(Enum):
    PERMISSION_DENIED = "PERMISSION_DENIED"
    STORAGE_ERROR = "STORAGE_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    PET_ALREADY_EXISTS = "PET_ALREADY_EXISTS"
    NAME_ALREADY_USED = "NAME_ALREADY_USED"
    PLATFORM_NOT_SUPPORTED = "PLATFORM_NOT_SUPPORTED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass(frozen=True)
class AppError:
    """Typed failure carried inside ``Err``.

    Attributes:
        code: Machine-readable failure category
        message: Human-readable description
        context: Optional extra details for logging
    """

    code: ErrorCode
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"
