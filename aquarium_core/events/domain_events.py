"""Domain event definitions.

Events are frozen dataclasses carrying everything a handler needs; handlers
never call back into the component that emitted them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Tuple

if TYPE_CHECKING:
    from aquarium_core.models import AppRestriction, AppSettings, DeadPet, GameStats, Pet, PetStatus


@dataclass(frozen=True)
class PetCreatedEvent:
    """A new live pet was created."""

    pet: "Pet"


@dataclass(frozen=True)
class PetHealthChangedEvent:
    """The live pet's health (and possibly status) changed.

    Attributes:
        pet: The pet after the change
        previous_health: Health before the change
        previous_status: Status before the change
    """

    pet: "Pet"
    previous_health: float
    previous_status: "PetStatus"


@dataclass(frozen=True)
class PetDiedEvent:
    """The live pet died and its memorial record was created."""

    dead_pet: "DeadPet"


@dataclass(frozen=True)
class RestrictionsChangedEvent:
    restrictions: Tuple["AppRestriction", ...]


@dataclass(frozen=True)
class SettingsChangedEvent:
    settings: "AppSettings"


@dataclass(frozen=True)
class GameStatsChangedEvent:
    stats: "GameStats"
