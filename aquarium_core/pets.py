"""Pet lifecycle rules: naming, creation and death."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Collection, Optional, Sequence

from aquarium_core.config.defaults import DEFAULT_PET_HEALTH
from aquarium_core.config.pet import MAX_NAME_LENGTH, MIN_NAME_LENGTH
from aquarium_core.exceptions import AppError, ErrorCode
from aquarium_core.models import (
    AppRestriction,
    AppUsageData,
    DeadPet,
    DeathReason,
    Personality,
    Pet,
    PetStatus,
)
from aquarium_core.result import Err, Ok, Result
from aquarium_core.usage import classify_usage

logger = logging.getLogger(__name__)

# Hangul syllables, ASCII letters, digits and whitespace
_PET_NAME_PATTERN = re.compile(r"^[가-힣a-zA-Z0-9\s]*$")
_PACKAGE_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*(\.[a-z][a-z0-9_]*)*$", re.IGNORECASE)


def is_valid_pet_name(name: str) -> bool:
    trimmed = name.strip()
    return (
        MIN_NAME_LENGTH <= len(trimmed) <= MAX_NAME_LENGTH
        and _PET_NAME_PATTERN.match(trimmed) is not None
    )


def is_valid_package_name(package_name: str) -> bool:
    return _PACKAGE_NAME_PATTERN.match(package_name) is not None


def validate_pet_name(name: str, used_names: Collection[str] = ()) -> Result[str, AppError]:
    """Check a proposed name and return it trimmed.

    Names are reserved forever: a name used by any pet, alive or dead,
    cannot be reused.
    """
    trimmed = name.strip()
    if not is_valid_pet_name(trimmed):
        return Err(AppError(
            ErrorCode.INVALID_INPUT,
            f"Pet name must be {MIN_NAME_LENGTH}-{MAX_NAME_LENGTH} letters, digits or spaces",
            {"name": name},
        ))
    if trimmed in used_names:
        return Err(AppError(ErrorCode.NAME_ALREADY_USED, f"Name '{trimmed}' was already used", {"name": trimmed}))
    return Ok(trimmed)


def new_pet_id(now: datetime) -> str:
    return f"pet_{int(now.timestamp() * 1000)}"


def create_pet(
    name: str,
    personality: Personality,
    now: datetime,
    used_names: Collection[str] = (),
    current_pet: Optional[Pet] = None,
) -> Result[Pet, AppError]:
    """Create a full-health pet, refusing when a live pet already exists."""
    if current_pet is not None and current_pet.is_alive:
        return Err(AppError(
            ErrorCode.PET_ALREADY_EXISTS,
            f"'{current_pet.name}' is still alive",
            {"pet_id": current_pet.id},
        ))

    return validate_pet_name(name, used_names).map(
        lambda valid_name: Pet(
            id=new_pet_id(now),
            name=valid_name,
            personality=personality,
            health=DEFAULT_PET_HEALTH,
            status=PetStatus.ALIVE,
            created_at=now,
            last_feed_time=now,
        )
    )


def infer_death_reason(
    samples: Sequence[AppUsageData], restrictions: Sequence[AppRestriction]
) -> DeathReason:
    """Why the pet died, judged from the usage seen on the fatal tick.

    No usage at all means neglect. A restricted app over its daily limit
    means the limit was exceeded. Anything else is general overuse.
    """
    if not any(s.daily_usage.total_seconds() > 0 for s in samples):
        return DeathReason.NEGLECT
    if classify_usage(samples, restrictions).exceeded:
        return DeathReason.TIME_LIMIT_EXCEEDED
    return DeathReason.APP_OVERUSE


def make_dead_pet(pet: Pet, died_at: datetime, cause_of_death: str, death_reason: DeathReason) -> DeadPet:
    """Memorial record for ``pet``; lifetime runs from creation to death."""
    record = DeadPet(
        id=pet.id,
        name=pet.name,
        personality=pet.personality,
        created_at=pet.created_at,
        died_at=died_at,
        cause_of_death=cause_of_death,
        death_reason=death_reason,
        total_lifetime=died_at - pet.created_at,
    )
    logger.info(f"Pet died: {record.name}, cause: {cause_of_death}")
    return record
