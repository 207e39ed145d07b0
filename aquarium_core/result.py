"""Result type for explicit success/failure handling.

Fallible operations in the aquarium (creating a pet, loading a snapshot,
querying the usage source) return a Result instead of raising, so a failed
call can never take down the simulation loop.

Usage:
------
    result = create_pet(name, personality, used_names=names)
    if result.is_ok():
        pet = result.unwrap()
    else:
        logger.warning("Pet not created: %s", result.error)

    # Pattern matching style
    match store.load():
        case Ok(document):
            ...
        case Err(error):
            ...

    # Transform the success value
    name = validate_pet_name(raw, used_names).map(str.upper)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar, Union

T = TypeVar("T")  # Success value type
E = TypeVar("E")  # Error type
U = TypeVar("U")  # Transformed value type


@dataclass(frozen=True)
class Ok(Generic[T]):
    """A successful outcome carrying ``value``."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    @property
    def error(self) -> None:
        """Ok has no error, returns None."""
        return None

    def map(self, f: Callable[[T], U]) -> "Ok[U]":
        """Transform the success value.

        Example:
            Ok(timedelta(minutes=3)).map(lambda d: d.total_seconds())  # Ok(180.0)
        """
        return Ok(f(self.value))

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True)
class Err(Generic[E]):
    """A failed outcome carrying ``error``."""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raises ValueError since Err has no success value."""
        raise ValueError(f"Called unwrap on Err: {self.error}")

    @property
    def value(self) -> None:
        """Err has no value, returns None."""
        return None

    def map(self, f: Callable[[T], U]) -> "Err[E]":
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Union[Ok[T], Err[E]]

