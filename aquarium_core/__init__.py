"""Calm Aquarium simulation engine.

Pure simulation logic with no I/O. Key modules:

- health: pure health calculations (decay, restoration, status, survival)
- usage: usage aggregation against restriction limits
- water_quality: time-integrated turbidity with a weekly water change
- fish_behavior: fish motion and look derived from water and health
- pets: naming, creation and death rules
- clock / scheduling: injected time source and interval scheduler

Design note: this module exposes a small, explicit public API via ``__all__``.
Import helpers from their modules directly.
"""

from . import fish_behavior as fish_behavior
from . import health as health
from . import models as models
from . import usage as usage
from . import water_quality as water_quality

__all__ = [
    "fish_behavior",
    "health",
    "models",
    "usage",
    "water_quality",
]
