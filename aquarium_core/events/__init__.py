"""Event dispatch for the aquarium.

- EventBus: typed domain events from the state container
- ListenerSet / Subscription: snapshot listeners owned by each manager
"""

from aquarium_core.events.domain_events import (
    GameStatsChangedEvent,
    PetCreatedEvent,
    PetDiedEvent,
    PetHealthChangedEvent,
    RestrictionsChangedEvent,
    SettingsChangedEvent,
)
from aquarium_core.events.event_bus import EventBus
from aquarium_core.events.listeners import ListenerSet, Subscription

__all__ = [
    "EventBus",
    "GameStatsChangedEvent",
    "ListenerSet",
    "PetCreatedEvent",
    "PetDiedEvent",
    "PetHealthChangedEvent",
    "RestrictionsChangedEvent",
    "SettingsChangedEvent",
    "Subscription",
]
