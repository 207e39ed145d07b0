"""Fish behavior manager.

Derives the fish's motion and look from water quality, pet health and
personality, and moves it around the tank on a timer.

``update_behavior`` recomputes every flag from its inputs, so a recovered
fish stops looking distressed as soon as the water clears. Only the
position and the animation phase carry over between updates.

Position update priority:
1. Dead: float toward the surface with a slow horizontal drift
2. Dying: sink toward the bottom with a wider drift
3. Distressed: random jitter scaled by distress level
4. Normal: smooth orbit around the tank centre
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Callable, Optional

from aquarium_core.clock import Clock
from aquarium_core.config.behavior import (
    ANIMATION_PHASE_INTERVAL,
    BASE_SPEED,
    BEHAVIOR_UPDATE_INTERVAL,
    DEAD_DRIFT_AMPLITUDE,
    DEAD_DRIFT_FREQUENCY,
    DEAD_OPACITY,
    DISTRESS_LEVELS,
    DISTRESS_THRESHOLD,
    DYING_DRIFT_AMPLITUDE,
    DYING_DRIFT_FREQUENCY,
    DYING_HEALTH_THRESHOLD,
    DYING_SPEED_MULTIPLIER,
    FLOAT_SPEED,
    HEALTH_FALLOFF_THRESHOLD,
    JITTER_SCALE,
    OPACITY_LEVELS,
    ORBIT_CENTER,
    ORBIT_FREQUENCY_X,
    ORBIT_FREQUENCY_Y,
    ORBIT_RADIUS_X,
    ORBIT_RADIUS_Y,
    PERSONALITY_SPEED_MULTIPLIERS,
    PHASE_RANGE,
    SINK_SPEED,
    SPEED_MULTIPLIERS,
    TANK_BOTTOM,
    TANK_LEFT,
    TANK_RIGHT,
    TANK_TOP,
)
from aquarium_core.events.listeners import ListenerSet, Subscription
from aquarium_core.math_utils import Vector2, clamp
from aquarium_core.models import MovementPattern, Pet, WaterQualityLevel
from aquarium_core.scheduling import Scheduler, TimerHandle
from aquarium_core.water_quality import WaterQualityInfo

logger = logging.getLogger(__name__)

_PATTERN_BY_LEVEL = {
    WaterQualityLevel.CLEAN: MovementPattern.NORMAL,
    WaterQualityLevel.MODERATE: MovementPattern.NORMAL,
    WaterQualityLevel.DIRTY: MovementPattern.DISTRESSED,
    WaterQualityLevel.VERY_DIRTY: MovementPattern.DYING,
}


@dataclass
class FishBehaviorState:
    """Motion and visual state of the fish.

    Attributes:
        position: Tank-relative position, each axis 0-1
        velocity: Position change produced by the last position tick
        speed: Effective speed multiplier of the base speed
        opacity: 0-1
        is_distressed: distress_level above 0.2
        distress_level: 0-1
        movement_pattern: Which motion the fish is in
        animation_phase: Phase offset of the normal orbit, 0-2pi
        is_dying: Sinking animation
        is_dead: Floating animation
    """

    position: Vector2 = field(default_factory=lambda: Vector2(ORBIT_CENTER, ORBIT_CENTER))
    velocity: Vector2 = field(default_factory=Vector2)
    speed: float = BASE_SPEED
    opacity: float = 1.0
    is_distressed: bool = False
    distress_level: float = 0.0
    movement_pattern: MovementPattern = MovementPattern.NORMAL
    animation_phase: float = 0.0
    is_dying: bool = False
    is_dead: bool = False

    def copy(self) -> "FishBehaviorState":
        return FishBehaviorState(
            position=self.position.copy(),
            velocity=self.velocity.copy(),
            speed=self.speed,
            opacity=self.opacity,
            is_distressed=self.is_distressed,
            distress_level=self.distress_level,
            movement_pattern=self.movement_pattern,
            animation_phase=self.animation_phase,
            is_dying=self.is_dying,
            is_dead=self.is_dead,
        )


class FishBehaviorManager:
    """Owns the single ``FishBehaviorState`` and its animation timers."""

    def __init__(
        self,
        clock: Clock,
        scheduler: Scheduler,
        rng: Optional[random.Random] = None,
        position_interval: float = BEHAVIOR_UPDATE_INTERVAL,
    ) -> None:
        self._clock = clock
        self._scheduler = scheduler
        self._position_interval = position_interval
        self._rng = rng or random.Random()
        self._state = FishBehaviorState()
        self._listeners: ListenerSet[FishBehaviorState] = ListenerSet("fish_behavior")
        self._monitor_subscription: Optional[Subscription] = None
        self._position_timer: Optional[TimerHandle] = None
        self._phase_timer: Optional[TimerHandle] = None

    # ------------------------------------------------------------------
    # Behavior
    # ------------------------------------------------------------------

    def update_behavior(self, water_quality: WaterQualityInfo, pet: Optional[Pet]) -> None:
        state = self._state
        if pet is None:
            self._apply_dead(state)
            state.distress_level = 0.0
            state.is_distressed = False
            self._notify()
            return

        level = water_quality.level.value
        state.speed = BASE_SPEED * SPEED_MULTIPLIERS[level]
        state.distress_level = DISTRESS_LEVELS[level]
        state.is_distressed = state.distress_level > DISTRESS_THRESHOLD
        state.opacity = OPACITY_LEVELS[level]
        state.movement_pattern = _PATTERN_BY_LEVEL[water_quality.level]
        state.is_dying = state.movement_pattern is MovementPattern.DYING
        state.is_dead = False

        if pet.health <= 0:
            self._apply_dead(state)
        elif pet.health <= DYING_HEALTH_THRESHOLD:
            state.is_dying = True
            state.movement_pattern = MovementPattern.DYING
            state.speed *= DYING_SPEED_MULTIPLIER
        elif pet.health <= HEALTH_FALLOFF_THRESHOLD:
            state.speed *= pet.health / HEALTH_FALLOFF_THRESHOLD

        # TODO: curious/playful should also widen the swim range, not just the speed
        state.speed *= PERSONALITY_SPEED_MULTIPLIERS[pet.personality.value]

        logger.debug(
            f"Behavior updated: {state.movement_pattern.value}, speed {state.speed:.2f}, "
            f"distress {state.distress_level:.1f}"
        )
        self._notify()

    @staticmethod
    def _apply_dead(state: FishBehaviorState) -> None:
        state.is_dead = True
        state.is_dying = False
        state.movement_pattern = MovementPattern.DEAD
        state.speed = 0.0
        state.opacity = DEAD_OPACITY

    def update_position(self) -> None:
        """Move the fish one tick according to its current flags."""
        state = self._state
        previous = state.position.copy()
        t = self._clock.monotonic()
        position = state.position

        if state.is_dead:
            position.y = max(position.y - FLOAT_SPEED, TANK_TOP)
            position.x += math.sin(t * DEAD_DRIFT_FREQUENCY) * DEAD_DRIFT_AMPLITUDE
        elif state.is_dying:
            position.y = min(position.y + SINK_SPEED, TANK_BOTTOM)
            position.x += math.sin(t * DYING_DRIFT_FREQUENCY) * DYING_DRIFT_AMPLITUDE
        elif state.movement_pattern is MovementPattern.DISTRESSED:
            intensity = state.distress_level * JITTER_SCALE
            position.x += (self._rng.random() - 0.5) * intensity
            position.y += (self._rng.random() - 0.5) * intensity
        else:
            phase = state.animation_phase
            position.x = ORBIT_CENTER + math.cos(t * ORBIT_FREQUENCY_X + phase) * ORBIT_RADIUS_X
            position.y = ORBIT_CENTER + math.sin(t * ORBIT_FREQUENCY_Y + phase) * ORBIT_RADIUS_Y

        state.position = position.clamped(TANK_LEFT, TANK_RIGHT, TANK_TOP, TANK_BOTTOM)
        state.velocity = state.position - previous

    def randomize_phase(self) -> None:
        self._state.animation_phase = self._rng.uniform(0.0, PHASE_RANGE)

    def reset_behavior_state(self) -> None:
        """Back to a centred, healthy fish (used after a new pet is created)."""
        self._state = FishBehaviorState()
        self._notify()
        logger.info("Fish behavior state reset")

    # ------------------------------------------------------------------
    # Queries and test hooks
    # ------------------------------------------------------------------

    def get_current_behavior_state(self) -> FishBehaviorState:
        return self._state.copy()

    def set_position(self, x: float, y: float) -> None:
        self._state.position = Vector2(clamp(x, 0.0, 1.0), clamp(y, 0.0, 1.0))
        self._notify()

    # ------------------------------------------------------------------
    # Monitoring
    # ------------------------------------------------------------------

    def start_behavior_monitoring(self, callback: Callable[[FishBehaviorState], None]) -> None:
        if self.is_monitoring():
            self.stop_behavior_monitoring()

        self._monitor_subscription = self._listeners.subscribe(callback)
        logger.info("Fish behavior monitoring started")
        self._notify()
        self._position_timer = self._scheduler.call_every(
            self._position_interval, self._position_tick, name="fish_position"
        )
        self._phase_timer = self._scheduler.call_every(
            ANIMATION_PHASE_INTERVAL, self.randomize_phase, name="fish_phase"
        )

    def _position_tick(self) -> None:
        self.update_position()
        self._notify()

    def stop_behavior_monitoring(self) -> None:
        for timer in (self._position_timer, self._phase_timer):
            if timer is not None:
                timer.cancel()
        self._position_timer = None
        self._phase_timer = None
        if self._monitor_subscription is not None:
            self._monitor_subscription.cancel()
            self._monitor_subscription = None
            logger.info("Fish behavior monitoring stopped")

    def is_monitoring(self) -> bool:
        return self._position_timer is not None

    def subscribe(self, listener: Callable[[FishBehaviorState], None]) -> Subscription:
        return self._listeners.subscribe(listener)

    def _notify(self) -> None:
        if len(self._listeners):
            self._listeners.notify(self._state.copy())
