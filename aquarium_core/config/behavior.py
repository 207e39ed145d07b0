"""Fish behavior configuration constants."""

import math

BASE_SPEED = 1.0

# Per water level tables, keyed by WaterQualityLevel value
SPEED_MULTIPLIERS = {
    "clean": 1.2,  # Lively in clean water
    "moderate": 1.0,
    "dirty": 0.6,
    "very_dirty": 0.3,  # Barely moving
}

DISTRESS_LEVELS = {
    "clean": 0.0,
    "moderate": 0.3,
    "dirty": 0.7,
    "very_dirty": 1.0,
}

OPACITY_LEVELS = {
    "clean": 1.0,
    "moderate": 0.9,
    "dirty": 0.7,
    "very_dirty": 0.4,  # Nearly transparent
}

# is_distressed is set strictly above this distress level
DISTRESS_THRESHOLD = 0.2

# Health overrides
DEAD_OPACITY = 0.3
DYING_SPEED_MULTIPLIER = 0.3
HEALTH_FALLOFF_THRESHOLD = 50.0  # Below this, speed scales by health / 50
DYING_HEALTH_THRESHOLD = 20.0

# Personality speed multipliers, keyed by Personality value
PERSONALITY_SPEED_MULTIPLIERS = {
    "active": 1.3,
    "calm": 0.8,
    "playful": 1.1,
    "shy": 0.9,
    "curious": 1.0,
}

# Tank-relative bounds (0-1)
TANK_LEFT = 0.1
TANK_RIGHT = 0.9
TANK_TOP = 0.2
TANK_BOTTOM = 0.8

# Per-tick motion
FLOAT_SPEED = 0.0005  # Dead fish rise toward the surface
SINK_SPEED = 0.001  # Dying fish sink
DEAD_DRIFT_AMPLITUDE = 0.01
DEAD_DRIFT_FREQUENCY = 0.2
DYING_DRIFT_AMPLITUDE = 0.02
DYING_DRIFT_FREQUENCY = 0.5
JITTER_SCALE = 0.1

# Circular swim path
ORBIT_CENTER = 0.5
ORBIT_RADIUS_X = 0.2
ORBIT_RADIUS_Y = 0.15
ORBIT_FREQUENCY_X = 0.5
ORBIT_FREQUENCY_Y = 0.3
PHASE_RANGE = 2 * math.pi

# Timers (seconds)
BEHAVIOR_UPDATE_INTERVAL = 2.0
ANIMATION_PHASE_INTERVAL = 10.0
