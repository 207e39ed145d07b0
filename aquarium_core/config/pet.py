"""Pet health configuration constants."""

# Health bounds
MAX_HEALTH = 100.0
MIN_HEALTH = 0.0

# Status thresholds (inclusive: health exactly at a threshold takes the worse status)
CRITICAL_HEALTH_THRESHOLD = 20.0
AT_RISK_HEALTH_THRESHOLD = 50.0

# Health change per minute
HEALTH_DECAY_RATE = 1.0  # Usage-driven decay at a usage/limit ratio of 1.0
HEALTH_RESTORE_RATE = 0.5  # Recovery while restricted apps are unused

# Passive neglect decays at a tenth of the usage-driven rate
NATURAL_DECAY_FACTOR = 0.1

# Usage/limit ratio cap: overuse accelerates decay at most 2x
MAX_USAGE_DECAY_RATIO = 2.0

# Decay applied when an app has no allowance at all (limit <= 0)
MAX_HEALTH_DECAY = MAX_HEALTH

# Name constraints
MIN_NAME_LENGTH = 1
MAX_NAME_LENGTH = 12

# Behavior pattern ranges (derived from health ratio)
MOVEMENT_SPEED_RANGE = (0.1, 1.0)
ACTIVITY_LEVEL_RANGE = (0.2, 1.0)
RESPONSE_TO_TOUCH_RANGE = (0.1, 1.0)
ACTIVITY_LEVEL_FACTOR = 1.2
RESPONSE_TO_TOUCH_FACTOR = 0.8
