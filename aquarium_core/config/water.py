"""Water quality (turbidity) configuration constants."""

# Turbidity bounds, in percent (100 = fully murky)
MAX_TURBIDITY = 100.0
MIN_TURBIDITY = 0.0

# Value restored by a water change (weekly or manual)
DEFAULT_TURBIDITY = 100.0

# Turbidity change per minute
TURBIDITY_INCREASE_RATE = 2.0  # While restricted apps are in use
TURBIDITY_DECREASE_RATE = 0.5  # While they are not

# Level thresholds (exclusive upper bounds)
CLEAN_THRESHOLD = 20.0
MODERATE_THRESHOLD = 50.0
DIRTY_THRESHOLD = 80.0

# Weekly water change: Sunday 00:00 local time (Monday=0 ... Sunday=6)
WEEKLY_RESET_WEEKDAY = 6
WEEKLY_RESET_HOUR = 0

# Self-tick interval while monitoring (seconds)
WATER_UPDATE_INTERVAL = 10.0

# Decimal places kept in published turbidity values
TURBIDITY_PRECISION = 2
