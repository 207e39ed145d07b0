"""App usage restriction configuration constants.

Durations are ``timedelta`` values; the persisted snapshot stores them as
integer milliseconds.
"""

from datetime import timedelta

# Limits applied when a restriction does not set its own
DEFAULT_DAILY_LIMIT = timedelta(minutes=30)
DEFAULT_WEEKLY_LIMIT = timedelta(hours=3)

# Usage/limit ratios used for alerting
EXCEEDED_RATIO = 1.0
APPROACHING_RATIO = 0.8

# Usage source polling
USAGE_MONITORING_INTERVAL = 30.0  # seconds
DEFAULT_USAGE_TIME_RANGE = timedelta(hours=24)

# Usage source caches (seconds)
PERMISSION_CACHE_TTL = 30.0
INSTALLED_APPS_CACHE_TTL = 5 * 60.0
USAGE_STATS_CACHE_TTL = 30.0

# Packages never offered as restrictable apps
SYSTEM_PACKAGE_PREFIXES = ("com.android.", "com.google.android.", "com.samsung.")
OWN_PACKAGE_NAME = "com.calmaquarium"
