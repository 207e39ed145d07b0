"""Default values for a fresh install."""

APP_VERSION = "1.0.0"

DEFAULT_PET_HEALTH = 100.0
DEFAULT_WATER_QUALITY = 100.0
DEFAULT_TEMPERATURE = 24.0  # Celsius

DEFAULT_SETTINGS = {
    "theme": "light",
    "notifications_enabled": True,
    "notification_type": "all",
    "sound_enabled": True,
    "haptic_feedback_enabled": True,
    "reminder_interval": 60,  # minutes
    "language": "ko",
}
