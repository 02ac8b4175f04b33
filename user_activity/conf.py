"""
Settings for the user activity app, read from django.conf.settings.
"""

from django.conf import settings

DEFAULT_LOG_CHANNEL = "user_activity"
DEFAULT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_log_channel() -> str:
    """Name of the logger that receives activity records."""
    return getattr(settings, "USER_ACTIVITY_LOG_CHANNEL", DEFAULT_LOG_CHANNEL)


def get_timestamp_format() -> str:
    return getattr(settings, "USER_ACTIVITY_TIMESTAMP_FORMAT", DEFAULT_TIMESTAMP_FORMAT)


def trust_forwarded_for() -> bool:
    """Whether the first X-Forwarded-For entry is taken as the client IP."""
    return bool(getattr(settings, "USER_ACTIVITY_TRUST_X_FORWARDED_FOR", False))


def log_auth_events() -> bool:
    return bool(getattr(settings, "USER_ACTIVITY_LOG_AUTH_EVENTS", True))
