"""
Settings used by the test suite.
"""

from config.settings import *  # noqa: F401,F403

INSTALLED_APPS = INSTALLED_APPS + ["tests.testapp"]  # noqa: F405

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

USER_ACTIVITY_LOG_CHANNEL = "user_activity"
USER_ACTIVITY_TRUST_X_FORWARDED_FOR = False

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "null": {"class": "logging.NullHandler"},
    },
    "loggers": {
        "user_activity": {
            "handlers": ["null"],
            "level": "INFO",
            "propagate": False,
        },
    },
}
