"""
Receivers logging Django's authentication signals as auth activity.

Connected in UserActivityConfig.ready() when USER_ACTIVITY_LOG_AUTH_EVENTS
is enabled.
"""

from django.contrib.auth import get_user_model
from django.contrib.auth.signals import user_logged_in, user_logged_out, user_login_failed

from .activity_logger import ActivityLogger
from .context import ActivityContext


def _activity_logger(request, user=None) -> ActivityLogger:
    # Logins triggered outside a request (tests, management commands) pass None.
    if request is None:
        return ActivityLogger(ActivityContext.system().with_user(user))
    return ActivityLogger.for_request(request, user=user)


def log_user_logged_in(sender, request, user, **kwargs):
    _activity_logger(request, user).log_auth("login")


def log_user_logged_out(sender, request, user, **kwargs):
    _activity_logger(request, user).log_auth("logout")


def log_user_login_failed(sender, credentials, request=None, **kwargs):
    # credentials are already cleansed by Django; only the login identifier is kept.
    username = credentials.get(get_user_model().USERNAME_FIELD)
    _activity_logger(request).log_auth("login_failed", {"username": username})


def connect_auth_receivers():
    user_logged_in.connect(log_user_logged_in, dispatch_uid="user_activity.login")
    user_logged_out.connect(log_user_logged_out, dispatch_uid="user_activity.logout")
    user_login_failed.connect(log_user_login_failed, dispatch_uid="user_activity.login_failed")
