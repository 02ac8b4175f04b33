"""
User activity logger.

Formats user activity (authentication events, CRUD actions, data
import/export, status transitions, errors) from a fixed table of message
templates and writes one structured record per call to the activity
logging channel.
"""

import logging
import re
import traceback
from types import MappingProxyType
from typing import Any, Optional

from django.utils import timezone

from . import conf
from .context import ActivityContext
from .subjects import as_subject


class UnknownActionError(ValueError):
    """Raised when an action is not defined for its category."""
    pass


MESSAGES = MappingProxyType({
    "auth": MappingProxyType({
        "login": "Logged in successfully",
        "logout": "Logged out",
        "login_failed": "Failed login attempt",
        "password_reset": "Reset their password",
        "password_changed": "Changed their password",
        "two_factor_enabled": "Enabled two-factor authentication",
        "two_factor_disabled": "Disabled two-factor authentication",
    }),
    "crud": MappingProxyType({
        "view": "Viewed {model} #{id}",
        "create": "Created new {model} #{id}",
        "update": "Updated {model} #{id}: {changes}",
        "delete": "Deleted {model} #{id}",
        "restore": "Restored {model} #{id}",
        "force_delete": "Permanently deleted {model} #{id}",
    }),
    "data": MappingProxyType({
        "export": "Exported {model} data",
        "import": "Imported {model} data",
        "download": "Downloaded {model} #{id}",
        "upload": "Uploaded new {model}",
    }),
    "status": MappingProxyType({
        "activate": "Activated {model} #{id}",
        "deactivate": "Deactivated {model} #{id}",
        "approve": "Approved {model} #{id}",
        "reject": "Rejected {model} #{id}",
        "suspend": "Suspended {model} #{id}",
        "unsuspend": "Unsuspended {model} #{id}",
    }),
})

LEVELS = {
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}
DEFAULT_LEVEL = "info"

NO_CHANGES = "no changes"

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_REPEATED_UNDERSCORES = re.compile(r"_+")


def _timestamp() -> str:
    now = timezone.now()
    if timezone.is_aware(now):
        now = timezone.localtime(now)
    return now.strftime(conf.get_timestamp_format())


def get_template(category: str, action: str) -> str:
    """
    Return the message template for a category/action pair.

    Raises:
        UnknownActionError: If the pair is not in MESSAGES.
    """
    try:
        return MESSAGES[category][action]
    except KeyError:
        raise UnknownActionError(f"Invalid {category} action: {action}") from None


def normalize_level(level: Optional[str]) -> str:
    """Return level if it is a known severity, otherwise the default."""
    return level if level in LEVELS else DEFAULT_LEVEL


def snake_case(value: str) -> str:
    """crud_update_InvoiceLine -> crud_update_invoice_line"""
    value = _CAMEL_BOUNDARY.sub("_", value.replace(" ", "_"))
    return _REPEATED_UNDERSCORES.sub("_", value).lower()


def _display(value) -> str:
    return "" if value is None else str(value)


def describe_changes(changes: dict) -> str:
    """
    Render a field diff as "<field> from '<old>' to '<new>'" items joined
    with ", ", in the order the diff lists them.
    """
    if not changes:
        return NO_CHANGES
    return ", ".join(
        f"{field} from '{_display(values.get('from'))}' to '{_display(values.get('to'))}'"
        for field, values in changes.items()
    )


def describe_exception(exception: BaseException) -> dict:
    """Serialize an exception for the "exception" entry of a record."""
    frames = traceback.extract_tb(exception.__traceback__)
    last_frame = frames[-1] if frames else None
    exc_type = type(exception)
    return {
        "type": f"{exc_type.__module__}.{exc_type.__qualname__}",
        "message": str(exception),
        "code": getattr(exception, "code", 0),
        "file": last_frame.filename if last_frame else None,
        "line": last_frame.lineno if last_frame else None,
        "trace": "".join(
            traceback.format_exception(exc_type, exception, exception.__traceback__)
        ),
    }


class ActivityLogger:
    """
    Emits user activity records for one actor/request context.

    Example:
        >>> activity = ActivityLogger.for_request(request)
        >>> activity.log_auth("login")
        >>> activity.log_updated(order)
        >>> activity.log_data("export", "Order")
    """

    def __init__(self, context: Optional[ActivityContext] = None, sink: Optional[logging.Logger] = None):
        self.context = context or ActivityContext.system()
        self.sink = sink or logging.getLogger(conf.get_log_channel())

    @classmethod
    def for_request(cls, request, user=None, sink: Optional[logging.Logger] = None) -> "ActivityLogger":
        """Build a logger bound to the actor and metadata of a request."""
        return cls(ActivityContext.from_request(request, user=user), sink=sink)

    # --- Authentication ---

    def log_auth(self, action: str, extra: Optional[dict] = None, level: str = DEFAULT_LEVEL):
        message = get_template("auth", action)
        self._log(f"auth_{action}", message, extra=extra, level=level)

    # --- CRUD ---

    def log_viewed(self, subject, extra: Optional[dict] = None, level: str = DEFAULT_LEVEL):
        self._log_model_action(subject, "view", extra, level=level)

    def log_created(self, subject, extra: Optional[dict] = None, level: str = DEFAULT_LEVEL):
        """Log a creation, capturing the subject's writable attribute values."""
        subject = as_subject(subject)
        attributes = subject.activity_attributes()
        fillable = subject.activity_fillable()
        captured = {name: attributes[name] for name in fillable if name in attributes}
        self._log_model_action(subject, "create", {"attributes": captured, **(extra or {})}, level=level)

    def log_updated(self, subject, extra: Optional[dict] = None, level: str = DEFAULT_LEVEL):
        """Log an update together with the before/after value of each changed field."""
        subject = as_subject(subject)
        changes = {
            field: {"from": values.get("from"), "to": values.get("to")}
            for field, values in subject.activity_changes().items()
        }
        self._log_model_action(subject, "update", {"changes": changes, **(extra or {})}, level=level)

    def log_deleted(self, subject, extra: Optional[dict] = None, level: str = DEFAULT_LEVEL):
        """
        Log a deletion with a snapshot of the subject's attributes.

        Call this before the record is actually deleted.
        """
        self._log_deletion(subject, "delete", extra, level)

    def log_force_deleted(self, subject, extra: Optional[dict] = None, level: str = DEFAULT_LEVEL):
        self._log_deletion(subject, "force_delete", extra, level)

    def log_restored(self, subject, extra: Optional[dict] = None, level: str = DEFAULT_LEVEL):
        self._log_model_action(subject, "restore", extra, level=level)

    # --- Status transitions ---

    def log_status(self, subject, action: str, extra: Optional[dict] = None, level: str = DEFAULT_LEVEL):
        self._log_model_action(subject, action, extra, category="status", level=level)

    # --- Data operations ---

    def log_data(
        self,
        action: str,
        model_type: str,
        model_id: Any = None,
        extra: Optional[dict] = None,
        level: str = DEFAULT_LEVEL,
    ):
        """
        Log an export/import/download/upload of a model type.

        Without a model_id, templates that name a record drop their
        " #{id}" part.
        """
        message = get_template("data", action).replace("{model}", str(model_type))
        if model_id is not None and model_id != "":
            message = message.replace("{id}", str(model_id))
        else:
            message = message.replace(" #{id}", "").replace("{id}", "")

        self._log(f"data_{action}_{model_type}", message, extra=extra, level=level)

    # --- Errors ---

    def log_error(self, description: str, exception: Optional[BaseException] = None, extra: Optional[dict] = None):
        """Log an error event. Always written at "error" severity."""
        additional = dict(extra or {})
        if exception is not None:
            additional["exception"] = describe_exception(exception)

        self._log("error", description, extra=additional, level="error")

    # --- Internals ---

    def _log_deletion(self, subject, action: str, extra: Optional[dict], level: str):
        subject = as_subject(subject)
        snapshot = dict(subject.activity_attributes())
        self._log_model_action(subject, action, {"deleted_attributes": snapshot, **(extra or {})}, level=level)

    def _log_model_action(self, subject, action: str, extra: Optional[dict] = None,
                          category: str = "crud", level: str = DEFAULT_LEVEL):
        template = get_template(category, action)
        subject = as_subject(subject)

        model_name = subject.activity_type_name()
        message = template.replace("{model}", model_name)
        message = message.replace("{id}", str(subject.activity_key()))

        if action == "update" and "{changes}" in message:
            changes = (extra or {}).get("changes") or {}
            message = message.replace("{changes}", describe_changes(changes))

        self._log(f"{category}_{action}_{model_name}", message, subject=subject, extra=extra, level=level)

    def _log(self, action: str, description: str, subject=None,
             extra: Optional[dict] = None, level: str = DEFAULT_LEVEL):
        context = self.context
        record = {
            "event": {
                "action": snake_case(action),
                "description": description,
                "timestamp": _timestamp(),
            },
            "user": {
                "id": context.user_id,
                "email": context.user_email,
                "ip": context.ip,
            },
            "request": {
                "url": context.url,
                "method": context.method,
            },
        }

        if subject is not None:
            record["model"] = {
                "type": subject.activity_type(),
                "id": subject.activity_key(),
            }

        if extra:
            record["additional"] = dict(extra)

        level = normalize_level(level)
        self.sink.log(LEVELS[level], description, extra={"activity": record})
