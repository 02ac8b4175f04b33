"""
Actor and request metadata attached to every activity record.

The context is built once per request and passed to ActivityLogger
explicitly, so the logger works the same inside and outside a request.
"""

from dataclasses import dataclass, replace
from typing import Any, Optional

from . import conf

SYSTEM = "system"


@dataclass(frozen=True)
class ActivityContext:
    """Who performed the action and from which request."""
    user_id: Any = SYSTEM
    user_email: str = SYSTEM
    ip: Optional[str] = None
    url: Optional[str] = None
    method: Optional[str] = None

    @classmethod
    def system(cls) -> "ActivityContext":
        """Context for actions with no authenticated user and no request."""
        return cls()

    @classmethod
    def from_request(cls, request, user=None) -> "ActivityContext":
        """
        Build a context from a Django HttpRequest or a DRF Request.

        Args:
            request: The in-flight request.
            user: Actor to use instead of request.user, e.g. during login
                before request.user is updated.
        """
        context = cls(
            ip=get_client_ip(request),
            url=get_request_url(request),
            method=request.method,
        )
        return context.with_user(user if user is not None else getattr(request, "user", None))

    def with_user(self, user) -> "ActivityContext":
        """Return a copy of this context bound to user (or to "system")."""
        if user is None or not getattr(user, "is_authenticated", False):
            return replace(self, user_id=SYSTEM, user_email=SYSTEM)
        return replace(self, user_id=user.pk, user_email=getattr(user, "email", SYSTEM))


def get_request_url(request) -> Optional[str]:
    """Absolute URL with query string, or the bare path for synthetic requests without a host."""
    if "HTTP_HOST" not in request.META and "SERVER_NAME" not in request.META:
        return request.get_full_path() or None
    return request.build_absolute_uri()


def get_client_ip(request) -> Optional[str]:
    """Client IP from REMOTE_ADDR, or X-Forwarded-For when it is trusted."""
    if conf.trust_forwarded_for():
        forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR")
