"""
Request middleware exposing an ActivityLogger on each request.
"""

from django.utils.functional import SimpleLazyObject

from .activity_logger import ActivityLogger


class ActivityLoggerMiddleware:
    """
    Set ``request.activity_logger`` to a logger bound to the request.

    Must come after AuthenticationMiddleware. The logger is built on first
    use, so it picks up request.user as it is at that point.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.activity_logger = SimpleLazyObject(lambda: ActivityLogger.for_request(request))
        return self.get_response(request)
