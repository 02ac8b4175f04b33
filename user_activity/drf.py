"""
Django REST framework integration.

ActivityLoggingMixin logs view/create/update/delete activity for model
viewsets. activity_exception_handler logs errors DRF does not turn into
a response. Enable it with:

    REST_FRAMEWORK = {
        "EXCEPTION_HANDLER": "user_activity.drf.activity_exception_handler",
    }
"""

from rest_framework.response import Response
from rest_framework.views import exception_handler

from .activity_logger import ActivityLogger


class ActivityLoggingMixin:
    """
    Mixin for ModelViewSet (or the generic views) that logs each
    retrieve/create/update/destroy as user activity.

    Update diffs are only available when the model inherits TrackedModel.
    """

    def get_activity_logger(self) -> ActivityLogger:
        return ActivityLogger.for_request(self.request)

    def retrieve(self, request, *args, **kwargs):
        instance = self.get_object()
        self.get_activity_logger().log_viewed(instance)
        serializer = self.get_serializer(instance)
        return Response(serializer.data)

    def perform_create(self, serializer):
        instance = serializer.save()
        self.get_activity_logger().log_created(instance)

    def perform_update(self, serializer):
        instance = serializer.save()
        self.get_activity_logger().log_updated(instance)

    def perform_destroy(self, instance):
        # Snapshot is taken before the row disappears.
        self.get_activity_logger().log_deleted(instance)
        instance.delete()


def activity_exception_handler(exc, context):
    """
    DRF exception handler that logs unhandled errors as user activity.

    Exceptions DRF knows how to render (validation, permission, 404...) are
    returned untouched and not logged.
    """
    response = exception_handler(exc, context)
    if response is None:
        request = context.get("request")
        view = context.get("view")
        activity = ActivityLogger.for_request(request) if request is not None else ActivityLogger()
        activity.log_error(f"Unhandled error in {type(view).__name__}", exc)
    return response
