"""
Root URL configuration.

The activity app adds no routes of its own; projects mount their views
here and get request.activity_logger from ActivityLoggerMiddleware.
"""

urlpatterns = []
