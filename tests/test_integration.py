"""
Tests for the Django and DRF integration: middleware, auth signal
receivers, viewset mixin, exception handler and log formatter.
"""

import json
import logging
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.contrib.auth.signals import user_login_failed
from django.http import HttpResponse
from django.test import RequestFactory, TestCase
from rest_framework.exceptions import NotFound
from rest_framework.test import APIRequestFactory, force_authenticate

from user_activity.activity_logger import ActivityLogger
from user_activity.drf import activity_exception_handler
from user_activity.log_formatters import ActivityJsonFormatter
from user_activity.middleware import ActivityLoggerMiddleware
from tests.testapp.models import Document, Order
from tests.testapp.views import OrderViewSet

User = get_user_model()

CHANNEL = "user_activity"


class MiddlewareTest(TestCase):

    def test_request_gets_bound_logger(self):
        user = User.objects.create_user(username="ann", email="ann@example.com", password="pw")
        request = RequestFactory().get("/orders", REMOTE_ADDR="10.0.0.2")
        request.user = user

        def view(request):
            request.activity_logger.log_data("export", "Order")
            return HttpResponse("ok")

        with self.assertLogs(CHANNEL, level="INFO") as logs:
            response = ActivityLoggerMiddleware(view)(request)

        self.assertEqual(response.status_code, 200)
        activity = logs.records[0].activity
        self.assertEqual(activity["user"]["email"], "ann@example.com")
        self.assertEqual(activity["user"]["ip"], "10.0.0.2")
        self.assertEqual(activity["request"]["url"], "http://testserver/orders")


    def test_middleware_stack_without_activity(self):
        with self.assertNoLogs(CHANNEL, level="DEBUG"):
            response = self.client.get("/orders")
        self.assertEqual(response.status_code, 404)
        self.assertIsNotNone(response.wsgi_request.activity_logger)


class AuthReceiverTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(username="ann", email="ann@example.com", password="pw")

    def test_login(self):
        with self.assertLogs(CHANNEL, level="INFO") as logs:
            self.assertTrue(self.client.login(username="ann", password="pw"))

        record = logs.records[0]
        self.assertEqual(record.getMessage(), "Logged in successfully")
        self.assertEqual(record.activity["event"]["action"], "auth_login")
        self.assertEqual(record.activity["user"]["id"], self.user.pk)

    def test_login_failed_logs_username_only(self):
        with self.assertLogs(CHANNEL, level="INFO") as logs:
            self.assertFalse(self.client.login(username="ann", password="wrong"))

        record = logs.records[0]
        self.assertEqual(record.getMessage(), "Failed login attempt")
        self.assertEqual(record.activity["user"]["id"], "system")
        self.assertEqual(record.activity["additional"], {"username": "ann"})

    def test_login_failed_uses_username_field(self):
        credentials = {"email": "ann@example.com", "password": "********"}
        with mock.patch.object(User, "USERNAME_FIELD", "email"):
            with self.assertLogs(CHANNEL, level="INFO") as logs:
                user_login_failed.send(sender=__name__, credentials=credentials, request=None)

        self.assertEqual(logs.records[0].activity["additional"], {"username": "ann@example.com"})

    def test_logout(self):
        self.client.force_login(self.user)
        with self.assertLogs(CHANNEL, level="INFO") as logs:
            self.client.logout()

        record = logs.records[0]
        self.assertEqual(record.activity["event"]["action"], "auth_logout")
        self.assertEqual(record.activity["user"]["email"], "ann@example.com")


class ActivityLoggingMixinTest(TestCase):

    def setUp(self):
        self.factory = APIRequestFactory()
        self.user = User.objects.create_user(username="ann", email="ann@example.com", password="pw")

    def call(self, actions, method, path, data=None, **kwargs):
        request = getattr(self.factory, method)(path, data, format="json")
        force_authenticate(request, user=self.user)
        with self.assertLogs(CHANNEL, level="INFO") as logs:
            response = OrderViewSet.as_view(actions)(request, **kwargs)
        self.assertEqual(len(logs.records), 1)
        return response, logs.records[0]

    def test_create(self):
        response, record = self.call({"post": "create"}, "post", "/orders/", {"reference": "A-1"})
        self.assertEqual(response.status_code, 201)
        order_id = response.data["id"]
        self.assertEqual(record.getMessage(), f"Created new Order #{order_id}")
        self.assertEqual(set(record.activity["additional"]["attributes"]), {"reference", "status", "total"})
        self.assertEqual(record.activity["user"]["id"], self.user.pk)

    def test_retrieve(self):
        order = Order.objects.create(reference="A-1")
        response, record = self.call({"get": "retrieve"}, "get", f"/orders/{order.pk}/", pk=order.pk)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(record.getMessage(), f"Viewed Order #{order.pk}")

    def test_partial_update(self):
        order = Order.objects.create(reference="A-1", status="pending")
        response, record = self.call(
            {"patch": "partial_update"}, "patch", f"/orders/{order.pk}/", {"status": "approved"}, pk=order.pk
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(record.getMessage(), f"Updated Order #{order.pk}: status from 'pending' to 'approved'")

    def test_destroy_logs_before_delete(self):
        order = Order.objects.create(reference="A-1")
        response, record = self.call({"delete": "destroy"}, "delete", f"/orders/{order.pk}/", pk=order.pk)
        self.assertEqual(response.status_code, 204)
        self.assertEqual(record.activity["additional"]["deleted_attributes"]["reference"], "A-1")
        self.assertFalse(Order.objects.filter(pk=order.pk).exists())


class ExceptionHandlerTest(TestCase):

    def test_unhandled_error_is_logged(self):
        request = APIRequestFactory().get("/orders/")
        try:
            raise RuntimeError("boom")
        except RuntimeError as exc:
            error = exc

        with self.assertLogs(CHANNEL, level="ERROR") as logs:
            response = activity_exception_handler(error, {"request": request, "view": OrderViewSet()})

        self.assertIsNone(response)
        record = logs.records[0]
        self.assertEqual(record.getMessage(), "Unhandled error in OrderViewSet")
        self.assertEqual(record.activity["additional"]["exception"]["message"], "boom")

    def test_handled_error_is_not_logged(self):
        request = APIRequestFactory().get("/orders/")
        with self.assertNoLogs(CHANNEL, level="DEBUG"):
            response = activity_exception_handler(NotFound(), {"request": request, "view": OrderViewSet()})
        self.assertEqual(response.status_code, 404)


class ActivityJsonFormatterTest(TestCase):

    def make_record(self, **attrs):
        record = logging.LogRecord(CHANNEL, logging.WARNING, __file__, 1, "Approved Order #%s", (42,), None)
        for name, value in attrs.items():
            setattr(record, name, value)
        return record

    def test_activity_record(self):
        record = self.make_record(activity={
            "event": {"action": "status_approve_order"},
            "additional": {
                "total": Decimal("12.50"),
                "at": datetime(2024, 1, 2, 3, 4, 5, tzinfo=dt_timezone.utc),
            },
        })
        payload = json.loads(ActivityJsonFormatter().format(record))
        self.assertEqual(payload["level"], "warning")
        self.assertEqual(payload["message"], "Approved Order #42")
        self.assertEqual(payload["activity"]["additional"]["total"], "12.50")
        self.assertEqual(payload["activity"]["additional"]["at"], "2024-01-02T03:04:05Z")

    def test_plain_record(self):
        payload = json.loads(ActivityJsonFormatter().format(self.make_record()))
        self.assertNotIn("activity", payload)

    def test_file_and_binary_fields(self):
        document = Document(pk=3, title="Report", upload="documents/report.pdf", checksum=memoryview(b"abc"))
        with self.assertLogs(CHANNEL, level="INFO") as logs:
            ActivityLogger().log_deleted(document)

        payload = json.loads(ActivityJsonFormatter().format(logs.records[0]))
        snapshot = payload["activity"]["additional"]["deleted_attributes"]
        self.assertEqual(snapshot["upload"], "documents/report.pdf")
        self.assertEqual(snapshot["checksum"], "abc")
        self.assertEqual(payload["message"], "Deleted Document #3")
