from types import SimpleNamespace
from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.exceptions import NotAuthenticated, ValidationError as DRFValidationError

from core.audit import AuditService, actor_label
from core.cache_service import CacheService
from core.exception_handler import queue_exception_handler
from core.models import AuditLogEntry
from queue_management import exceptions


class CacheServiceTest(TestCase):  # Cache wrapper
    def test_round_trip(self):  # Test set then get
        CacheService.set("core-test-key", {"a": 1}, 60)
        self.assertEqual(CacheService.get("core-test-key"), {"a": 1})

        CacheService.delete_many(["core-test-key"])
        self.assertIsNone(CacheService.get("core-test-key"))

    def test_get_or_set(self):  # Test get_or_set calls back once
        callback = mock.Mock(return_value=42)
        CacheService.delete_many(["core-lazy-key"])

        self.assertEqual(CacheService.get_or_set("core-lazy-key", callback, 60), 42)
        self.assertEqual(CacheService.get_or_set("core-lazy-key", callback, 60), 42)
        callback.assert_called_once()

    def test_backend_failures_are_swallowed(self):  # Test cache outage degrades to miss
        with mock.patch("core.cache_service.cache") as broken:
            broken.get.side_effect = ConnectionError("cache down")
            broken.set.side_effect = ConnectionError("cache down")
            broken.delete_many.side_effect = ConnectionError("cache down")

            self.assertIsNone(CacheService.get("key"))
            CacheService.set("key", "value")
            CacheService.delete_many(["key"])


class AuditServiceTest(TestCase):  # Audit trail
    def test_record(self):  # Test audit row written
        entry = AuditService.record("create", "THERAPY_QUEUE", resource_id="q-1", actor="alice", clinic_id="c-1")

        self.assertEqual(entry.actor, "alice")
        self.assertEqual(AuditLogEntry.objects.filter(resource_id="q-1").count(), 1)

    def test_record_defaults_to_system_actor(self):  # Test system actor
        entry = AuditService.record("reorder", "THERAPY_QUEUE")
        self.assertEqual(entry.actor, "system")
        self.assertEqual(entry.details, {})

    def test_record_failure_is_swallowed(self):  # Test audit failure never raises
        with mock.patch.object(AuditLogEntry.objects, "create", side_effect=RuntimeError("db down")):
            self.assertIsNone(AuditService.record("create", "QUEUE_ENTRY", resource_id="e-1"))

    def test_record_on_commit(self):  # Test deferred audit write
        with self.captureOnCommitCallbacks(execute=True):
            AuditService.record_on_commit("delete", "QUEUE_ENTRY", resource_id="e-2")
        self.assertTrue(AuditLogEntry.objects.filter(resource_id="e-2", action_type="delete").exists())

    def test_actor_label(self):  # Test actor label
        user = get_user_model().objects.create_user(username="nurse", password="test123")
        self.assertEqual(actor_label(user), "nurse")
        self.assertEqual(actor_label(None), "system")
        self.assertEqual(actor_label(SimpleNamespace(is_authenticated=False)), "system")


class ExceptionHandlerTest(TestCase):  # API error rendering
    def test_queue_error(self):  # Test queue error mapping
        response = queue_exception_handler(exceptions.CapacityExceeded(max_capacity=3), {})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["code"], "capacity_exceeded")
        self.assertEqual(response.data["details"], {"max_capacity": 3})

    def test_drf_validation_error(self):  # Test serializer error mapping
        response = queue_exception_handler(DRFValidationError({"priority": ["A valid integer is required."]}), {})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "validation_error")
        self.assertEqual(response.data["error"], "priority: A valid integer is required.")

    def test_drf_api_exception(self):  # Test other DRF errors
        response = queue_exception_handler(NotAuthenticated(), {})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data["code"], "not_authenticated")

    def test_unexpected_error_left_to_django(self):  # Test unknown errors propagate
        self.assertIsNone(queue_exception_handler(RuntimeError("boom"), {}))
