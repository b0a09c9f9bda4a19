import uuid
from datetime import timedelta
from unittest import mock

from django.core.cache import cache
from django.db import OperationalError
from django.test import TestCase
from django.utils import timezone

from core.models import AuditLogEntry
from queue_management import exceptions
from queue_management.models import QueueEntry, QueueStatus, TherapyQueue, TherapyType
from queue_management.registry import QueueRegistry
from queue_management.services import QueueOrderingEngine
from queue_management.types import QueueEntryPatch


class QueueEngineTestMixin:
    def setUp(self):  # Setup
        cache.clear()
        self.queue = QueueRegistry.create_queue(
            "clinic-1", TherapyType.SHAMANA, "Shamana Morning", max_capacity=5
        )

    def add(self, patient_id, **kwargs):
        return QueueOrderingEngine.add_entry(self.queue.id, patient_id, **kwargs)

    def positions(self):
        return {
            entry.patient_id: entry.position
            for entry in QueueEntry.objects.filter(queue=self.queue).active()
        }

    def assertQueueConsistent(self):
        """Active positions are exactly 1..N and follow priority then arrival"""
        active = list(QueueEntry.objects.filter(queue=self.queue).active().order_by("position"))
        self.assertEqual([e.position for e in active], list(range(1, len(active) + 1)))
        for ahead, behind in zip(active, active[1:]):
            self.assertGreaterEqual(ahead.priority, behind.priority)
            if ahead.priority == behind.priority:
                self.assertLessEqual(ahead.created_at, behind.created_at)
        for entry in QueueEntry.objects.filter(queue=self.queue).exclude(
            status__in=[QueueStatus.WAITING, QueueStatus.IN_PROGRESS]
        ):
            self.assertIsNone(entry.position)


class AddEntryTest(QueueEngineTestMixin, TestCase):  # Insertion
    def test_first_entry_scenario(self):  # Test empty queue then urgent arrival
        p1 = self.add("P1")
        self.assertEqual(p1.position, 1)
        self.assertEqual(p1.status, QueueStatus.WAITING)
        self.assertEqual(p1.estimated_wait_time, 20)

        p2 = self.add("P2", priority=5)
        p1.refresh_from_db()

        self.assertEqual(p2.position, 1)
        self.assertEqual(p1.position, 2)
        self.assertEqual(p2.estimated_wait_time, 20)
        self.assertEqual(p1.estimated_wait_time, 40)
        self.assertQueueConsistent()

    def test_equal_priority_keeps_arrival_order(self):  # Test ties broken by arrival
        for patient in ("A", "B", "C"):
            self.add(patient, priority=1)
        self.assertEqual(self.positions(), {"A": 1, "B": 2, "C": 3})

    def test_mixed_priorities(self):  # Test mixed priority insertion
        self.add("low-1")
        self.add("high-1", priority=5)
        self.add("mid-1", priority=2)
        self.add("high-2", priority=5)
        self.add("low-2")

        self.assertEqual(
            self.positions(),
            {"high-1": 1, "high-2": 2, "mid-1": 3, "low-1": 4, "low-2": 5},
        )
        self.assertQueueConsistent()

    def test_capacity_exceeded(self):  # Test sixth entry in a queue of five
        for index in range(5):
            self.add(f"patient-{index}")

        with self.assertRaises(exceptions.CapacityExceeded):
            self.add("patient-overflow", priority=10)

        self.assertEqual(QueueEntry.objects.filter(queue=self.queue).count(), 5)
        self.assertQueueConsistent()

    def test_capacity_frees_up_after_exit(self):  # Test capacity counts active entries only
        entries = [self.add(f"patient-{index}") for index in range(5)]
        QueueOrderingEngine.complete_entry(entries[0].id, actual_wait_time=5)

        entry = self.add("patient-late")
        self.assertEqual(entry.position, 5)

    def test_duplicate_entry(self):  # Test patient added twice
        self.add("P1")

        with self.assertRaises(exceptions.DuplicateEntry):
            self.add("P1")

        self.assertEqual(QueueEntry.objects.filter(queue=self.queue, patient_id="P1").count(), 1)

    def test_patient_may_rejoin_after_leaving(self):  # Test rejoin after removal
        first = self.add("P1")
        QueueOrderingEngine.remove_entry(first.id)

        again = self.add("P1")
        self.assertEqual(again.position, 1)

    def test_inactive_queue(self):  # Test add to deactivated queue
        QueueRegistry.deactivate_queue(self.queue.id)

        with self.assertRaises(exceptions.QueueInactive):
            self.add("P1")

    def test_unknown_queue(self):  # Test add to unknown queue
        with self.assertRaises(exceptions.NotFound):
            QueueOrderingEngine.add_entry(uuid.uuid4(), "P1")

    def test_invalid_priority(self):  # Test non-integer priority
        with self.assertRaises(exceptions.ValidationError):
            self.add("P1", priority="high")

    def test_queue_estimate_follows_active_count(self):  # Test queue-level estimate
        self.add("P1")
        self.add("P2")
        self.queue.refresh_from_db()
        self.assertEqual(self.queue.estimated_wait_time, 60)

    def test_lock_failure_maps_to_conflict(self):  # Test lock failure surfaces as conflict
        with mock.patch.object(
            QueueOrderingEngine, "_active_entries", side_effect=OperationalError("database is locked")
        ):
            with self.assertRaises(exceptions.ConcurrencyConflict):
                self.add("P1")

        self.assertEqual(QueueEntry.objects.count(), 0)

    def test_database_duplicate_maps_to_duplicate_entry(self):  # Test unique constraint backstop
        self.add("P1")

        with mock.patch.object(QueueOrderingEngine, "_active_entries", return_value=[]):
            with self.assertRaises(exceptions.DuplicateEntry):
                self.add("P1")

        self.assertEqual(QueueEntry.objects.filter(patient_id="P1").count(), 1)


class ReorderTest(QueueEngineTestMixin, TestCase):  # Full re-rank
    def test_remove_head_scenario(self):  # Test removing the head closes the gap
        p1 = self.add("P1")
        p2 = self.add("P2", priority=5)

        QueueOrderingEngine.remove_entry(p2.id)

        p1.refresh_from_db()
        p2.refresh_from_db()
        self.assertEqual(p1.position, 1)
        self.assertEqual(p1.estimated_wait_time, 20)
        self.assertEqual(p2.status, QueueStatus.REMOVED)
        self.assertIsNone(p2.position)

    def test_reorder_repairs_gaps(self):  # Test reorder repairs corrupted positions
        for patient in ("A", "B", "C"):
            self.add(patient)
        QueueEntry.objects.filter(queue=self.queue, patient_id="A").update(position=4)
        QueueEntry.objects.filter(queue=self.queue, patient_id="C").update(position=9)

        entries = QueueOrderingEngine.reorder(self.queue.id)

        self.assertEqual([e.patient_id for e in entries], ["A", "B", "C"])
        self.assertEqual(self.positions(), {"A": 1, "B": 2, "C": 3})

    def test_reorder_is_idempotent(self):  # Test reorder twice changes nothing
        self.add("A")
        self.add("B", priority=2)
        self.add("C", priority=1)

        QueueOrderingEngine.reorder(self.queue.id)
        first = {e.id: (e.position, e.estimated_wait_time, e.updated_at) for e in QueueEntry.objects.all()}
        QueueOrderingEngine.reorder(self.queue.id)
        second = {e.id: (e.position, e.estimated_wait_time, e.updated_at) for e in QueueEntry.objects.all()}

        self.assertEqual(first, second)

    def test_reorder_refreshes_estimates(self):  # Test estimates follow positions
        self.add("A")
        self.add("B")
        QueueEntry.objects.filter(patient_id="B").update(estimated_wait_time=999)

        QueueOrderingEngine.reorder(self.queue.id)

        self.assertEqual(QueueEntry.objects.get(patient_id="B").estimated_wait_time, 40)

    def test_reorder_unknown_queue(self):  # Test reorder unknown queue
        with self.assertRaises(exceptions.NotFound):
            QueueOrderingEngine.reorder(uuid.uuid4())

    def test_reorder_failure_leaves_positions_unchanged(self):  # Test atomic reorder
        self.add("A")
        self.add("B")
        QueueEntry.objects.filter(patient_id="A").update(position=7)

        with mock.patch.object(
            QueueOrderingEngine, "_refresh_queue_estimate", side_effect=OperationalError("disk I/O error")
        ):
            with self.assertRaises(exceptions.ConcurrencyConflict):
                QueueOrderingEngine.reorder(self.queue.id)

        self.assertEqual(QueueEntry.objects.get(patient_id="A").position, 7)

    def test_reconcile_active_queues(self):  # Test reconcile sweep
        other = QueueRegistry.create_queue("clinic-2", TherapyType.SHODHANA, "Other")
        self.add("A")
        self.add("B")
        QueueOrderingEngine.add_entry(other.id, "C")
        QueueEntry.objects.filter(patient_id="A").update(position=3)

        summary = QueueOrderingEngine.reconcile_active_queues()

        self.assertEqual(summary["queues_processed"], 2)
        self.assertEqual(summary["entries_repositioned"], 1)
        self.assertEqual(summary["failed_queues"], [])
        self.assertQueueConsistent()

    def test_invariants_after_mixed_operations(self):  # Test invariants hold through a session
        a = self.add("A")
        b = self.add("B", priority=3)
        c = self.add("C")
        QueueOrderingEngine.start_entry(b.id)
        d = self.add("D", priority=3)
        QueueOrderingEngine.complete_entry(b.id, actual_wait_time=12)
        QueueOrderingEngine.remove_entry(a.id)
        e = self.add("E", priority=1)
        QueueOrderingEngine.update_entry(c.id, QueueEntryPatch(status=QueueStatus.NO_SHOW))

        self.assertEqual(self.positions(), {"D": 1, "E": 2})
        self.assertQueueConsistent()
        self.assertEqual(QueueEntry.objects.get(id=d.id).estimated_wait_time, 20)
        self.assertEqual(QueueEntry.objects.get(id=e.id).estimated_wait_time, 40)


class LifecycleTest(QueueEngineTestMixin, TestCase):  # Entry lifecycle
    def test_start_entry_keeps_position(self):  # Test start keeps position
        self.add("A")
        b = self.add("B")

        started = QueueOrderingEngine.start_entry(b.id)

        self.assertEqual(started.status, QueueStatus.IN_PROGRESS)
        self.assertIsNotNone(started.started_at)
        self.assertEqual(self.positions(), {"A": 1, "B": 2})

    def test_start_requires_waiting(self):  # Test start twice
        a = self.add("A")
        QueueOrderingEngine.start_entry(a.id)

        with self.assertRaises(exceptions.ValidationError):
            QueueOrderingEngine.start_entry(a.id)

    def test_check_in_first_wins(self):  # Test first check-in wins
        a = self.add("A")
        first = QueueOrderingEngine.check_in_entry(a.id).checked_in_at
        second = QueueOrderingEngine.check_in_entry(a.id).checked_in_at
        self.assertEqual(first, second)

    def test_start_and_check_in_lock_queue_first(self):  # Test lock order matches reorder paths
        a = self.add("A")

        with mock.patch.object(
            QueueRegistry, "get_queue_by_id", wraps=QueueRegistry.get_queue_by_id
        ) as get_queue:
            QueueOrderingEngine.check_in_entry(a.id)
            QueueOrderingEngine.start_entry(a.id)

        self.assertEqual(get_queue.call_count, 2)
        for call in get_queue.call_args_list:
            self.assertEqual(call.args, (self.queue.id,))
            self.assertEqual(call.kwargs, {"lock": True})

    def test_start_waits_for_queue_lock_before_writing(self):  # Test no entry write without queue lock
        a = self.add("A")

        with mock.patch.object(
            QueueRegistry,
            "get_queue_by_id",
            side_effect=exceptions.ConcurrencyConflict("Could not lock queue"),
        ):
            with self.assertRaises(exceptions.ConcurrencyConflict):
                QueueOrderingEngine.start_entry(a.id)
            with self.assertRaises(exceptions.ConcurrencyConflict):
                QueueOrderingEngine.check_in_entry(a.id)

        a.refresh_from_db()
        self.assertEqual(a.status, QueueStatus.WAITING)
        self.assertIsNone(a.checked_in_at)

    def test_check_in_after_leaving(self):  # Test check-in of removed entry
        a = self.add("A")
        QueueOrderingEngine.remove_entry(a.id)

        with self.assertRaises(exceptions.ValidationError):
            QueueOrderingEngine.check_in_entry(a.id)

    def test_complete_derives_wait_from_check_in(self):  # Test wait derived from check-in
        a = self.add("A")
        b = self.add("B")
        QueueOrderingEngine.start_entry(a.id)
        QueueEntry.objects.filter(id=a.id).update(checked_in_at=timezone.now() - timedelta(minutes=42))

        completed = QueueOrderingEngine.complete_entry(a.id)

        self.assertEqual(completed.status, QueueStatus.COMPLETED)
        self.assertEqual(completed.actual_wait_time, 42)
        self.assertIsNone(completed.position)
        self.assertIsNotNone(completed.completed_at)
        b.refresh_from_db()
        self.assertEqual(b.position, 1)

    def test_complete_with_explicit_wait(self):  # Test explicit wait wins
        a = self.add("A")
        QueueEntry.objects.filter(id=a.id).update(checked_in_at=timezone.now() - timedelta(minutes=42))

        completed = QueueOrderingEngine.complete_entry(a.id, actual_wait_time=0)
        self.assertEqual(completed.actual_wait_time, 0)

    def test_complete_without_check_in_leaves_wait_unknown(self):  # Test unknown wait
        a = self.add("A")
        completed = QueueOrderingEngine.complete_entry(a.id)
        self.assertIsNone(completed.actual_wait_time)

    def test_complete_twice(self):  # Test completing a completed entry
        a = self.add("A")
        QueueOrderingEngine.complete_entry(a.id, actual_wait_time=3)

        with self.assertRaises(exceptions.ValidationError):
            QueueOrderingEngine.complete_entry(a.id, actual_wait_time=3)

    def test_complete_rejects_negative_wait(self):  # Test negative wait
        a = self.add("A")
        with self.assertRaises(exceptions.ValidationError):
            QueueOrderingEngine.complete_entry(a.id, actual_wait_time=-1)

    def test_remove_terminal_entry(self):  # Test removing twice
        a = self.add("A")
        QueueOrderingEngine.remove_entry(a.id)

        with self.assertRaises(exceptions.ValidationError):
            QueueOrderingEngine.remove_entry(a.id)

    def test_remove_unknown_entry(self):  # Test removing unknown entry
        with self.assertRaises(exceptions.NotFound):
            QueueOrderingEngine.remove_entry(uuid.uuid4())
        with self.assertRaises(exceptions.NotFound):
            QueueOrderingEngine.remove_entry("not-a-uuid")


class UpdateEntryTest(QueueEngineTestMixin, TestCase):  # Sparse patches
    def test_priority_raise_reranks(self):  # Test priority raise moves entry up
        self.add("A")
        self.add("B")
        c = self.add("C")

        updated = QueueOrderingEngine.update_entry(c.id, QueueEntryPatch(priority=5))

        self.assertEqual(updated.position, 1)
        self.assertEqual(self.positions(), {"C": 1, "A": 2, "B": 3})
        self.assertQueueConsistent()

    def test_priority_drop_keeps_arrival_time(self):  # Test priority drop uses original arrival
        a = self.add("A", priority=5)
        self.add("B")
        self.add("C", priority=1)

        QueueOrderingEngine.update_entry(a.id, QueueEntryPatch(priority=0))

        self.assertEqual(self.positions(), {"C": 1, "A": 2, "B": 3})

    def test_terminal_status_clears_position(self):  # Test cancel via patch
        a = self.add("A")
        self.add("B")

        updated = QueueOrderingEngine.update_entry(a.id, {"status": QueueStatus.CANCELLED})

        self.assertEqual(updated.status, QueueStatus.CANCELLED)
        self.assertIsNone(updated.position)
        self.assertEqual(self.positions(), {"B": 1})

    def test_completed_status_sets_completed_at(self):  # Test complete via patch
        a = self.add("A")
        updated = QueueOrderingEngine.update_entry(
            a.id, QueueEntryPatch(status=QueueStatus.COMPLETED, actual_wait_time=7)
        )
        self.assertEqual(updated.actual_wait_time, 7)
        self.assertIsNotNone(updated.completed_at)

    def test_cannot_reactivate_terminal_entry(self):  # Test reactivation rejected
        a = self.add("A")
        QueueOrderingEngine.remove_entry(a.id)

        with self.assertRaises(exceptions.ValidationError):
            QueueOrderingEngine.update_entry(a.id, QueueEntryPatch(status=QueueStatus.WAITING))

    def test_position_must_match_ordering(self):  # Test conflicting position rejected
        a = self.add("A")
        self.add("B")

        with self.assertRaises(exceptions.ValidationError):
            QueueOrderingEngine.update_entry(a.id, QueueEntryPatch(position=2, notes="moved"))

        a.refresh_from_db()
        self.assertEqual(a.position, 1)
        self.assertEqual(a.notes, "")

    def test_position_consistent_with_priority_change(self):  # Test position plus priority
        self.add("A")
        b = self.add("B")

        updated = QueueOrderingEngine.update_entry(b.id, QueueEntryPatch(priority=2, position=1))
        self.assertEqual(updated.position, 1)

    def test_explicit_estimate_applied_after_rerank(self):  # Test explicit estimate kept
        self.add("A")
        b = self.add("B")

        updated = QueueOrderingEngine.update_entry(
            b.id, QueueEntryPatch(priority=3, estimated_wait_time=5)
        )

        self.assertEqual(updated.position, 1)
        self.assertEqual(QueueEntry.objects.get(id=b.id).estimated_wait_time, 5)

    def test_notes_only_patch(self):  # Test notes-only patch
        a = self.add("A")
        updated = QueueOrderingEngine.update_entry(a.id, QueueEntryPatch(notes="Bring reports"))
        self.assertEqual(updated.notes, "Bring reports")
        self.assertEqual(updated.position, 1)

    def test_empty_patch_rejected(self):  # Test empty patch
        a = self.add("A")
        with self.assertRaises(exceptions.ValidationError):
            QueueOrderingEngine.update_entry(a.id, QueueEntryPatch())

    def test_unknown_status_rejected(self):  # Test unknown status
        a = self.add("A")
        with self.assertRaises(exceptions.ValidationError):
            QueueOrderingEngine.update_entry(a.id, QueueEntryPatch(status="PAUSED"))

    def test_patch_distinguishes_unset_from_none(self):  # Test UNSET sentinel
        patch = QueueEntryPatch(actual_wait_time=None)
        self.assertTrue(patch.is_set("actual_wait_time"))
        self.assertFalse(patch.is_set("priority"))
        self.assertEqual(patch.supplied(), {"actual_wait_time": None})
        self.assertFalse(QueueEntryPatch())


class QueryTest(QueueEngineTestMixin, TestCase):  # Position and statistics queries
    def test_patient_position(self):  # Test patient position lookup
        self.add("A")
        self.add("B", appointment_id="apt-42")

        result = QueueOrderingEngine.get_patient_position("apt-42")

        self.assertEqual(result["position"], 2)
        self.assertEqual(result["total_in_queue"], 2)
        self.assertEqual(result["estimated_wait_time"], 40)
        self.assertEqual(result["status"], QueueStatus.WAITING)
        self.assertEqual(result["queue_id"], str(self.queue.id))

    def test_patient_position_not_found(self):  # Test unknown appointment
        with self.assertRaises(exceptions.NotFound):
            QueueOrderingEngine.get_patient_position("apt-missing")

    def test_patient_position_after_leaving(self):  # Test appointment no longer active
        entry = self.add("A", appointment_id="apt-1")
        QueueOrderingEngine.complete_entry(entry.id, actual_wait_time=3)

        with self.assertRaises(exceptions.NotFound):
            QueueOrderingEngine.get_patient_position("apt-1")

    def test_stats(self):  # Test statistics
        a = self.add("A")
        b = self.add("B")
        c = self.add("C")
        self.add("D")
        QueueOrderingEngine.complete_entry(a.id, actual_wait_time=10)
        QueueOrderingEngine.complete_entry(b.id, actual_wait_time=15)
        QueueOrderingEngine.start_entry(c.id)

        stats = QueueOrderingEngine.get_stats(self.queue.id)

        self.assertEqual(stats["waiting"], 1)
        self.assertEqual(stats["in_progress"], 1)
        self.assertEqual(stats["completed"], 2)
        self.assertEqual(stats["total_entries"], 4)
        self.assertEqual(stats["average_wait_time"], 13)
        self.assertEqual(stats["current_capacity"], 2)
        self.assertEqual(stats["max_capacity"], 5)
        self.assertEqual(stats["utilization_rate"], 40)
        self.assertEqual(stats["therapy_type"], TherapyType.SHAMANA)

    def test_stats_of_empty_queue(self):  # Test statistics of empty queue
        stats = QueueOrderingEngine.get_stats(self.queue.id)
        self.assertEqual(stats["average_wait_time"], 0)
        self.assertEqual(stats["utilization_rate"], 0)
        self.assertEqual(stats["total_entries"], 0)

    def test_stats_count_zero_waits(self):  # Test zero wait is part of the average
        a = self.add("A")
        b = self.add("B")
        QueueOrderingEngine.complete_entry(a.id, actual_wait_time=0)
        QueueOrderingEngine.complete_entry(b.id, actual_wait_time=10)

        self.assertEqual(QueueOrderingEngine.get_stats(self.queue.id)["average_wait_time"], 5)

    def test_stats_ignore_unknown_waits(self):  # Test completions without a wait
        a = self.add("A")
        b = self.add("B")
        QueueOrderingEngine.complete_entry(a.id)
        QueueOrderingEngine.complete_entry(b.id, actual_wait_time=9)

        self.assertEqual(QueueOrderingEngine.get_stats(self.queue.id)["average_wait_time"], 9)

    def test_stats_unknown_queue(self):  # Test statistics of unknown queue
        with self.assertRaises(exceptions.NotFound):
            QueueOrderingEngine.get_stats(uuid.uuid4())


class PostCommitHookTest(QueueEngineTestMixin, TestCase):  # Cache and audit after commit
    def test_stats_served_from_cache_until_commit(self):  # Test stats cache invalidation
        self.add("A")
        self.assertEqual(QueueOrderingEngine.get_stats(self.queue.id)["waiting"], 1)

        self.add("B")
        self.assertEqual(QueueOrderingEngine.get_stats(self.queue.id)["waiting"], 1)

        with self.captureOnCommitCallbacks(execute=True):
            self.add("C")
        self.assertEqual(QueueOrderingEngine.get_stats(self.queue.id)["waiting"], 3)

    def test_queue_snapshot_invalidated_on_commit(self):  # Test listing cache invalidation
        snapshot = QueueRegistry.get_queue("clinic-1", TherapyType.SHAMANA)
        self.assertEqual(snapshot["entries"], [])

        with self.captureOnCommitCallbacks(execute=True):
            self.add("A")

        snapshot = QueueRegistry.get_queue("clinic-1", TherapyType.SHAMANA)
        self.assertEqual([e["patient_id"] for e in snapshot["entries"]], ["A"])

    def test_audit_written_after_commit(self):  # Test audit events
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            entry = self.add("A")

        self.assertTrue(callbacks)
        audit = AuditLogEntry.objects.get(resource_type="QUEUE_ENTRY", resource_id=str(entry.id))
        self.assertEqual(audit.action_type, "create")
        self.assertEqual(audit.clinic_id, "clinic-1")
        self.assertEqual(audit.details["position"], 1)

    def test_no_hooks_for_rejected_operation(self):  # Test rejected operation leaves no trace
        self.add("A")
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with self.assertRaises(exceptions.DuplicateEntry):
                self.add("A")

        self.assertEqual(callbacks, [])

    def test_audit_failure_does_not_fail_operation(self):  # Test audit failure swallowed
        with mock.patch.object(AuditLogEntry.objects, "create", side_effect=RuntimeError("audit down")):
            with self.captureOnCommitCallbacks(execute=True):
                entry = self.add("A")

        self.assertEqual(QueueEntry.objects.get(id=entry.id).position, 1)

    def test_reconcile_invalidates_when_only_queue_estimate_changes(self):  # Test stale queue estimate refreshed
        self.add("A")
        TherapyQueue.objects.filter(id=self.queue.id).update(estimated_wait_time=999)
        snapshot = QueueRegistry.get_queue("clinic-1", TherapyType.SHAMANA)
        self.assertEqual(snapshot["estimated_wait_time"], 999)

        with self.captureOnCommitCallbacks(execute=True):
            summary = QueueOrderingEngine.reconcile_active_queues()

        self.assertEqual(summary["entries_repositioned"], 0)
        snapshot = QueueRegistry.get_queue("clinic-1", TherapyType.SHAMANA)
        self.assertEqual(snapshot["estimated_wait_time"], 40)

    def test_reconcile_leaves_cache_alone_when_nothing_changed(self):  # Test no-op sweep keeps cache
        self.add("A")
        QueueOrderingEngine.reorder(self.queue.id)
        QueueRegistry.get_queue("clinic-1", TherapyType.SHAMANA)

        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            QueueOrderingEngine.reconcile_active_queues()

        self.assertEqual(callbacks, [])
