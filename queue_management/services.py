"""
Therapy Queue Ordering Engine
Handles insertion ranking, capacity enforcement, reordering and wait-time
estimation for therapy queues.

Every position-affecting operation runs inside one transaction holding the
queue row lock (see QueueRegistry.get_queue_by_id), so the read-compute-write
sequence over a queue's active entries is serialized per queue. Cache
invalidation and audit events run as post-commit hooks.

Import from here: from queue_management.services import QueueOrderingEngine
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, OperationalError, transaction
from django.db.models import Avg, Count
from django.utils import timezone

from core.audit import AuditService
from core.cache_service import CacheService
from core.sentry_utils import capture_error_with_context, set_queue_context
from queue_management import exceptions
from queue_management.cache import QueueCacheService
from queue_management.models import (
    QueueEntry,
    QueueStatus,
    TherapyQueue,
    TERMINAL_STATUSES,
)
from queue_management.monitoring import monitor_queue_operation
from queue_management.ordering import (
    WaitTimeEstimator,
    dense_ranking,
    insertion_position,
    positions_after_insert,
)
from queue_management.registry import QueueRegistry
from queue_management.types import QueueEntryPatch

logger = logging.getLogger(__name__)


def _round_half_up(value):
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def _elapsed_minutes(since, now=None):
    now = now or timezone.now()
    return max(0, int((now - since).total_seconds() // 60))


class QueueOrderingEngine:
    """Position management for the entries of therapy queues"""

    # ------------------------------------------------------------------ helpers

    @staticmethod
    def _get_entry(entry_id):
        try:
            return QueueEntry.objects.get(id=entry_id)
        except (QueueEntry.DoesNotExist, ValueError, DjangoValidationError):
            raise exceptions.NotFound(f"Queue entry with ID {entry_id} not found")

    @staticmethod
    def _lock_entry_queue(entry_id):
        """
        Entry and its queue, with the queue lock held and the entry re-read
        under it. Every write path locks the queue row before any entry row.
        """
        entry = QueueOrderingEngine._get_entry(entry_id)
        queue = QueueRegistry.get_queue_by_id(entry.queue_id, lock=True)
        entry.refresh_from_db()
        entry.queue = queue
        return entry, queue

    @staticmethod
    def _active_entries(queue):
        return list(QueueEntry.objects.filter(queue=queue).ranked())

    @staticmethod
    def _write_positions(queue, assignments, estimator):
        """
        Persist (entry, position) pairs, touching only rows whose position or
        wait estimate actually changes. Returns the number of rows written.
        """
        now = timezone.now()
        changed = []
        for entry, position in assignments:
            wait = estimator.estimate(position, queue.therapy_type)
            if entry.position != position or entry.estimated_wait_time != wait:
                entry.position = position
                entry.estimated_wait_time = wait
                entry.updated_at = now
                changed.append(entry)

        if changed:
            QueueEntry.objects.bulk_update(changed, ["position", "estimated_wait_time", "updated_at"])
        return len(changed)

    @staticmethod
    def _refresh_queue_estimate(queue, active_count, estimator):
        """Wait a newly appended entry would face"""
        queue.estimated_wait_time = estimator.estimate(active_count + 1, queue.therapy_type)
        queue.save(update_fields=["estimated_wait_time", "updated_at"])

    @staticmethod
    def _reorder_locked(queue, estimator=None):
        """Dense re-rank of a queue whose lock the caller already holds"""
        estimator = estimator or WaitTimeEstimator()
        entries = QueueOrderingEngine._active_entries(queue)
        changed = QueueOrderingEngine._write_positions(queue, dense_ranking(entries), estimator)
        QueueOrderingEngine._refresh_queue_estimate(queue, len(entries), estimator)
        return entries, changed

    @staticmethod
    def _after_commit(queue, action_type, resource_type, resource_id, actor, details):
        QueueCacheService.invalidate_on_commit(queue.clinic_id, queue.id)
        AuditService.record_on_commit(
            action_type,
            resource_type,
            resource_id=resource_id,
            actor=actor,
            clinic_id=queue.clinic_id,
            details=details,
        )

    # ---------------------------------------------------------------- insertion

    @staticmethod
    @monitor_queue_operation("add_entry")
    def add_entry(queue_id, patient_id, appointment_id=None, priority=0, notes="", actor=None):
        """
        Add a patient to a queue.

        Checks, in order: queue exists and is active, queue below capacity,
        patient not already active in the queue. The new entry goes ahead of
        the first active entry with strictly lower priority; everyone behind
        it shifts down one position.
        """
        if not patient_id:
            raise exceptions.ValidationError("patient_id is required")
        if priority is None:
            priority = 0
        if not _is_int(priority):
            raise exceptions.ValidationError("priority must be an integer")

        estimator = WaitTimeEstimator()
        try:
            with transaction.atomic():
                queue = QueueRegistry.get_queue_by_id(queue_id, lock=True)
                set_queue_context(queue.id, queue.clinic_id, operation="add_entry")
                if not queue.is_active:
                    raise exceptions.QueueInactive(f"Queue {queue.queue_name} is not active")

                active = QueueOrderingEngine._active_entries(queue)
                if len(active) >= queue.max_capacity:
                    raise exceptions.CapacityExceeded(
                        "Queue is at maximum capacity",
                        max_capacity=queue.max_capacity,
                    )

                if any(entry.patient_id == str(patient_id) for entry in active):
                    raise exceptions.DuplicateEntry("Patient is already in the queue")

                position = insertion_position(active, priority)
                QueueOrderingEngine._write_positions(
                    queue, positions_after_insert(active, position), estimator
                )

                booking_number = QueueRegistry.next_booking_number(queue)
                entry = QueueEntry.objects.create(
                    queue=queue,
                    patient_id=str(patient_id),
                    appointment_id=str(appointment_id) if appointment_id else None,
                    position=position,
                    priority=priority,
                    status=QueueStatus.WAITING,
                    estimated_wait_time=estimator.estimate(position, queue.therapy_type),
                    booking_number=booking_number,
                    notes=notes or "",
                )
                QueueOrderingEngine._refresh_queue_estimate(queue, len(active) + 1, estimator)

                QueueOrderingEngine._after_commit(
                    queue,
                    "create",
                    "QUEUE_ENTRY",
                    entry.id,
                    actor,
                    {"queue_id": str(queue.id), "patient_id": entry.patient_id, "position": position},
                )
        except IntegrityError as e:
            # Partial unique index caught a concurrent duplicate
            raise exceptions.DuplicateEntry("Patient is already in the queue") from e
        except OperationalError as e:
            raise exceptions.ConcurrencyConflict(
                f"Queue {queue_id} changed while adding an entry: {str(e)}"
            ) from e

        logger.info(
            f"Patient {entry.patient_id} added to therapy queue {queue.id} "
            f"at position {position} (booking #{booking_number})"
        )
        return entry

    # ---------------------------------------------------------------- reordering

    @staticmethod
    @monitor_queue_operation("reorder")
    def reorder(queue_id, actor=None):
        """
        Full dense re-rank of the active entries of a queue.
        Running it twice without an intervening mutation changes nothing.
        """
        try:
            with transaction.atomic():
                queue = QueueRegistry.get_queue_by_id(queue_id, lock=True)
                set_queue_context(queue.id, queue.clinic_id, operation="reorder")
                entries, changed = QueueOrderingEngine._reorder_locked(queue)
                QueueOrderingEngine._after_commit(
                    queue,
                    "reorder",
                    "THERAPY_QUEUE",
                    queue.id,
                    actor,
                    {"active_entries": len(entries), "repositioned": changed},
                )
        except OperationalError as e:
            raise exceptions.ConcurrencyConflict(
                f"Queue {queue_id} changed while reordering: {str(e)}"
            ) from e

        logger.info(f"Queue {queue_id} reordered: {changed} of {len(entries)} entries repositioned")
        return entries

    @staticmethod
    def reconcile_active_queues():
        """Re-rank every active queue. Used by the periodic consistency sweep."""
        summary = {"queues_processed": 0, "entries_repositioned": 0, "failed_queues": []}
        queue_ids = list(TherapyQueue.objects.filter(is_active=True).values_list("id", flat=True))

        for queue_id in queue_ids:
            try:
                with transaction.atomic():
                    queue = QueueRegistry.get_queue_by_id(queue_id, lock=True)
                    previous_estimate = queue.estimated_wait_time
                    entries, changed = QueueOrderingEngine._reorder_locked(queue)
                    if changed or queue.estimated_wait_time != previous_estimate:
                        QueueCacheService.invalidate_on_commit(queue.clinic_id, queue.id)
            except (exceptions.QueueError, OperationalError) as e:
                logger.error(f"Failed to reconcile queue {queue_id}: {str(e)}")
                capture_error_with_context(e, {"therapy_queue": {"queue_id": str(queue_id), "task": "reconcile"}})
                summary["failed_queues"].append(str(queue_id))
                continue

            summary["queues_processed"] += 1
            summary["entries_repositioned"] += changed

        logger.info(
            f"Reconciled {summary['queues_processed']} active queues, "
            f"{summary['entries_repositioned']} entries repositioned"
        )
        return summary

    # ----------------------------------------------------------------- lifecycle

    @staticmethod
    @monitor_queue_operation("start_entry")
    def start_entry(entry_id, actor=None):
        """WAITING -> IN_PROGRESS. The entry keeps its position."""
        with transaction.atomic():
            entry, queue = QueueOrderingEngine._lock_entry_queue(entry_id)
            if entry.status != QueueStatus.WAITING:
                raise exceptions.ValidationError(
                    f"Only waiting entries can be started (entry is {entry.status})"
                )

            entry.status = QueueStatus.IN_PROGRESS
            entry.started_at = timezone.now()
            entry.save(update_fields=["status", "started_at", "updated_at"])

            QueueOrderingEngine._after_commit(
                queue,
                "update",
                "QUEUE_ENTRY",
                entry.id,
                actor,
                {"status": QueueStatus.IN_PROGRESS},
            )

        return entry

    @staticmethod
    @monitor_queue_operation("check_in_entry")
    def check_in_entry(entry_id, actor=None):
        """Record arrival at the clinic. The first check-in wins."""
        with transaction.atomic():
            entry, queue = QueueOrderingEngine._lock_entry_queue(entry_id)
            if not entry.is_active:
                raise exceptions.ValidationError(
                    f"Cannot check in an entry that has left the queue (entry is {entry.status})"
                )
            if entry.checked_in_at:
                return entry

            entry.checked_in_at = timezone.now()
            entry.save(update_fields=["checked_in_at", "updated_at"])

            QueueOrderingEngine._after_commit(
                queue,
                "update",
                "QUEUE_ENTRY",
                entry.id,
                actor,
                {"checked_in_at": entry.checked_in_at.isoformat()},
            )

        return entry

    @staticmethod
    @monitor_queue_operation("complete_entry")
    def complete_entry(entry_id, actual_wait_time=None, actor=None):
        """
        Mark an active entry completed and close the gap it leaves.
        Without an explicit wait, the wait is the whole minutes elapsed since
        check-in (unknown if the patient never checked in).
        """
        if actual_wait_time is not None and (not _is_int(actual_wait_time) or actual_wait_time < 0):
            raise exceptions.ValidationError("actual_wait_time must be a non-negative integer")

        try:
            with transaction.atomic():
                entry, queue = QueueOrderingEngine._lock_entry_queue(entry_id)
                if not entry.is_active:
                    raise exceptions.ValidationError(
                        f"Only active entries can be completed (entry is {entry.status})"
                    )

                now = timezone.now()
                wait = actual_wait_time
                # An explicit 0 is a real wait, derivation only fills a missing value
                if wait is None and entry.checked_in_at:
                    wait = _elapsed_minutes(entry.checked_in_at, now)

                entry.status = QueueStatus.COMPLETED
                entry.actual_wait_time = wait
                entry.completed_at = now
                entry.position = None
                entry.save(
                    update_fields=["status", "actual_wait_time", "completed_at", "position", "updated_at"]
                )

                QueueOrderingEngine._reorder_locked(queue)
                QueueOrderingEngine._after_commit(
                    queue,
                    "update",
                    "QUEUE_ENTRY",
                    entry.id,
                    actor,
                    {"status": QueueStatus.COMPLETED, "actual_wait_time": wait},
                )
        except OperationalError as e:
            raise exceptions.ConcurrencyConflict(
                f"Queue changed while completing entry {entry_id}: {str(e)}"
            ) from e

        return entry

    @staticmethod
    @monitor_queue_operation("remove_entry")
    def remove_entry(entry_id, actor=None):
        """Take an active entry out of the queue and close the gap it leaves"""
        try:
            with transaction.atomic():
                entry, queue = QueueOrderingEngine._lock_entry_queue(entry_id)
                if not entry.is_active:
                    raise exceptions.ValidationError(
                        f"Entry already left the queue (entry is {entry.status})"
                    )

                previous_position = entry.position
                entry.status = QueueStatus.REMOVED
                entry.position = None
                entry.save(update_fields=["status", "position", "updated_at"])

                QueueOrderingEngine._reorder_locked(queue)
                QueueOrderingEngine._after_commit(
                    queue,
                    "delete",
                    "QUEUE_ENTRY",
                    entry.id,
                    actor,
                    {"previous_position": previous_position},
                )
        except OperationalError as e:
            raise exceptions.ConcurrencyConflict(
                f"Queue changed while removing entry {entry_id}: {str(e)}"
            ) from e

        logger.info(f"Patient {entry.patient_id} removed from queue {queue.id}")
        return entry

    @staticmethod
    def _validate_patch(patch):
        supplied = patch.supplied()
        if not supplied:
            raise exceptions.ValidationError("No fields to update")

        if patch.is_set("status") and patch.status not in QueueStatus.values:
            raise exceptions.ValidationError(f"Unknown status {patch.status}")
        if patch.is_set("priority") and not _is_int(patch.priority):
            raise exceptions.ValidationError("priority must be an integer")
        for name in ("estimated_wait_time", "actual_wait_time"):
            value = supplied.get(name)
            if value is not None and (not _is_int(value) or value < 0):
                raise exceptions.ValidationError(f"{name} must be a non-negative integer")
        if patch.is_set("position") and patch.position is not None:
            if not _is_int(patch.position) or patch.position < 1:
                raise exceptions.ValidationError("position must be a positive integer")
        return supplied

    @staticmethod
    @monitor_queue_operation("update_entry")
    def update_entry(entry_id, patch, actor=None):
        """
        Apply a sparse field patch to an entry.

        - A status leaving the active set clears the position and re-ranks
          the queue.
        - A priority change on an active entry re-ranks the queue; the entry
          keeps its arrival time, so it lands where a fresh insertion with
          that priority and arrival would.
        - An explicit position must match the position the ordering gives the
          entry, otherwise the whole update is rejected.
        - An explicit estimated_wait_time is applied after any re-rank.
        """
        if isinstance(patch, dict):
            patch = QueueEntryPatch.from_dict(patch)
        supplied = QueueOrderingEngine._validate_patch(patch)

        try:
            with transaction.atomic():
                entry, queue = QueueOrderingEngine._lock_entry_queue(entry_id)
                was_active = entry.is_active
                needs_reorder = False
                now = timezone.now()

                if patch.is_set("status") and patch.status != entry.status:
                    if not was_active and patch.status not in TERMINAL_STATUSES:
                        raise exceptions.ValidationError(
                            "Cannot move an entry back into the queue, add it again instead"
                        )
                    entry.status = patch.status
                    if patch.status == QueueStatus.IN_PROGRESS and entry.started_at is None:
                        entry.started_at = now
                    if patch.status in TERMINAL_STATUSES and was_active:
                        entry.position = None
                        needs_reorder = True
                        if patch.status == QueueStatus.COMPLETED:
                            entry.completed_at = now

                if patch.is_set("priority") and patch.priority != entry.priority:
                    entry.priority = patch.priority
                    if entry.is_active:
                        needs_reorder = True

                if patch.is_set("actual_wait_time"):
                    entry.actual_wait_time = patch.actual_wait_time
                if patch.is_set("notes"):
                    entry.notes = patch.notes or ""

                entry.save()

                if needs_reorder or patch.is_set("position"):
                    QueueOrderingEngine._reorder_locked(queue)
                    entry.refresh_from_db()

                if patch.is_set("position") and patch.position != entry.position:
                    raise exceptions.ValidationError(
                        f"Position {patch.position} conflicts with queue ordering "
                        f"(entry ranks at {entry.position})"
                    )

                if patch.is_set("estimated_wait_time"):
                    entry.estimated_wait_time = patch.estimated_wait_time
                    entry.save(update_fields=["estimated_wait_time", "updated_at"])

                QueueOrderingEngine._after_commit(
                    queue,
                    "update",
                    "QUEUE_ENTRY",
                    entry.id,
                    actor,
                    {"updates": sorted(supplied.keys()), "reordered": needs_reorder},
                )
        except OperationalError as e:
            raise exceptions.ConcurrencyConflict(
                f"Queue changed while updating entry {entry_id}: {str(e)}"
            ) from e

        return entry

    # ------------------------------------------------------------------- queries

    @staticmethod
    def get_patient_position(appointment_id):
        """Live position of the active queue entry booked for an appointment"""
        entry = (
            QueueEntry.objects.active()
            .filter(appointment_id=str(appointment_id))
            .select_related("queue")
            .order_by("-created_at")
            .first()
        )
        if entry is None:
            raise exceptions.NotFound("Patient not found in any queue")

        total_in_queue = QueueEntry.objects.filter(queue_id=entry.queue_id).active().count()
        return {
            "queue_id": str(entry.queue_id),
            "entry_id": str(entry.id),
            "position": entry.position,
            "total_in_queue": total_in_queue,
            "estimated_wait_time": entry.estimated_wait_time or 0,
            "status": entry.status,
        }

    @staticmethod
    def get_stats(queue_id):
        """Occupancy and wait statistics, cached for a few minutes"""
        cache_key = QueueCacheService.stats_key(queue_id)
        cached = CacheService.get(cache_key)
        if cached is not None:
            return cached

        queue = QueueRegistry.get_queue_by_id(queue_id)
        counts = {
            row["status"]: row["count"]
            for row in queue.entries.order_by().values("status").annotate(count=Count("id"))
        }
        waiting = counts.get(QueueStatus.WAITING, 0)
        in_progress = counts.get(QueueStatus.IN_PROGRESS, 0)
        completed = counts.get(QueueStatus.COMPLETED, 0)

        # Zero is a recorded wait and counts; only missing waits are skipped
        average = queue.entries.filter(
            status=QueueStatus.COMPLETED, actual_wait_time__isnull=False
        ).aggregate(value=Avg("actual_wait_time"))["value"]

        current_capacity = waiting + in_progress
        stats = {
            "queue_id": str(queue.id),
            "therapy_type": queue.therapy_type,
            "total_entries": sum(counts.values()),
            "waiting": waiting,
            "in_progress": in_progress,
            "completed": completed,
            "average_wait_time": _round_half_up(average) if average is not None else 0,
            "current_capacity": current_capacity,
            "max_capacity": queue.max_capacity,
            "utilization_rate": _round_half_up(current_capacity / queue.max_capacity * 100),
        }

        CacheService.set(cache_key, stats, QueueCacheService.stats_ttl())
        return stats

