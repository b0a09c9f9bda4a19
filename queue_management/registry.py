"""
Queue Registry
Creates, looks up and deactivates therapy queues. Owns the rules that do not
depend on entry ordering: one active queue per (clinic, therapy type) and the
per-queue booking counter.
"""
import logging
import time
from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, OperationalError, transaction
from django.db.models import F, Prefetch

from core.audit import AuditService
from core.cache_service import CacheService
from queue_management import exceptions
from queue_management.cache import QueueCacheService
from queue_management.models import QueueEntry, TherapyQueue, TherapyType

logger = logging.getLogger(__name__)


def _default_capacity():
    return getattr(settings, "THERAPY_QUEUE", {}).get("DEFAULT_MAX_CAPACITY", 10)


def _active_entries_prefetch():
    return Prefetch(
        "entries",
        queryset=QueueEntry.objects.active().order_by("position"),
        to_attr="active_entries",
    )


def serialize_entry(entry):
    return {
        "id": str(entry.id),
        "queue_id": str(entry.queue_id),
        "patient_id": entry.patient_id,
        "appointment_id": entry.appointment_id,
        "position": entry.position,
        "priority": entry.priority,
        "status": entry.status,
        "estimated_wait_time": entry.estimated_wait_time,
        "actual_wait_time": entry.actual_wait_time,
        "booking_number": entry.booking_number,
        "checked_in_at": entry.checked_in_at.isoformat() if entry.checked_in_at else None,
        "started_at": entry.started_at.isoformat() if entry.started_at else None,
        "completed_at": entry.completed_at.isoformat() if entry.completed_at else None,
        "notes": entry.notes,
        "created_at": entry.created_at.isoformat(),
    }


def serialize_queue(queue, entries=None):
    """Cache-friendly snapshot of a queue and its ordered active entries"""
    if entries is None:
        entries = getattr(queue, "active_entries", None)
        if entries is None:
            entries = list(queue.entries.active().order_by("position"))
    return {
        "id": str(queue.id),
        "clinic_id": queue.clinic_id,
        "therapy_type": queue.therapy_type,
        "queue_name": queue.queue_name,
        "is_active": queue.is_active,
        "max_capacity": queue.max_capacity,
        "current_position": queue.current_position,
        "estimated_wait_time": queue.estimated_wait_time,
        "created_at": queue.created_at.isoformat(),
        "entries": [serialize_entry(entry) for entry in entries],
    }


class QueueRegistry:
    """Lookup and lifecycle of TherapyQueue rows"""

    @staticmethod
    def create_queue(clinic_id, therapy_type, queue_name, max_capacity=None, actor=None):
        start_time = time.monotonic()

        if therapy_type not in TherapyType.values:
            raise exceptions.ValidationError(f"Unknown therapy type {therapy_type}")
        if not clinic_id:
            raise exceptions.ValidationError("clinic_id is required")
        if not queue_name or not str(queue_name).strip():
            raise exceptions.ValidationError("queue_name is required")
        if max_capacity is None:
            max_capacity = _default_capacity()
        if not isinstance(max_capacity, int) or isinstance(max_capacity, bool) or max_capacity < 1:
            raise exceptions.ValidationError("max_capacity must be a positive integer")

        try:
            with transaction.atomic():
                exists = TherapyQueue.objects.filter(
                    clinic_id=clinic_id, therapy_type=therapy_type, is_active=True
                ).exists()
                if exists:
                    raise exceptions.DuplicateQueue(
                        f"Active queue already exists for therapy type {therapy_type}"
                    )

                queue = TherapyQueue.objects.create(
                    clinic_id=clinic_id,
                    therapy_type=therapy_type,
                    queue_name=str(queue_name).strip(),
                    max_capacity=max_capacity,
                )

                QueueCacheService.invalidate_on_commit(clinic_id, queue.id)
                AuditService.record_on_commit(
                    "create",
                    "THERAPY_QUEUE",
                    resource_id=queue.id,
                    actor=actor,
                    clinic_id=clinic_id,
                    details={"therapy_type": therapy_type, "queue_name": queue.queue_name},
                )
        except IntegrityError as e:
            # Lost the race against a concurrent create for the same pair
            raise exceptions.DuplicateQueue(
                f"Active queue already exists for therapy type {therapy_type}"
            ) from e

        logger.info(
            f"Therapy queue created: {queue.id} ({therapy_type}) for clinic {clinic_id} "
            f"in {(time.monotonic() - start_time) * 1000:.1f}ms"
        )
        return queue

    @staticmethod
    def get_queue(clinic_id, therapy_type):
        """Active queue for a clinic and therapy type, as a (possibly cached) snapshot"""
        cache_key = QueueCacheService.queue_by_type_key(clinic_id, therapy_type)
        cached = CacheService.get(cache_key)
        if cached is not None:
            return cached

        queue = (
            TherapyQueue.objects.filter(clinic_id=clinic_id, therapy_type=therapy_type, is_active=True)
            .prefetch_related(_active_entries_prefetch())
            .first()
        )
        if queue is None:
            raise exceptions.NotFound(f"No active queue found for therapy type {therapy_type}")

        snapshot = serialize_queue(queue)
        CacheService.set(cache_key, snapshot, QueueCacheService.queue_ttl())

        logger.info(
            f"Therapy queue retrieved by type: {therapy_type} for clinic {clinic_id} "
            f"({len(snapshot['entries'])} active entries)"
        )
        return snapshot

    @staticmethod
    def list_queues(clinic_id, active_only=None):
        """All queues of a clinic with their ordered active entries, newest first"""
        cache_key = QueueCacheService.clinic_queues_key(clinic_id, active_only)
        cached = CacheService.get(cache_key)
        if cached is not None:
            return cached

        queues = TherapyQueue.objects.filter(clinic_id=clinic_id)
        if active_only is not None:
            queues = queues.filter(is_active=active_only)
        queues = queues.prefetch_related(_active_entries_prefetch()).order_by("-created_at")

        snapshots = [serialize_queue(queue) for queue in queues]
        CacheService.set(cache_key, snapshots, QueueCacheService.queue_ttl())

        logger.info(f"Clinic therapy queues retrieved: {clinic_id} ({len(snapshots)} queues)")
        return snapshots

    @staticmethod
    def get_queue_by_id(queue_id, lock=False):
        """
        Authoritative read of a queue row.
        With ``lock=True`` the row is locked until the caller's transaction
        ends; this is the per-queue mutual exclusion for ordering writes.
        """
        queryset = TherapyQueue.objects.all()
        if lock:
            queryset = queryset.select_for_update()
        try:
            return queryset.get(id=queue_id)
        except TherapyQueue.DoesNotExist:
            raise exceptions.NotFound(f"Queue with ID {queue_id} not found")
        except (ValueError, DjangoValidationError):
            raise exceptions.NotFound(f"Queue with ID {queue_id} not found")
        except OperationalError as e:
            raise exceptions.ConcurrencyConflict(
                f"Could not lock queue {queue_id}: {str(e)}", queue_id=str(queue_id)
            ) from e

    @staticmethod
    def next_booking_number(queue):
        """Bump the monotonic booking counter inside the caller's transaction"""
        TherapyQueue.objects.filter(id=queue.id).update(current_position=F("current_position") + 1)
        queue.refresh_from_db(fields=["current_position"])
        return queue.current_position

    @staticmethod
    def deactivate_queue(queue_id, actor=None):
        with transaction.atomic():
            queue = QueueRegistry.get_queue_by_id(queue_id, lock=True)
            if not queue.is_active:
                return queue

            queue.is_active = False
            queue.save(update_fields=["is_active", "updated_at"])

            QueueCacheService.invalidate_on_commit(queue.clinic_id, queue.id)
            AuditService.record_on_commit(
                "update",
                "THERAPY_QUEUE",
                resource_id=queue.id,
                actor=actor,
                clinic_id=queue.clinic_id,
                details={"updated_field": "is_active", "is_active": False},
            )

        logger.info(f"Therapy queue deactivated: {queue.id} ({queue.therapy_type})")
        return queue
