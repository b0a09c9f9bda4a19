"""
Therapy Queue Models
A clinic runs at most one active queue per therapy type. Entries are ranked
by priority then arrival; only WAITING and IN_PROGRESS entries hold a position.
"""
import uuid
from django.db import models
from django.db.models import Q
from django.utils import timezone


class TherapyType(models.TextChoices):
    SHODHANA = "SHODHANA", "Shodhana (purification)"
    SHAMANA = "SHAMANA", "Shamana (palliative)"
    RASAYANA = "RASAYANA", "Rasayana (rejuvenation)"
    VAJIKARANA = "VAJIKARANA", "Vajikarana (aphrodisiac)"


class QueueStatus(models.TextChoices):
    WAITING = "WAITING", "Waiting"
    IN_PROGRESS = "IN_PROGRESS", "In Progress"
    COMPLETED = "COMPLETED", "Completed"
    CANCELLED = "CANCELLED", "Cancelled"
    NO_SHOW = "NO_SHOW", "No Show"
    REMOVED = "REMOVED", "Removed"


ACTIVE_STATUSES = (QueueStatus.WAITING, QueueStatus.IN_PROGRESS)
TERMINAL_STATUSES = (
    QueueStatus.COMPLETED,
    QueueStatus.CANCELLED,
    QueueStatus.NO_SHOW,
    QueueStatus.REMOVED,
)

# Authoritative ordering of active entries
ACTIVE_ORDERING = ("-priority", "created_at", "booking_number")


class QueueEntryQuerySet(models.QuerySet):
    def active(self):
        return self.filter(status__in=ACTIVE_STATUSES)

    def ranked(self):
        return self.active().order_by(*ACTIVE_ORDERING)


class TherapyQueue(models.Model):  # Capacity-bounded queue for one therapy type at one clinic
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic_id = models.CharField(max_length=64, db_index=True)
    therapy_type = models.CharField(max_length=20, choices=TherapyType.choices)
    queue_name = models.CharField(max_length=255)
    is_active = models.BooleanField(default=True)
    max_capacity = models.PositiveIntegerField(default=10)
    current_position = models.PositiveIntegerField(default=0)
    estimated_wait_time = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:  # Meta class implementation
        db_table = "therapy_queues"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["clinic_id", "therapy_type"], name="therapy_queue_clinic_type_idx"),
            models.Index(fields=["is_active"], name="therapy_queue_active_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["clinic_id", "therapy_type"],
                condition=Q(is_active=True),
                name="unique_active_queue_per_therapy_type",
            ),
        ]

    def __str__(self):
        return f"{self.queue_name} ({self.therapy_type} @ {self.clinic_id})"


class QueueEntry(models.Model):  # A patient's place in a therapy queue
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    queue = models.ForeignKey(
        TherapyQueue, on_delete=models.CASCADE, related_name="entries"
    )
    patient_id = models.CharField(max_length=64, db_index=True)
    appointment_id = models.CharField(max_length=64, null=True, blank=True, db_index=True)
    position = models.PositiveIntegerField(null=True, blank=True)
    priority = models.IntegerField(default=0)
    status = models.CharField(
        max_length=20, choices=QueueStatus.choices, default=QueueStatus.WAITING
    )
    estimated_wait_time = models.PositiveIntegerField(null=True, blank=True)
    actual_wait_time = models.PositiveIntegerField(null=True, blank=True)
    booking_number = models.PositiveIntegerField(default=0)
    checked_in_at = models.DateTimeField(null=True, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    objects = QueueEntryQuerySet.as_manager()

    class Meta:  # Meta class implementation
        db_table = "therapy_queue_entries"
        ordering = ["position", "created_at"]
        verbose_name_plural = "queue entries"
        indexes = [
            models.Index(fields=["queue", "status"], name="queue_entry_queue_status_idx"),
            models.Index(fields=["position"], name="queue_entry_position_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["queue", "patient_id"],
                condition=Q(status__in=["WAITING", "IN_PROGRESS"]),
                name="unique_active_entry_per_patient",
            ),
        ]

    def __str__(self):
        return f"{self.patient_id} #{self.position} in {self.queue_id} ({self.status})"

    @property
    def is_active(self):
        return self.status in ACTIVE_STATUSES
