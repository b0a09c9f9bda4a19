from django.db import models
from django.utils import timezone
import uuid


class AuditLogEntry(models.Model):
    ACTION_TYPE_CHOICES = [
        ("create", "Create"),
        ("update", "Update"),
        ("delete", "Delete"),
        ("reorder", "Reorder"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    actor = models.CharField(max_length=255, default="system")
    action_type = models.CharField(max_length=50, choices=ACTION_TYPE_CHOICES)
    resource_type = models.CharField(max_length=100)
    resource_id = models.CharField(max_length=255, blank=True)
    clinic_id = models.CharField(max_length=64, blank=True)
    timestamp = models.DateTimeField(default=timezone.now)
    details = models.JSONField(default=dict, blank=True)
    success = models.BooleanField(default=True)
    error_message = models.TextField(blank=True)

    class Meta:
        db_table = "audit_logs"
        ordering = ["-timestamp"]
        indexes = [
            models.Index(fields=["actor", "timestamp"], name="audit_actor_timestamp_idx"),
            models.Index(fields=["action_type"], name="audit_action_type_idx"),
            models.Index(fields=["resource_type"], name="audit_resource_type_idx"),
        ]

    def __str__(self):
        return f"{self.action_type} {self.resource_type}:{self.resource_id} by {self.actor}"
