"""
Fire-and-forget audit trail.
Writing an audit row must never fail the operation that produced it.
"""
import logging
from django.db import transaction
from django.utils import timezone

from core.models import AuditLogEntry

logger = logging.getLogger(__name__)


def actor_label(user):
    """Audit actor for a request user, 'system' for background work"""
    if user is None or not getattr(user, "is_authenticated", False):
        return "system"
    return user.get_username() or str(user.pk)


class AuditService:
    @staticmethod
    def record(action_type, resource_type, resource_id="", actor=None, clinic_id="", details=None):
        try:
            return AuditLogEntry.objects.create(
                actor=actor or "system",
                action_type=action_type,
                resource_type=resource_type,
                resource_id=str(resource_id or ""),
                clinic_id=str(clinic_id or ""),
                timestamp=timezone.now(),
                details=details or {},
            )
        except Exception as e:
            logger.warning(
                f"Audit log write failed for {action_type} {resource_type}:{resource_id}: {str(e)}"
            )
            return None

    @staticmethod
    def record_on_commit(action_type, resource_type, resource_id="", actor=None, clinic_id="", details=None):
        """Queue the audit write for after the surrounding transaction commits"""
        transaction.on_commit(
            lambda: AuditService.record(
                action_type,
                resource_type,
                resource_id=resource_id,
                actor=actor,
                clinic_id=clinic_id,
                details=details,
            )
        )
