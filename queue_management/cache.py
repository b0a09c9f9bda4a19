"""
Read caches for queue listings, per-type lookups and statistics.

Keys:
    queues:clinic:{clinic_id}:{all|true|false}
    queue:clinic:{clinic_id}:type:{therapy_type}
    queue-stats:{queue_id}

Every key a clinic or queue can own is enumerable, so invalidation deletes
them explicitly instead of scanning by pattern.
"""
import logging
from django.conf import settings
from django.db import transaction

from core.cache_service import CacheService
from queue_management.models import TherapyType

logger = logging.getLogger(__name__)

ACTIVE_FILTERS = ("all", "true", "false")


def _queue_settings():
    return getattr(settings, "THERAPY_QUEUE", {})


class QueueCacheService:
    @staticmethod
    def queue_ttl():
        return _queue_settings().get("QUEUE_CACHE_TTL", 300)  # 5 minutes

    @staticmethod
    def stats_ttl():
        return _queue_settings().get("STATS_CACHE_TTL", 180)  # 3 minutes

    @staticmethod
    def active_filter(active_only):
        if active_only is None:
            return "all"
        return "true" if active_only else "false"

    @staticmethod
    def clinic_queues_key(clinic_id, active_only=None):
        return f"queues:clinic:{clinic_id}:{QueueCacheService.active_filter(active_only)}"

    @staticmethod
    def queue_by_type_key(clinic_id, therapy_type):
        return f"queue:clinic:{clinic_id}:type:{therapy_type}"

    @staticmethod
    def stats_key(queue_id):
        return f"queue-stats:{queue_id}"

    @staticmethod
    def keys_for(clinic_id, queue_id=None):
        keys = [f"queues:clinic:{clinic_id}:{flag}" for flag in ACTIVE_FILTERS]
        keys.extend(
            QueueCacheService.queue_by_type_key(clinic_id, therapy_type)
            for therapy_type in TherapyType.values
        )
        if queue_id is not None:
            keys.append(QueueCacheService.stats_key(queue_id))
        return keys

    @staticmethod
    def invalidate(clinic_id, queue_id=None):
        keys = QueueCacheService.keys_for(clinic_id, queue_id)
        CacheService.delete_many(keys)
        logger.debug(f"Invalidated {len(keys)} queue cache keys for clinic {clinic_id}")

    @staticmethod
    def invalidate_on_commit(clinic_id, queue_id=None):
        """Defer invalidation until the surrounding transaction commits"""
        transaction.on_commit(lambda: QueueCacheService.invalidate(clinic_id, queue_id))
