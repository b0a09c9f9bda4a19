from django.core.cache import cache
import logging

logger = logging.getLogger(__name__)


class CacheService:
    """
    Thin wrapper over the Django cache.
    Cache failures never break the caller: reads degrade to a miss and
    writes/deletes are logged and dropped.
    """

    @staticmethod
    def get(key):
        try:
            return cache.get(key)
        except Exception as e:
            logger.warning(f"Cache read failed for {key}: {str(e)}")
            return None

    @staticmethod
    def set(key, value, timeout=300):
        try:
            cache.set(key, value, timeout)
        except Exception as e:
            logger.warning(f"Cache write failed for {key}: {str(e)}")

    @staticmethod
    def get_or_set(key, callback, timeout=300):
        value = CacheService.get(key)
        if value is None:
            value = callback()
            CacheService.set(key, value, timeout)
        return value

    @staticmethod
    def delete_many(keys):
        keys = list(keys)
        if not keys:
            return
        try:
            cache.delete_many(keys)
        except Exception as e:
            logger.warning(f"Cache invalidation failed for {len(keys)} keys: {str(e)}")


cache_service = CacheService()
