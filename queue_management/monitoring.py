"""
Operation logging for the queue engine.
Wraps engine entry points so the ordering code itself stays free of timing
and error-reporting boilerplate.
"""
import logging
import time
from functools import wraps

from core.sentry_utils import add_breadcrumb
from queue_management.exceptions import QueueError

queue_logger = logging.getLogger("queue_management.operations")


def monitor_queue_operation(operation):
    """
    Log duration and outcome of a queue operation.

    Usage:
        @monitor_queue_operation('add_entry')
        def add_entry(queue_id, patient_id, ...):
            ...

    Business errors (QueueError) are logged at WARNING, anything else at
    ERROR with traceback. The exception is always re-raised unchanged.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.monotonic()
            try:
                result = func(*args, **kwargs)
            except QueueError as e:
                queue_logger.warning(
                    f"QUEUE_OPERATION_REJECTED | op={operation} | code={e.code} | {e.message}"
                )
                add_breadcrumb(
                    f"{operation} rejected", level="warning", data={"code": e.code, "message": e.message}
                )
                raise
            except Exception as e:
                queue_logger.error(
                    f"QUEUE_OPERATION_ERROR | op={operation} | {type(e).__name__}: {str(e)}",
                    exc_info=True,
                )
                raise

            elapsed_ms = round((time.monotonic() - start_time) * 1000, 2)
            queue_logger.info(f"QUEUE_OPERATION_SUCCESS | op={operation} | response_time_ms={elapsed_ms}")
            add_breadcrumb(f"{operation} succeeded", data={"response_time_ms": elapsed_ms})
            return result

        return wrapper

    return decorator
