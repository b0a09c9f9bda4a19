"""
Queue management error taxonomy.
Raised by the registry and ordering engine, rendered by core.exception_handler.
"""


class QueueError(Exception):
    code = "queue_error"
    status_code = 400
    default_message = "Queue operation failed"

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        payload = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFound(QueueError):
    code = "not_found"
    status_code = 404
    default_message = "Resource not found"


class DuplicateQueue(QueueError):
    code = "duplicate_queue"
    status_code = 409
    default_message = "An active queue already exists for this therapy type"


class QueueInactive(QueueError):
    code = "queue_inactive"
    status_code = 409
    default_message = "Queue is not active"


class CapacityExceeded(QueueError):
    code = "capacity_exceeded"
    status_code = 409
    default_message = "Queue is at maximum capacity"


class DuplicateEntry(QueueError):
    code = "duplicate_entry"
    status_code = 409
    default_message = "Patient is already in the queue"


class ValidationError(QueueError):
    code = "validation_error"
    status_code = 400
    default_message = "Invalid input"


class ConcurrencyConflict(QueueError):
    code = "concurrency_conflict"
    status_code = 409
    default_message = "Queue is being modified by another request, try again"
