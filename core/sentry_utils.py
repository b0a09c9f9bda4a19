"""
Sentry helpers
Context enrichment and breadcrumbs for queue operations. All calls are
no-ops when the SDK was never initialised (no SENTRY_DSN).
"""
import sentry_sdk


def set_queue_context(queue_id=None, clinic_id=None, **extra):
    """Attach the queue being worked on to subsequent Sentry events"""
    sentry_sdk.set_context("therapy_queue", {
        "queue_id": str(queue_id) if queue_id else None,
        "clinic_id": clinic_id,
        **extra
    })


def add_breadcrumb(message, category="queue", level="info", data=None):
    """Add breadcrumb to Sentry for debugging"""
    sentry_sdk.add_breadcrumb(
        message=message,
        category=category,
        level=level,
        data=data or {},
    )


def capture_error_with_context(exception, context=None):
    """Capture exception with additional context"""
    if context:
        for key, value in context.items():
            sentry_sdk.set_context(key, value)

    sentry_sdk.capture_exception(exception)
