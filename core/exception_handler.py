"""
DRF exception handler rendering every API error as {"error": ..., "code": ...}
"""
import logging
from rest_framework import status
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from queue_management.exceptions import QueueError

logger = logging.getLogger(__name__)


def _first_message(detail):
    """Flatten DRF's nested validation detail to one readable line"""
    if isinstance(detail, dict):
        for field, value in detail.items():
            message = _first_message(value)
            if field == "non_field_errors":
                return message
            return f"{field}: {message}"
    if isinstance(detail, (list, tuple)) and detail:
        return _first_message(detail[0])
    return str(detail)


def queue_exception_handler(exc, context):
    if isinstance(exc, QueueError):
        return Response(exc.to_dict(), status=exc.status_code)

    if isinstance(exc, DRFValidationError):
        return Response(
            {
                "error": _first_message(exc.detail),
                "code": "validation_error",
                "details": exc.detail,
            },
            status=status.HTTP_400_BAD_REQUEST,
        )

    response = exception_handler(exc, context)
    if response is not None:
        detail = response.data.get("detail", response.data) if isinstance(response.data, dict) else response.data
        code = getattr(detail, "code", None) or getattr(exc, "default_code", "error")
        response.data = {"error": str(detail), "code": code}
        return response

    view = context.get("view")
    logger.error(
        f"Unhandled API error in {type(view).__name__ if view else 'unknown view'}: {str(exc)}",
        exc_info=exc,
    )
    return None
