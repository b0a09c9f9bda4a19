"""
Therapy Queue API Views
Thin REST surface over QueueRegistry and QueueOrderingEngine.

Queue errors raised by the services propagate to core.exception_handler,
which renders them as {"error": ..., "code": ...} with the matching status.
"""
from rest_framework.views import APIView
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework import status

from core.audit import actor_label
from queue_management import exceptions
from queue_management.registry import QueueRegistry
from queue_management.serializers import (
    AddEntrySerializer,
    CompleteEntrySerializer,
    CreateQueueSerializer,
    QueueEntrySerializer,
    TherapyQueueSerializer,
    UpdateEntrySerializer,
)
from queue_management.services import QueueOrderingEngine


def _parse_active_flag(raw):
    if raw is None or raw == "":
        return None
    value = raw.lower()
    if value in ("true", "1", "yes"):
        return True
    if value in ("false", "0", "no"):
        return False
    raise exceptions.ValidationError(f"Invalid value for active: {raw}")


class TherapyQueueCreateView(APIView):
    """Register a new therapy queue for a clinic"""
    permission_classes = [IsAuthenticated]

    def post(self, request):  # Post
        serializer = CreateQueueSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        queue = QueueRegistry.create_queue(
            clinic_id=data["clinic_id"],
            therapy_type=data["therapy_type"],
            queue_name=data["queue_name"],
            max_capacity=data.get("max_capacity"),
            actor=actor_label(request.user),
        )
        return Response(TherapyQueueSerializer(queue).data, status=status.HTTP_201_CREATED)


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def get_clinic_queues(request, clinic_id):
    """All queues of a clinic, newest first. ?active=true|false filters by state"""
    active_only = _parse_active_flag(request.query_params.get("active"))
    queues = QueueRegistry.list_queues(clinic_id, active_only=active_only)
    return Response({"count": len(queues), "results": queues})


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def get_queue_by_type(request, clinic_id, therapy_type):
    return Response(QueueRegistry.get_queue(clinic_id, therapy_type.upper()))


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def deactivate_queue(request, queue_id):
    queue = QueueRegistry.deactivate_queue(queue_id, actor=actor_label(request.user))
    return Response(TherapyQueueSerializer(queue).data)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def add_to_queue(request, queue_id):
    """Enroll a patient; the response carries the computed position and wait estimate"""
    serializer = AddEntrySerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    entry = QueueOrderingEngine.add_entry(
        queue_id,
        data["patient_id"],
        appointment_id=data.get("appointment_id") or None,
        priority=data.get("priority", 0),
        notes=data.get("notes", ""),
        actor=actor_label(request.user),
    )
    return Response(QueueEntrySerializer(entry).data, status=status.HTTP_201_CREATED)


class QueueEntryDetailView(APIView):
    """Patch or remove a single queue entry"""
    permission_classes = [IsAuthenticated]

    def patch(self, request, entry_id):  # Patch
        serializer = UpdateEntrySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        entry = QueueOrderingEngine.update_entry(
            entry_id, serializer.to_patch(), actor=actor_label(request.user)
        )
        return Response(QueueEntrySerializer(entry).data)

    def delete(self, request, entry_id):  # Delete
        QueueOrderingEngine.remove_entry(entry_id, actor=actor_label(request.user))
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def start_entry(request, entry_id):
    entry = QueueOrderingEngine.start_entry(entry_id, actor=actor_label(request.user))
    return Response(QueueEntrySerializer(entry).data)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def check_in_entry(request, entry_id):
    entry = QueueOrderingEngine.check_in_entry(entry_id, actor=actor_label(request.user))
    return Response(QueueEntrySerializer(entry).data)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def complete_entry(request, entry_id):
    """Complete an entry; without actual_wait_time the wait since check-in is used"""
    serializer = CompleteEntrySerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    entry = QueueOrderingEngine.complete_entry(
        entry_id,
        actual_wait_time=serializer.validated_data.get("actual_wait_time"),
        actor=actor_label(request.user),
    )
    return Response(QueueEntrySerializer(entry).data)


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def get_patient_position(request, appointment_id):
    return Response(QueueOrderingEngine.get_patient_position(appointment_id))


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def get_queue_stats(request, queue_id):
    return Response(QueueOrderingEngine.get_stats(queue_id))


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def reorder_queue(request, queue_id):
    entries = QueueOrderingEngine.reorder(queue_id, actor=actor_label(request.user))
    return Response({
        "queue_id": str(queue_id),
        "entries": QueueEntrySerializer(entries, many=True).data,
    })
