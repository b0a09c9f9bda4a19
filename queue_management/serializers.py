from rest_framework import serializers

from .models import QueueEntry, QueueStatus, TherapyQueue, TherapyType
from .types import QueueEntryPatch


class QueueEntrySerializer(serializers.ModelSerializer):  # Serializer for QueueEntry data
    queue_id = serializers.UUIDField(read_only=True)

    class Meta:  # Meta class implementation
        model = QueueEntry
        fields = [
            "id", "queue_id", "patient_id", "appointment_id", "position", "priority",
            "status", "estimated_wait_time", "actual_wait_time", "booking_number",
            "checked_in_at", "started_at", "completed_at", "notes", "created_at", "updated_at",
        ]
        read_only_fields = fields


class TherapyQueueSerializer(serializers.ModelSerializer):  # Serializer for TherapyQueue data
    entries = serializers.SerializerMethodField()

    class Meta:  # Meta class implementation
        model = TherapyQueue
        fields = [
            "id", "clinic_id", "therapy_type", "queue_name", "is_active", "max_capacity",
            "current_position", "estimated_wait_time", "created_at", "updated_at", "entries",
        ]
        read_only_fields = fields

    def get_entries(self, obj) -> list:
        """Ordered active entries"""
        return QueueEntrySerializer(obj.entries.active().order_by("position"), many=True).data


class CreateQueueSerializer(serializers.Serializer):
    clinic_id = serializers.CharField(max_length=64)
    therapy_type = serializers.ChoiceField(choices=TherapyType.choices)
    queue_name = serializers.CharField(max_length=255)
    max_capacity = serializers.IntegerField(min_value=1, required=False)


class AddEntrySerializer(serializers.Serializer):
    patient_id = serializers.CharField(max_length=64)
    appointment_id = serializers.CharField(max_length=64, required=False, allow_null=True, allow_blank=True)
    priority = serializers.IntegerField(required=False, default=0)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class CompleteEntrySerializer(serializers.Serializer):
    actual_wait_time = serializers.IntegerField(min_value=0, required=False, allow_null=True)


class UpdateEntrySerializer(serializers.Serializer):
    """Sparse patch: only keys present in the payload are applied"""
    position = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    status = serializers.ChoiceField(choices=QueueStatus.choices, required=False)
    estimated_wait_time = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    actual_wait_time = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    priority = serializers.IntegerField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("No fields to update")
        return attrs

    def to_patch(self):
        return QueueEntryPatch.from_dict(self.validated_data)
