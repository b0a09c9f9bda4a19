from django.contrib import admin
from .models import QueueEntry, TherapyQueue


class QueueEntryInline(admin.TabularInline):
    model = QueueEntry
    extra = 0
    fields = ('patient_id', 'appointment_id', 'position', 'priority', 'status', 'estimated_wait_time', 'booking_number')
    readonly_fields = ('position', 'estimated_wait_time', 'booking_number')
    ordering = ('position',)


@admin.register(TherapyQueue)
class TherapyQueueAdmin(admin.ModelAdmin):  # Admin configuration for TherapyQueue model
    list_display = ('queue_name', 'clinic_id', 'therapy_type', 'is_active', 'max_capacity', 'current_position', 'created_at')
    list_filter = ('therapy_type', 'is_active')
    search_fields = ('queue_name', 'clinic_id')
    readonly_fields = ('current_position', 'estimated_wait_time', 'created_at', 'updated_at')
    inlines = [QueueEntryInline]


@admin.register(QueueEntry)
class QueueEntryAdmin(admin.ModelAdmin):  # Admin configuration for QueueEntry model
    list_display = ('patient_id', 'queue', 'position', 'priority', 'status', 'estimated_wait_time', 'actual_wait_time', 'created_at')
    list_filter = ('status', 'queue__therapy_type')
    search_fields = ('patient_id', 'appointment_id')
    readonly_fields = ('position', 'booking_number', 'created_at', 'updated_at')
    ordering = ('queue', 'position')
