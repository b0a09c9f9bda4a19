from django.contrib import admin
from .models import AuditLogEntry


@admin.register(AuditLogEntry)
class AuditLogEntryAdmin(admin.ModelAdmin):
    list_display = ("actor", "action_type", "resource_type", "resource_id", "clinic_id", "timestamp", "success")
    list_filter = ("action_type", "resource_type", "success", "timestamp")
    search_fields = ("actor", "resource_id", "clinic_id")
    readonly_fields = (
        "actor",
        "action_type",
        "resource_type",
        "resource_id",
        "clinic_id",
        "timestamp",
        "details",
        "success",
        "error_message",
    )
    date_hierarchy = "timestamp"

    def has_add_permission(self, request):
        return False
