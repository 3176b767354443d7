"""
Django admin configuration for notification models.

Registers the status change outbox with a republish action for rows
stuck in pending.
"""

from django.contrib import admin

from notifications.models import DispatchStatus, StatusChangeEvent
from notifications.tasks import publish_project_status_change


@admin.register(StatusChangeEvent)
class StatusChangeEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for StatusChangeEvent.

    Shows publication state for each committed status change.
    """

    list_display = [
        "project_id",
        "old_status",
        "new_status",
        "notification_type",
        "dispatch_status",
        "attempt_count",
        "occurred_at",
        "published_at",
    ]
    list_filter = ["dispatch_status", "notification_type", "new_status"]
    search_fields = ["project_id", "actor_id"]
    ordering = ["-occurred_at"]
    readonly_fields = [
        "project_id",
        "old_status",
        "new_status",
        "event",
        "actor_id",
        "occurred_at",
        "notification_type",
        "dispatch_status",
        "published_at",
        "attempt_count",
        "last_error",
        "created_at",
        "updated_at",
    ]
    actions = ["republish"]

    def has_add_permission(self, request):
        """Outbox rows are created by the system, not manually."""
        return False

    def has_delete_permission(self, request, obj=None):
        """Outbox rows should not be deleted for audit purposes."""
        return False

    @admin.action(description="Republish selected pending events")
    def republish(self, request, queryset):
        pending = queryset.filter(dispatch_status=DispatchStatus.PENDING)
        count = 0
        for status_event in pending:
            publish_project_status_change.delay(str(status_event.id))
            count += 1
        self.message_user(request, f"Queued {count} event(s) for publication.")
