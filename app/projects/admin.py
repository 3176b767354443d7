"""
Project admin configuration.

Projects are read-only here: status changes must go through the workflow
engine so the escrow postings and history rows stay consistent.
"""

from django.contrib import admin

from projects.models import Deliverable, Project, ProjectStatusHistory


class ProjectStatusHistoryInline(admin.TabularInline):
    model = ProjectStatusHistory
    extra = 0
    can_delete = False
    fields = ["created_at", "from_status", "to_status", "event", "actor_role", "actor_id"]
    readonly_fields = fields
    ordering = ["created_at"]

    def has_add_permission(self, request, obj=None):
        return False


class DeliverableInline(admin.TabularInline):
    model = Deliverable
    extra = 0
    can_delete = False
    fields = ["version", "file_name", "qc_status", "is_final", "created_at"]
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = [
        "project_number",
        "title",
        "service_type",
        "status",
        "price_display",
        "progress_percent",
        "created_at",
    ]
    list_filter = ["status", "service_type", "is_terminal"]
    search_fields = ["project_number", "title", "client_id", "supervisor_id", "fulfiller_id"]
    ordering = ["-created_at"]
    inlines = [ProjectStatusHistoryInline, DeliverableInline]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "project_number", "title", "service_type", "description"),
            },
        ),
        (
            "Participants",
            {
                "fields": ("client_id", "supervisor_id", "fulfiller_id"),
            },
        ),
        (
            "Status",
            {
                "fields": (
                    "status",
                    "status_changed_at",
                    "is_terminal",
                    "progress_percent",
                    "deadline",
                    "cancellation_reason",
                ),
            },
        ),
        (
            "Money",
            {
                "fields": (
                    "quoted_price_cents",
                    "fulfiller_payout_cents",
                    "supervisor_commission_cents",
                    "currency",
                    "payment_reference",
                ),
            },
        ),
        (
            "Timestamps",
            {
                "fields": (
                    "quoted_at",
                    "paid_at",
                    "assigned_at",
                    "delivered_at",
                    "approved_at",
                    "completed_at",
                    "cancelled_at",
                    "refunded_at",
                    "created_at",
                    "updated_at",
                ),
                "classes": ("collapse",),
            },
        ),
    )

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description="Price")
    def price_display(self, obj):
        if obj.quoted_price_cents is None:
            return "-"
        return f"{obj.quoted_price_cents / 100:.2f} {obj.currency}"
