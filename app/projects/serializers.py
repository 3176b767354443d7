"""
Serializers for projects API.

Serializer Hierarchy:
    ProjectSerializer: Full project for responses (read-only)
    ProjectCreateSerializer: SubmitProject request
    TransitionSerializer: Workflow event request
    StatusHistorySerializer: One committed transition
    DeliverableSerializer: One deliverable version (read-only)
    DeliverableCreateSerializer: SubmitDeliverable request
    QCStatusSerializer: QC decision request

Design Decisions:
    - Read and write serializers are separate
    - Status and timestamps are never writable; they change only through
      the workflow engine
"""

from __future__ import annotations

from rest_framework import serializers

from projects.models import Deliverable, Project, ProjectStatusHistory
from projects.states import QCStatus, ServiceType
from projects.workflow import Event, allowed_events


class ProjectSerializer(serializers.ModelSerializer):
    """Project with its lifecycle state and the events legal from it."""

    allowed_events = serializers.SerializerMethodField(
        help_text="Events legal from the current status (role checks still apply)"
    )

    class Meta:
        model = Project
        fields = [
            "id",
            "project_number",
            "client_id",
            "supervisor_id",
            "fulfiller_id",
            "title",
            "service_type",
            "description",
            "deadline",
            "status",
            "status_changed_at",
            "is_terminal",
            "progress_percent",
            "quoted_price_cents",
            "fulfiller_payout_cents",
            "supervisor_commission_cents",
            "currency",
            "payment_reference",
            "quoted_at",
            "paid_at",
            "assigned_at",
            "delivered_at",
            "approved_at",
            "completed_at",
            "cancelled_at",
            "refunded_at",
            "cancellation_reason",
            "created_at",
            "updated_at",
            "allowed_events",
        ]
        read_only_fields = fields

    def get_allowed_events(self, obj: Project) -> list[str]:
        return [str(event) for event in allowed_events(obj.status)]


class ProjectCreateSerializer(serializers.Serializer):
    """Request body of SubmitProject. The client is the authenticated actor."""

    supervisor_id = serializers.UUIDField()
    title = serializers.CharField(max_length=255)
    service_type = serializers.ChoiceField(
        choices=ServiceType.choices,
        default=ServiceType.NEW_PROJECT,
    )
    deadline = serializers.DateTimeField(required=False, allow_null=True, default=None)
    description = serializers.CharField(required=False, allow_blank=True, default="")


class TransitionSerializer(serializers.Serializer):
    """
    Request body of a workflow transition.

    Payload keys by event:
        send_quote: quoted_price_cents, fulfiller_payout_cents,
            supervisor_commission_cents (optional, default 0)
        confirm_payment: amount_cents, external_ref
        assign: fulfiller_id
        update_progress: progress_percent
        cancel: override (supervisor, in_progress only), reason
        any: notes
    """

    event = serializers.ChoiceField(choices=Event.choices)
    payload = serializers.DictField(required=False, default=dict)


class StatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = ProjectStatusHistory
        fields = [
            "id",
            "from_status",
            "to_status",
            "event",
            "actor_id",
            "actor_role",
            "notes",
            "metadata",
            "created_at",
        ]
        read_only_fields = fields


class DeliverableSerializer(serializers.ModelSerializer):
    class Meta:
        model = Deliverable
        fields = [
            "id",
            "project",
            "version",
            "file_url",
            "file_name",
            "file_type",
            "file_size_bytes",
            "uploaded_by",
            "qc_status",
            "qc_by",
            "qc_at",
            "qc_notes",
            "is_final",
            "created_at",
        ]
        read_only_fields = fields


class DeliverableCreateSerializer(serializers.Serializer):
    """Metadata of a file already uploaded to storage."""

    file_url = serializers.CharField(max_length=1024)
    file_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    file_type = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    file_size_bytes = serializers.IntegerField(min_value=0, required=False, allow_null=True, default=None)


class QCStatusSerializer(serializers.Serializer):
    qc_status = serializers.ChoiceField(
        choices=[(QCStatus.APPROVED, "Approved"), (QCStatus.REJECTED, "Rejected")]
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")
