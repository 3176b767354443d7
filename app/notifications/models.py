"""
Notification outbox models.

Models:
    StatusChangeEvent: One committed project status change awaiting
        publication to the notification channel

Design Decisions:
    - Rows are written by the project_status_changed receiver inside the
      transition's transaction, then published by a Celery task queued
      on commit; a row left pending (broker down, publish failed) is
      picked up again by republish_pending_status_changes
    - Recipients are actor ids, resolved from the project's parties by
      role when the event is published
    - Statuses with no user-facing notification are still published,
      with notification_type empty

Usage:
    from notifications.models import StatusChangeEvent

    pending = StatusChangeEvent.objects.filter(
        dispatch_status=DispatchStatus.PENDING,
    )
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin
from projects.states import ActorRole, ProjectStatus


# =============================================================================
# Enums
# =============================================================================


class NotificationType(models.TextChoices):
    """Notification kinds shown to users in the client apps."""

    PROJECT_SUBMITTED = "project_submitted", "Project Submitted"
    QUOTE_READY = "quote_ready", "Quote Ready"
    PAYMENT_RECEIVED = "payment_received", "Payment Received"
    TASK_AVAILABLE = "task_available", "Task Available"
    TASK_ASSIGNED = "task_assigned", "Task Assigned"
    WORK_SUBMITTED = "work_submitted", "Work Submitted"
    QC_APPROVED = "qc_approved", "QC Approved"
    QC_REJECTED = "qc_rejected", "QC Rejected"
    REVISION_REQUESTED = "revision_requested", "Revision Requested"
    PROJECT_DELIVERED = "project_delivered", "Project Delivered"
    PROJECT_COMPLETED = "project_completed", "Project Completed"
    SYSTEM_ALERT = "system_alert", "System Alert"


class DispatchStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PUBLISHED = "published", "Published"


# New status -> (notification type, roles notified)
STATUS_NOTIFICATIONS = {
    ProjectStatus.SUBMITTED: (NotificationType.PROJECT_SUBMITTED, (ActorRole.SUPERVISOR,)),
    ProjectStatus.QUOTED: (NotificationType.QUOTE_READY, (ActorRole.CLIENT,)),
    ProjectStatus.PAID: (
        NotificationType.PAYMENT_RECEIVED,
        (ActorRole.CLIENT, ActorRole.SUPERVISOR),
    ),
    ProjectStatus.READY_TO_ASSIGN: (NotificationType.TASK_AVAILABLE, (ActorRole.SUPERVISOR,)),
    ProjectStatus.ASSIGNED: (
        NotificationType.TASK_ASSIGNED,
        (ActorRole.CLIENT, ActorRole.FULFILLER),
    ),
    ProjectStatus.DELIVERED: (NotificationType.WORK_SUBMITTED, (ActorRole.SUPERVISOR,)),
    ProjectStatus.APPROVED: (NotificationType.QC_APPROVED, (ActorRole.FULFILLER,)),
    ProjectStatus.REVISION_REQUESTED: (NotificationType.QC_REJECTED, (ActorRole.FULFILLER,)),
    ProjectStatus.CLIENT_REVISION: (
        NotificationType.REVISION_REQUESTED,
        (ActorRole.SUPERVISOR, ActorRole.FULFILLER),
    ),
    ProjectStatus.DELIVERED_TO_CLIENT: (NotificationType.PROJECT_DELIVERED, (ActorRole.CLIENT,)),
    ProjectStatus.COMPLETED: (
        NotificationType.PROJECT_COMPLETED,
        (ActorRole.CLIENT, ActorRole.SUPERVISOR, ActorRole.FULFILLER),
    ),
    ProjectStatus.CANCELLED: (
        NotificationType.SYSTEM_ALERT,
        (ActorRole.CLIENT, ActorRole.SUPERVISOR, ActorRole.FULFILLER),
    ),
    ProjectStatus.REFUNDED: (
        NotificationType.SYSTEM_ALERT,
        (ActorRole.CLIENT, ActorRole.SUPERVISOR, ActorRole.FULFILLER),
    ),
}


def notification_for_status(status: str) -> tuple[str, tuple[str, ...]]:
    """Notification type and notified roles for a new status ("" and () if none)."""
    return STATUS_NOTIFICATIONS.get(status, ("", ()))


# =============================================================================
# Models
# =============================================================================


class StatusChangeEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Outbox row for one committed project status change.

    Fields:
        project_id: Project that changed
        old_status: Status before the change (null on submission)
        new_status: Status after the change
        event: Workflow event that caused it
        actor_id: Actor that fired the event
        occurred_at: Server time of the transition
        notification_type: User-facing notification kind ("" when none)
        dispatch_status: pending until published to the channel
        published_at: When the message was published
        attempt_count: Publish attempts so far
        last_error: Error of the last failed attempt
    """

    project_id = models.UUIDField(db_index=True)
    old_status = models.CharField(
        max_length=30,
        choices=ProjectStatus.choices,
        null=True,
        blank=True,
    )
    new_status = models.CharField(
        max_length=30,
        choices=ProjectStatus.choices,
    )
    event = models.CharField(max_length=50)
    actor_id = models.UUIDField(null=True, blank=True)
    occurred_at = models.DateTimeField()
    notification_type = models.CharField(
        max_length=30,
        choices=NotificationType.choices,
        blank=True,
        default="",
    )
    dispatch_status = models.CharField(
        max_length=10,
        choices=DispatchStatus.choices,
        default=DispatchStatus.PENDING,
        db_index=True,
    )
    published_at = models.DateTimeField(null=True, blank=True)
    attempt_count = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["occurred_at"]
        indexes = [
            models.Index(
                fields=["dispatch_status", "created_at"],
                name="status_event_dispatch_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.project_id}: {self.old_status} -> {self.new_status} ({self.dispatch_status})"

    @property
    def notified_roles(self) -> tuple[str, ...]:
        return notification_for_status(self.new_status)[1]
