"""
Project domain models.

Models:
    Project: A unit of commissioned work and its lifecycle status
    ProjectStatusHistory: Append-only log of committed transitions
    Deliverable: Versioned work artifact submitted by the fulfiller

Project.status is a protected django-fsm field: it cannot be assigned
directly, and its only transition (apply_transition) is called by
projects.workflow.WorkflowEngine, which consults the transition table.

Usage:
    from projects.models import Project
    from projects.workflow import WorkflowEngine

    project = WorkflowEngine.transition(project.id, "start_analysis", supervisor_id)
"""

from __future__ import annotations

import uuid

from django.conf import settings
from django.core.validators import MaxValueValidator
from django.db import models
from django.utils import timezone

from django_fsm import RETURN_VALUE, FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin
from projects.states import (
    TERMINAL_STATUSES,
    ActorRole,
    ProjectStatus,
    QCStatus,
    ServiceType,
)

# Server-side timestamp stamped when a project enters each status
STATUS_TIMESTAMP_FIELDS = {
    ProjectStatus.QUOTED: "quoted_at",
    ProjectStatus.PAID: "paid_at",
    ProjectStatus.ASSIGNED: "assigned_at",
    ProjectStatus.DELIVERED: "delivered_at",
    ProjectStatus.APPROVED: "approved_at",
    ProjectStatus.COMPLETED: "completed_at",
    ProjectStatus.CANCELLED: "cancelled_at",
    ProjectStatus.REFUNDED: "refunded_at",
}


def generate_project_number() -> str:
    """Human-readable project number, e.g. ``AX-3F9A0C12``."""
    return f"AX-{uuid.uuid4().hex[:8].upper()}"


def default_currency() -> str:
    return settings.LEDGER_DEFAULT_CURRENCY


class Project(UUIDPrimaryKeyMixin, BaseModel):
    """
    A commissioned unit of work.

    Fields:
        id: UUID primary key (also the ledger reference of its escrow postings)
        project_number: Human-readable number shown to users
        client_id / supervisor_id / fulfiller_id: Actor ids (fulfiller set on assignment)
        title / service_type / description: What is being commissioned
        status: Lifecycle status (protected FSM field)
        quoted_price_cents: Price the client pays into escrow
        fulfiller_payout_cents: Part of the price released to the fulfiller
        supervisor_commission_cents: Part of the price paid to the supervisor on completion
        currency: ISO 4217 currency code
        deadline: When the work is due
        progress_percent: Fulfiller-reported progress (0-100)
        payment_reference: External reference consumed by the payment
        status_changed_at: When status last changed
        is_terminal: Whether status is completed, cancelled or refunded
        *_at: Server-stamped lifecycle timestamps
        cancellation_reason: Why the project was cancelled or refunded

    Note:
        Projects are never deleted; terminal projects are kept for audit.
    """

    # ==========================================================================
    # Identity & Participants
    # ==========================================================================

    project_number = models.CharField(
        max_length=20,
        unique=True,
        default=generate_project_number,
        editable=False,
        help_text="Human-readable project number",
    )
    client_id = models.UUIDField(
        db_index=True,
        help_text="Actor that commissioned the work",
    )
    supervisor_id = models.UUIDField(
        db_index=True,
        help_text="Actor that quotes, assigns and reviews the work",
    )
    fulfiller_id = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Actor doing the work (set on assignment)",
    )

    # ==========================================================================
    # Work Description
    # ==========================================================================

    title = models.CharField(
        max_length=255,
        help_text="Short title of the work",
    )
    service_type = models.CharField(
        max_length=30,
        choices=ServiceType.choices,
        default=ServiceType.NEW_PROJECT,
        help_text="Kind of service requested",
    )
    description = models.TextField(
        blank=True,
        default="",
        help_text="Client's description of the work",
    )
    deadline = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the work is due",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=ProjectStatus.SUBMITTED,
        choices=ProjectStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current lifecycle status (managed by the workflow engine)",
    )
    status_changed_at = models.DateTimeField(
        default=timezone.now,
        help_text="When the status last changed",
    )
    is_terminal = models.BooleanField(
        default=False,
        help_text="Whether the project reached completed, cancelled or refunded",
    )
    progress_percent = models.PositiveSmallIntegerField(
        default=0,
        validators=[MaxValueValidator(100)],
        help_text="Fulfiller-reported progress (0-100)",
    )

    # ==========================================================================
    # Money
    # ==========================================================================

    quoted_price_cents = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="Quoted price in minor units",
    )
    fulfiller_payout_cents = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="Fulfiller's share of the price in minor units",
    )
    supervisor_commission_cents = models.PositiveBigIntegerField(
        default=0,
        help_text="Supervisor's share of the price in minor units",
    )
    currency = models.CharField(
        max_length=3,
        default=default_currency,
        help_text="ISO 4217 currency code",
    )
    payment_reference = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="External payment reference consumed at confirmation",
    )

    # ==========================================================================
    # Lifecycle Timestamps
    # ==========================================================================

    quoted_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    assigned_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)

    cancellation_reason = models.TextField(
        blank=True,
        default="",
        help_text="Why the project was cancelled or refunded",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "-created_at"], name="project_status_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(progress_percent__lte=100),
                name="project_progress_at_most_100",
            ),
            models.CheckConstraint(
                condition=models.Q(fulfiller_payout_cents__isnull=True)
                | models.Q(
                    quoted_price_cents__gte=models.F("fulfiller_payout_cents")
                    + models.F("supervisor_commission_cents")
                ),
                name="project_shares_within_price",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.project_number} ({self.status})"

    # ==========================================================================
    # State Transition (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source="*",
        target=RETURN_VALUE(*ProjectStatus.values),
    )
    def apply_transition(self, to_status: str, now=None) -> str:
        """
        Move to ``to_status`` and stamp timestamps.

        Only WorkflowEngine calls this, after checking the transition table.
        """
        now = now or timezone.now()
        self.status_changed_at = now
        self.is_terminal = to_status in TERMINAL_STATUSES
        timestamp_field = STATUS_TIMESTAMP_FIELDS.get(to_status)
        if timestamp_field:
            setattr(self, timestamp_field, now)
        return to_status

    # ==========================================================================
    # Properties
    # ==========================================================================

    def roles_of(self, actor_id) -> set[str]:
        """Roles ``actor_id`` holds on this project."""
        roles = set()
        if actor_id is None:
            return roles
        if actor_id == self.client_id:
            roles.add(ActorRole.CLIENT)
        if actor_id == self.supervisor_id:
            roles.add(ActorRole.SUPERVISOR)
        if self.fulfiller_id is not None and actor_id == self.fulfiller_id:
            roles.add(ActorRole.FULFILLER)
        return roles

    @property
    def commission_cents(self) -> int:
        """What stays in escrow after release: quoted price minus the fulfiller payout."""
        if self.quoted_price_cents is None or self.fulfiller_payout_cents is None:
            return 0
        return self.quoted_price_cents - self.fulfiller_payout_cents

    @property
    def platform_fee_cents(self) -> int:
        """Platform revenue: the commission minus the supervisor's share."""
        return max(self.commission_cents - self.supervisor_commission_cents, 0)

    def latest_deliverable(self) -> Deliverable | None:
        return self.deliverables.order_by("-version").first()


class ProjectStatusHistory(UUIDPrimaryKeyMixin, models.Model):
    """
    One committed transition of a project.

    Append-only; replaying a project's rows in time order reconstructs
    its status path. Submission is recorded with from_status null.
    """

    project = models.ForeignKey(
        Project,
        on_delete=models.PROTECT,
        related_name="status_history",
    )
    from_status = models.CharField(
        max_length=30,
        choices=ProjectStatus.choices,
        null=True,
        blank=True,
    )
    to_status = models.CharField(
        max_length=30,
        choices=ProjectStatus.choices,
    )
    event = models.CharField(
        max_length=50,
        help_text="Workflow event that caused the change",
    )
    actor_id = models.UUIDField(
        null=True,
        blank=True,
        help_text="Actor that fired the event",
    )
    actor_role = models.CharField(
        max_length=20,
        choices=ActorRole.choices,
        blank=True,
        default="",
    )
    notes = models.TextField(blank=True, default="")
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
    )

    class Meta:
        ordering = ["created_at"]
        verbose_name_plural = "project status history"
        indexes = [
            models.Index(fields=["project", "created_at"], name="project_history_replay_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.project_id}: {self.from_status} -> {self.to_status} ({self.event})"


class Deliverable(UUIDPrimaryKeyMixin, models.Model):
    """
    One submitted version of the work.

    Versions start at 1 and increase by one per project; a revision is a
    new row, earlier versions are never overwritten.

    Fields:
        project: Parent project
        version: 1, 2, 3 ... per project
        file_url: Opaque location returned by file storage
        file_name / file_type / file_size_bytes: File metadata
        uploaded_by: Fulfiller that submitted this version
        qc_status: pending | approved | rejected
        qc_by / qc_at / qc_notes: Review record
        is_final: Set on the version approved by the supervisor
    """

    project = models.ForeignKey(
        Project,
        on_delete=models.PROTECT,
        related_name="deliverables",
    )
    version = models.PositiveIntegerField(
        help_text="Version number within the project (1, 2, 3 ...)",
    )
    file_url = models.CharField(
        max_length=1024,
        help_text="Location of the uploaded file in storage",
    )
    file_name = models.CharField(max_length=255, blank=True, default="")
    file_type = models.CharField(max_length=100, blank=True, default="")
    file_size_bytes = models.PositiveBigIntegerField(null=True, blank=True)
    uploaded_by = models.UUIDField(
        help_text="Fulfiller that submitted this version",
    )
    qc_status = models.CharField(
        max_length=10,
        choices=QCStatus.choices,
        default=QCStatus.PENDING,
        db_index=True,
    )
    qc_by = models.UUIDField(null=True, blank=True)
    qc_at = models.DateTimeField(null=True, blank=True)
    qc_notes = models.TextField(blank=True, default="")
    is_final = models.BooleanField(default=False)
    created_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
    )

    class Meta:
        ordering = ["project", "version"]
        constraints = [
            models.UniqueConstraint(
                fields=["project", "version"],
                name="unique_deliverable_version",
            ),
            models.CheckConstraint(
                condition=models.Q(version__gte=1),
                name="deliverable_version_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.project_id} v{self.version} ({self.qc_status})"
