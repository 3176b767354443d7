"""
Initial projects schema.

Creates:
    - Project (django-fsm status, lifecycle timestamps)
    - ProjectStatusHistory (append-only transition log)
    - Deliverable (versioned work artifacts)
"""

import uuid

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
import django_fsm
from django.db import migrations, models

import projects.models

PROJECT_STATUS_CHOICES = [
    ("submitted", "Submitted"),
    ("analyzing", "Analyzing"),
    ("quoted", "Quoted"),
    ("accepted", "Accepted"),
    ("payment_pending", "Payment Pending"),
    ("paid", "Paid"),
    ("ready_to_assign", "Ready to Assign"),
    ("assigned", "Assigned"),
    ("in_progress", "In Progress"),
    ("delivered", "Delivered"),
    ("for_review", "For Review"),
    ("approved", "Approved"),
    ("revision_requested", "Revision Requested"),
    ("in_revision", "In Revision"),
    ("delivered_to_client", "Delivered to Client"),
    ("client_review", "Client Review"),
    ("client_revision", "Client Revision"),
    ("completed", "Completed"),
    ("cancelled", "Cancelled"),
    ("refunded", "Refunded"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Project",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "project_number",
                    models.CharField(
                        default=projects.models.generate_project_number,
                        editable=False,
                        help_text="Human-readable project number",
                        max_length=20,
                        unique=True,
                    ),
                ),
                (
                    "client_id",
                    models.UUIDField(
                        db_index=True,
                        help_text="Actor that commissioned the work",
                    ),
                ),
                (
                    "supervisor_id",
                    models.UUIDField(
                        db_index=True,
                        help_text="Actor that quotes, assigns and reviews the work",
                    ),
                ),
                (
                    "fulfiller_id",
                    models.UUIDField(
                        blank=True,
                        db_index=True,
                        help_text="Actor doing the work (set on assignment)",
                        null=True,
                    ),
                ),
                (
                    "title",
                    models.CharField(help_text="Short title of the work", max_length=255),
                ),
                (
                    "service_type",
                    models.CharField(
                        choices=[
                            ("new_project", "New Project"),
                            ("proofreading", "Proofreading"),
                            ("plagiarism_check", "Plagiarism Check"),
                            ("ai_detection", "AI Detection"),
                            ("expert_opinion", "Expert Opinion"),
                        ],
                        default="new_project",
                        help_text="Kind of service requested",
                        max_length=30,
                    ),
                ),
                (
                    "description",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Client's description of the work",
                    ),
                ),
                (
                    "deadline",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the work is due",
                        null=True,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=PROJECT_STATUS_CHOICES,
                        db_index=True,
                        default="submitted",
                        help_text="Current lifecycle status (managed by the workflow engine)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "status_changed_at",
                    models.DateTimeField(
                        default=django.utils.timezone.now,
                        help_text="When the status last changed",
                    ),
                ),
                (
                    "is_terminal",
                    models.BooleanField(
                        default=False,
                        help_text="Whether the project reached completed, cancelled or refunded",
                    ),
                ),
                (
                    "progress_percent",
                    models.PositiveSmallIntegerField(
                        default=0,
                        help_text="Fulfiller-reported progress (0-100)",
                        validators=[django.core.validators.MaxValueValidator(100)],
                    ),
                ),
                (
                    "quoted_price_cents",
                    models.PositiveBigIntegerField(
                        blank=True,
                        help_text="Quoted price in minor units",
                        null=True,
                    ),
                ),
                (
                    "fulfiller_payout_cents",
                    models.PositiveBigIntegerField(
                        blank=True,
                        help_text="Fulfiller's share of the price in minor units",
                        null=True,
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default=projects.models.default_currency,
                        help_text="ISO 4217 currency code",
                        max_length=3,
                    ),
                ),
                (
                    "payment_reference",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="External payment reference consumed at confirmation",
                        max_length=255,
                    ),
                ),
                ("quoted_at", models.DateTimeField(blank=True, null=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("assigned_at", models.DateTimeField(blank=True, null=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("refunded_at", models.DateTimeField(blank=True, null=True)),
                (
                    "cancellation_reason",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Why the project was cancelled or refunded",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "-created_at"],
                        name="project_status_created_idx",
                    )
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("progress_percent__lte", 100)),
                        name="project_progress_at_most_100",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("fulfiller_payout_cents__isnull", True),
                            ("quoted_price_cents__gte", models.F("fulfiller_payout_cents")),
                            _connector="OR",
                        ),
                        name="project_payout_within_price",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ProjectStatusHistory",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "from_status",
                    models.CharField(
                        blank=True,
                        choices=PROJECT_STATUS_CHOICES,
                        max_length=30,
                        null=True,
                    ),
                ),
                (
                    "to_status",
                    models.CharField(choices=PROJECT_STATUS_CHOICES, max_length=30),
                ),
                (
                    "event",
                    models.CharField(
                        help_text="Workflow event that caused the change",
                        max_length=50,
                    ),
                ),
                (
                    "actor_id",
                    models.UUIDField(
                        blank=True,
                        help_text="Actor that fired the event",
                        null=True,
                    ),
                ),
                (
                    "actor_role",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("client", "Client"),
                            ("supervisor", "Supervisor"),
                            ("fulfiller", "Fulfiller"),
                        ],
                        default="",
                        max_length=20,
                    ),
                ),
                ("notes", models.TextField(blank=True, default="")),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "created_at",
                    models.DateTimeField(
                        db_index=True,
                        default=django.utils.timezone.now,
                    ),
                ),
                (
                    "project",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="status_history",
                        to="projects.project",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "project status history",
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(
                        fields=["project", "created_at"],
                        name="project_history_replay_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Deliverable",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "version",
                    models.PositiveIntegerField(
                        help_text="Version number within the project (1, 2, 3 ...)",
                    ),
                ),
                (
                    "file_url",
                    models.CharField(
                        help_text="Location of the uploaded file in storage",
                        max_length=1024,
                    ),
                ),
                ("file_name", models.CharField(blank=True, default="", max_length=255)),
                ("file_type", models.CharField(blank=True, default="", max_length=100)),
                ("file_size_bytes", models.PositiveBigIntegerField(blank=True, null=True)),
                (
                    "uploaded_by",
                    models.UUIDField(help_text="Fulfiller that submitted this version"),
                ),
                (
                    "qc_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("approved", "Approved"),
                            ("rejected", "Rejected"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=10,
                    ),
                ),
                ("qc_by", models.UUIDField(blank=True, null=True)),
                ("qc_at", models.DateTimeField(blank=True, null=True)),
                ("qc_notes", models.TextField(blank=True, default="")),
                ("is_final", models.BooleanField(default=False)),
                (
                    "created_at",
                    models.DateTimeField(
                        db_index=True,
                        default=django.utils.timezone.now,
                    ),
                ),
                (
                    "project",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="deliverables",
                        to="projects.project",
                    ),
                ),
            ],
            options={
                "ordering": ["project", "version"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("project", "version"),
                        name="unique_deliverable_version",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("version__gte", 1)),
                        name="deliverable_version_positive",
                    ),
                ],
            },
        ),
    ]
