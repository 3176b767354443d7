import uuid

from django.db import migrations, models

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
            name="StatusChangeEvent",
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
                ("project_id", models.UUIDField(db_index=True)),
                (
                    "old_status",
                    models.CharField(
                        blank=True, choices=PROJECT_STATUS_CHOICES, max_length=30, null=True
                    ),
                ),
                ("new_status", models.CharField(choices=PROJECT_STATUS_CHOICES, max_length=30)),
                ("event", models.CharField(max_length=50)),
                ("actor_id", models.UUIDField(blank=True, null=True)),
                ("occurred_at", models.DateTimeField()),
                (
                    "notification_type",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("project_submitted", "Project Submitted"),
                            ("quote_ready", "Quote Ready"),
                            ("payment_received", "Payment Received"),
                            ("task_available", "Task Available"),
                            ("task_assigned", "Task Assigned"),
                            ("work_submitted", "Work Submitted"),
                            ("qc_approved", "QC Approved"),
                            ("qc_rejected", "QC Rejected"),
                            ("revision_requested", "Revision Requested"),
                            ("project_delivered", "Project Delivered"),
                            ("project_completed", "Project Completed"),
                            ("system_alert", "System Alert"),
                        ],
                        default="",
                        max_length=30,
                    ),
                ),
                (
                    "dispatch_status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("published", "Published")],
                        db_index=True,
                        default="pending",
                        max_length=10,
                    ),
                ),
                ("published_at", models.DateTimeField(blank=True, null=True)),
                ("attempt_count", models.PositiveIntegerField(default=0)),
                ("last_error", models.TextField(blank=True, default="")),
            ],
            options={
                "ordering": ["occurred_at"],
                "indexes": [
                    models.Index(
                        fields=["dispatch_status", "created_at"],
                        name="status_event_dispatch_idx",
                    )
                ],
            },
        ),
    ]
