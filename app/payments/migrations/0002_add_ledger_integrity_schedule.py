"""
Add celery-beat schedule for ledger integrity verification.

This migration creates the periodic task schedule for the
verify_ledger_integrity task, which replays every account's entries
and freezes accounts whose cached balance disagrees.
"""

from django.conf import settings
from django.db import migrations

TASK_NAME = "Verify Ledger Integrity"


def create_periodic_task(apps, schema_editor):
    """Create the periodic task for ledger verification."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=getattr(settings, "LEDGER_INTEGRITY_CHECK_MINUTES", 60),
        period="minutes",
    )

    PeriodicTask.objects.get_or_create(
        name=TASK_NAME,
        defaults={
            "task": "payments.tasks.verify_ledger_integrity",
            "interval": schedule,
            "enabled": True,
            "description": (
                "Replays ledger entries for every unfrozen account and "
                "freezes accounts whose cached balance disagrees."
            ),
        },
    )


def remove_periodic_task(apps, schema_editor):
    """Remove the periodic task on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(name=TASK_NAME).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_task, remove_periodic_task),
    ]
