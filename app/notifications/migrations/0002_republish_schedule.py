"""
Add celery-beat schedule for republishing pending status changes.

Status changes whose publication was never queued (broker outage) or
ran out of retries stay pending in the outbox; this schedule re-queues
them.
"""

from django.db import migrations

TASK_NAME = "Republish Pending Status Changes"


def create_periodic_task(apps, schema_editor):
    """Create the periodic task for outbox republication."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=5,
        period="minutes",
    )

    PeriodicTask.objects.get_or_create(
        name=TASK_NAME,
        defaults={
            "task": "notifications.tasks.republish_pending_status_changes",
            "interval": schedule,
            "enabled": True,
            "description": "Re-queues status changes still pending publication.",
        },
    )


def remove_periodic_task(apps, schema_editor):
    """Remove the periodic task on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(name=TASK_NAME).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("notifications", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_task, remove_periodic_task),
    ]
