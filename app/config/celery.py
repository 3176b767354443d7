"""
Celery configuration for the Django application.

Tasks run outside the request cycle:
- notifications.tasks.publish_project_status_change: fan out committed
  status changes to delivery services
- payments.tasks.verify_ledger_integrity: periodic ledger audit, scheduled
  through django-celery-beat (DatabaseScheduler)

This configuration uses Redis as both the message broker and result backend.
Tasks are auto-discovered from all installed Django apps.

Usage:
    # Call a task asynchronously:
    from payments.tasks import verify_ledger_integrity
    verify_ledger_integrity.delay()

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Celery will look for a tasks.py module in each installed app
app.autodiscover_tasks()
