"""
Signal handlers for cross-app notification events.

This module listens for project status changes and records each one in
the notification outbox before queueing its publication.

Related files:
    - models.py: StatusChangeEvent outbox
    - tasks.py: Publication to the notification channel
    - apps.py: Handler registration

Event Sources:
    - projects: project_status_changed, sent inside the transition's
      transaction

The outbox row is written in that same transaction, so it exists exactly
when the transition commits. Only queueing the publication waits for
the commit.

Usage:
    Handlers are registered in apps.py when the app is ready.
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.dispatch import receiver
from kombu.exceptions import OperationalError
from redis.exceptions import RedisError

from notifications.models import StatusChangeEvent, notification_for_status
from notifications.tasks import publish_project_status_change
from projects.events import project_status_changed

logger = logging.getLogger(__name__)


def queue_publication(status_event_id, project_id) -> None:
    """
    Queue publication of one outbox row.

    A broker outage leaves the row pending; the periodic republish task
    sends it later.
    """
    try:
        publish_project_status_change.delay(str(status_event_id))
    except (OperationalError, RedisError):
        logger.exception(
            "Could not queue status change publication",
            extra={
                "status_event_id": str(status_event_id),
                "project_id": str(project_id),
            },
        )


@receiver(project_status_changed, dispatch_uid="notifications.record_status_change")
def record_status_change(
    sender,
    project_id,
    old_status,
    new_status,
    event,
    actor_id,
    timestamp,
    **kwargs,
):
    """Store the change in the outbox and queue its publication on commit."""
    notification_type, _ = notification_for_status(new_status)
    status_event = StatusChangeEvent.objects.create(
        project_id=project_id,
        old_status=old_status,
        new_status=new_status,
        event=event,
        actor_id=actor_id,
        occurred_at=timestamp,
        notification_type=notification_type,
    )

    # robust: any other failure is logged by Django and the row stays pending
    transaction.on_commit(
        lambda: queue_publication(status_event.id, project_id),
        robust=True,
    )
    return status_event
