"""
Celery tasks for publishing project status changes.

Tasks:
    publish_project_status_change: Publish one outbox row to the channel
    republish_pending_status_changes: Re-queue rows left pending

Design:
    - Tasks receive the StatusChangeEvent id (UUID string)
    - Messages go to the Redis pub/sub channel named by
      NOTIFICATION_EVENTS_CHANNEL as JSON
    - Publishing a row that is already published is a no-op, so
      republishing and Celery retries never send duplicates from here

Usage:
    from notifications.tasks import publish_project_status_change

    # Called automatically by notifications.handlers.record_status_change
    publish_project_status_change.delay(status_event_id="uuid-string")
"""

from __future__ import annotations

import json
import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.utils import timezone
from django_redis import get_redis_connection
from redis.exceptions import RedisError

from notifications.models import DispatchStatus, StatusChangeEvent
from projects.models import Project

logger = logging.getLogger(__name__)

# Rows younger than this are still owned by their first publish attempt
REPUBLISH_AFTER = timedelta(minutes=5)

ROLE_FIELDS = {
    "client": "client_id",
    "supervisor": "supervisor_id",
    "fulfiller": "fulfiller_id",
}


def _recipients(status_event: StatusChangeEvent) -> list[str]:
    """Actor ids notified of the change, resolved from the project's parties."""
    project = (
        Project.objects.filter(id=status_event.project_id)
        .values(*ROLE_FIELDS.values())
        .first()
    )
    if project is None:
        return []

    recipients = []
    for role in status_event.notified_roles:
        actor_id = project[ROLE_FIELDS[role]]
        if actor_id is not None and str(actor_id) not in recipients:
            recipients.append(str(actor_id))
    return recipients


def build_message(status_event: StatusChangeEvent) -> dict:
    """JSON-serializable message published for a status change."""
    return {
        "id": str(status_event.id),
        "project_id": str(status_event.project_id),
        "old_status": status_event.old_status,
        "new_status": status_event.new_status,
        "event": status_event.event,
        "actor_id": str(status_event.actor_id) if status_event.actor_id else None,
        "timestamp": status_event.occurred_at.isoformat(),
        "notification_type": status_event.notification_type or None,
        "recipients": _recipients(status_event),
    }


@shared_task(
    bind=True,
    ignore_result=True,
    autoretry_for=(RedisError,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 5},
)
def publish_project_status_change(self, status_event_id: str) -> dict:
    """
    Publish one status change to the notification channel.

    Args:
        status_event_id: UUID string of the StatusChangeEvent

    Returns:
        Dict with the outcome ("published", "already_published", "not_found")

    Raises:
        RedisError: Publication failed (triggers retry)
    """
    status_event = StatusChangeEvent.objects.filter(id=status_event_id).first()
    if status_event is None:
        logger.warning(f"Status change event {status_event_id} not found")
        return {"status": "not_found", "status_event_id": status_event_id}

    if status_event.dispatch_status == DispatchStatus.PUBLISHED:
        return {"status": "already_published", "status_event_id": status_event_id}

    message = build_message(status_event)
    status_event.attempt_count += 1

    try:
        receivers = get_redis_connection("default").publish(
            settings.NOTIFICATION_EVENTS_CHANNEL,
            json.dumps(message),
        )
    except RedisError as e:
        status_event.last_error = str(e)
        status_event.save(update_fields=["attempt_count", "last_error", "updated_at"])
        logger.warning(
            f"Publishing status change {status_event_id} failed: {e}, will retry"
        )
        raise

    status_event.dispatch_status = DispatchStatus.PUBLISHED
    status_event.published_at = timezone.now()
    status_event.last_error = ""
    status_event.save(
        update_fields=[
            "dispatch_status",
            "published_at",
            "attempt_count",
            "last_error",
            "updated_at",
        ]
    )

    logger.info(
        "Status change published",
        extra={
            "status_event_id": status_event_id,
            "project_id": message["project_id"],
            "new_status": message["new_status"],
            "subscribers": receivers,
        },
    )
    return {"status": "published", "status_event_id": status_event_id}


@shared_task
def republish_pending_status_changes() -> dict:
    """
    Queue publication of rows still pending after REPUBLISH_AFTER.

    Scheduled via celery-beat; catches rows whose first publication was
    never queued (broker outage) or ran out of retries.
    """
    cutoff = timezone.now() - REPUBLISH_AFTER
    pending_ids = list(
        StatusChangeEvent.objects.filter(
            dispatch_status=DispatchStatus.PENDING,
            created_at__lt=cutoff,
        )
        .order_by("created_at")
        .values_list("id", flat=True)
    )

    for status_event_id in pending_ids:
        publish_project_status_change.delay(str(status_event_id))

    if pending_ids:
        logger.info(f"Re-queued {len(pending_ids)} pending status changes")
    return {"requeued": len(pending_ids)}
