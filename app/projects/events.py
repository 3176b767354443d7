"""
Signals emitted by the projects app.

project_status_changed is sent once per transition, inside the transaction
that writes it and after the status history row. Receivers share that
transaction: a receiver that raises rolls the transition back, and
anything a receiver wants to happen only after commit (queueing a task,
calling out to another service) must go through transaction.on_commit.

Signal kwargs:
    project_id: UUID of the project
    old_status: Status before the transition (None on submission)
    new_status: Status after the transition
    event: Workflow event that caused the change
    actor_id: Actor that fired the event
    timestamp: Server time of the transition

Usage:
    from django.dispatch import receiver
    from projects.events import project_status_changed

    @receiver(project_status_changed)
    def on_status_change(sender, project_id, old_status, new_status, **kwargs):
        ...
"""

from __future__ import annotations

from django.dispatch import Signal

project_status_changed = Signal()


def emit_status_change(
    sender,
    *,
    project_id,
    old_status,
    new_status,
    event: str,
    actor_id,
    timestamp,
) -> None:
    """
    Send project_status_changed within the caller's transaction.

    Receiver exceptions propagate so the caller's atomic block rolls back.
    """
    project_status_changed.send(
        sender=sender,
        project_id=project_id,
        old_status=old_status,
        new_status=new_status,
        event=event,
        actor_id=actor_id,
        timestamp=timestamp,
    )
