"""
Notifications app: outbound fan-out of project status changes.

This app provides:
- StatusChangeEvent outbox rows, one per committed transition
- A project_status_changed receiver that records and queues each change
- Celery tasks publishing changes to a Redis pub/sub channel

Usage:
    Nothing calls this app directly; it reacts to
    projects.events.project_status_changed.
"""
