"""
Tests for notifications app.

This package contains test modules for:
- test_models.py: StatusChangeEvent and the status-to-notification map
- test_handlers.py: Recording committed status changes and queueing publication
- test_tasks.py: Redis publication and republishing of pending rows

Usage:
    pytest app/notifications/tests/
    pytest app/notifications/tests/test_tasks.py
"""
