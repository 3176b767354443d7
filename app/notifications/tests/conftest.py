"""
Test configuration and fixtures for notification tests.

This module provides:
- A mocked Redis connection for the publishing task
- Projects with all three parties set, for recipient resolution

Usage:
    def test_example(publisher, status_event):
        publish_project_status_change(str(status_event.id))
        publisher.publish.assert_called_once()
"""

import uuid

import pytest

from notifications.tests.factories import StatusChangeEventFactory
from projects.states import ProjectStatus
from projects.tests.factories import ProjectFactory


@pytest.fixture
def publisher(mocker):
    """
    Redis connection used by publish_project_status_change.

    publish() reports one subscriber by default.
    """
    connection = mocker.MagicMock()
    connection.publish.return_value = 1
    mocker.patch("notifications.tasks.get_redis_connection", return_value=connection)
    return connection


@pytest.fixture
def assigned_project(db):
    """Project with client, supervisor and fulfiller."""
    return ProjectFactory(
        status=ProjectStatus.ASSIGNED,
        fulfiller_id=uuid.uuid4(),
    )


@pytest.fixture
def status_event(assigned_project):
    """Pending outbox row for the assigned project's quote."""
    return StatusChangeEventFactory(project_id=assigned_project.id)
