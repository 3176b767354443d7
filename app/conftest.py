"""
Pytest configuration for the Django project.

This module configures pytest-django and provides project-wide fixtures.
App-specific fixtures are defined in each app's tests/conftest.py.

Project-wide fixtures:
    - redis_connection (autouse): in-memory stand-in for the Redis client
      behind payments.locks.DistributedLock
    - status_change_publisher (autouse): mock of the publication task queued
      when a status change commits
    - api_client / authenticated_client_factory: DRF clients carrying a
      JWT whose user_id claim is the acting actor
"""

import os
import uuid

import django
import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")


def pytest_configure():
    """Configure Django settings before tests run."""
    django.setup()

    from django.conf import settings

    # Disable throttling during tests to prevent rate limit failures
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}

    # Use fast password hasher for tests (PBKDF2 is too slow with 870K iterations)
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (full lifecycle scenarios)
    - test_views.py, test_services.py, test_tasks.py, etc. → integration
    - test_models.py, test_serializers.py, test_locks.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    # Filename patterns for each category
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_tasks.py",
        "test_handlers.py",
        "test_workflow.py",
        "test_escrow.py",
        "test_withdrawals.py",
        "test_wallets.py",
        "test_deliverables.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_serializers.py",
        "test_locks.py",
        "test_states.py",
    ]

    for item in items:
        # Skip if test already has unit/integration/e2e marker
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filepath = str(item.fspath)
        filename = filepath.split("/")[-1]

        # Check patterns in priority order
        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            # Default: integration (safe for Django where most tests hit DB)
            item.add_marker(pytest.mark.integration)


def _patch_postgresql_flush_for_cascade():
    """
    Patch PostgreSQL flush to always use CASCADE.

    This fixes the "cannot truncate a table referenced in a foreign key constraint"
    error that occurs when TransactionTestCase tries to flush the database
    (the threaded concurrency tests use transactional_db).
    """
    from django.db.backends.postgresql import operations

    original_sql_flush = operations.DatabaseOperations.sql_flush

    def sql_flush_with_cascade(
        self, style, tables, *, reset_sequences=False, allow_cascade=False
    ):
        # Force CASCADE for PostgreSQL to handle FK constraints
        return original_sql_flush(
            self, style, tables, reset_sequences=reset_sequences, allow_cascade=True
        )

    operations.DatabaseOperations.sql_flush = sql_flush_with_cascade


# Apply the patch when conftest is loaded
_patch_postgresql_flush_for_cascade()


# =============================================================================
# Redis Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def redis_connection(mocker):
    """
    Replace the Redis client used by DistributedLock.

    Every SET NX succeeds and every release script reports success, so
    workflow transitions run without a Redis server. Tests that need a
    contended lock set ``redis_connection.set.return_value = False``.
    """
    connection = mocker.MagicMock()
    connection.set.return_value = True
    connection.eval.return_value = 1
    mocker.patch("payments.locks.get_redis_connection", return_value=connection)
    return connection


@pytest.fixture(autouse=True)
def status_change_publisher(mocker):
    """
    Replace the task queued when a status change commits.

    Tests that run on-commit callbacks (or use transactional_db) never
    reach a broker. Assert on ``status_change_publisher.delay``.
    """
    return mocker.patch("notifications.handlers.publish_project_status_change")


# =============================================================================
# API Client Fixtures
# =============================================================================


def make_access_token(actor_id, is_staff=False) -> str:
    """Encode an access token the way the identity service issues them."""
    token = AccessToken()
    token["user_id"] = str(actor_id)
    if is_staff:
        token["is_staff"] = True
    return str(token)


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def authenticated_client_factory():
    """
    Factory to create API clients acting as a given actor.

    Usage:
        def test_example(authenticated_client_factory, project):
            client = authenticated_client_factory(project.client_id)
            response = client.get(f"/api/v1/projects/{project.id}/")
    """

    def _make_client(actor_id=None, is_staff=False):
        client = APIClient()
        client.credentials(
            HTTP_AUTHORIZATION=f"Bearer {make_access_token(actor_id or uuid.uuid4(), is_staff)}"
        )
        return client

    return _make_client
