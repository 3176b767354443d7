"""
Tests for concurrency control utilities.

DistributedLock runs against the mocked Redis connection installed by
the ``redis_connection`` fixture in app/conftest.py.
"""

from unittest.mock import MagicMock

import pytest
from django.db import OperationalError, transaction

from payments.exceptions import Busy, LockAcquisitionError
from payments.locks import (
    LOCK_NOT_AVAILABLE,
    DistributedLock,
    bounded_lock_wait,
    is_lock_timeout,
    row_lock_timeout_as_busy,
)


class TestDistributedLock:
    """Tests for DistributedLock class."""

    def test_acquire_success(self, redis_connection):
        """Should acquire lock when available."""
        lock = DistributedLock("project:1", ttl=10, blocking=False)

        assert lock.acquire() is True
        assert lock.is_held is True
        call_args = redis_connection.set.call_args
        assert call_args[0][0] == "lock:project:1"
        assert call_args[1]["nx"] is True
        assert call_args[1]["ex"] == 10

    def test_acquire_generates_unique_token(self, redis_connection):
        lock1 = DistributedLock("project:1", blocking=False)
        lock2 = DistributedLock("project:2", blocking=False)

        lock1.acquire()
        lock2.acquire()

        assert lock1._token != lock2._token

    def test_non_blocking_raises_when_held(self, redis_connection):
        redis_connection.set.return_value = False

        lock = DistributedLock("project:1", blocking=False)

        with pytest.raises(LockAcquisitionError) as exc_info:
            lock.acquire()

        assert "already held" in str(exc_info.value)
        assert exc_info.value.details["key"] == "lock:project:1"
        assert lock.is_held is False

    def test_blocking_waits_and_acquires(self, redis_connection):
        """First two attempts fail, third succeeds."""
        redis_connection.set.side_effect = [False, False, True]

        lock = DistributedLock("project:1", blocking=True, timeout=1.0)

        assert lock.acquire() is True
        assert redis_connection.set.call_count == 3

    def test_blocking_timeout_raises(self, redis_connection):
        redis_connection.set.return_value = False

        lock = DistributedLock("project:1", blocking=True, timeout=0.05)

        with pytest.raises(LockAcquisitionError) as exc_info:
            lock.acquire()

        assert exc_info.value.details["timeout"] == 0.05
        assert exc_info.value.is_retryable is True

    def test_release(self, redis_connection):
        lock = DistributedLock("project:1", blocking=False)
        lock.acquire()

        assert lock.release() is True
        assert lock.is_held is False
        redis_connection.eval.assert_called_once()

    def test_release_only_if_owned(self, redis_connection):
        redis_connection.eval.return_value = 0

        lock = DistributedLock("project:1", blocking=False)
        lock.acquire()

        assert lock.release() is False

    def test_release_without_acquire(self, redis_connection):
        lock = DistributedLock("project:1", blocking=False)

        assert lock.release() is False
        redis_connection.eval.assert_not_called()

    def test_context_manager_releases_on_exception(self, redis_connection):
        with pytest.raises(ValueError, match="boom"):
            with DistributedLock("project:1"):
                raise ValueError("boom")

        redis_connection.eval.assert_called_once()

    def test_extend_with_custom_ttl(self, redis_connection):
        lock = DistributedLock("project:1", ttl=10, blocking=False)
        lock.acquire()

        assert lock.extend(additional_ttl=30) is True
        # eval(EXTEND_SCRIPT, 1, key, token, ttl)
        assert redis_connection.eval.call_args[0][4] == 30

    def test_extend_without_lock(self, redis_connection):
        lock = DistributedLock("project:1", blocking=False)

        assert lock.extend() is False
        redis_connection.eval.assert_not_called()


class TestRowLocks:
    def test_bounded_wait_is_noop_outside_postgres(self, db, mocker):
        mocker.patch("payments.locks.connection", vendor="sqlite")

        with transaction.atomic():
            bounded_lock_wait(100)

    def test_bounded_wait_sets_lock_timeout_on_postgres(self, settings, mocker):
        settings.LEDGER_LOCK_TIMEOUT_MS = 250
        fake_connection = mocker.patch("payments.locks.connection", vendor="postgresql")
        cursor = fake_connection.cursor.return_value.__enter__.return_value

        bounded_lock_wait()

        cursor.execute.assert_called_once_with("SET LOCAL lock_timeout = '250ms'")

    def test_is_lock_timeout(self):
        exc = OperationalError("canceling statement due to lock timeout")
        exc.__cause__ = MagicMock(sqlstate=LOCK_NOT_AVAILABLE)

        assert is_lock_timeout(exc) is True

    def test_other_operational_errors(self):
        exc = OperationalError("server closed the connection")
        exc.__cause__ = MagicMock(sqlstate="08006")

        assert is_lock_timeout(exc) is False

    def test_lock_timeout_becomes_busy(self):
        exc = OperationalError("lock timeout")
        exc.__cause__ = MagicMock(sqlstate=LOCK_NOT_AVAILABLE)

        with pytest.raises(Busy) as exc_info:
            with row_lock_timeout_as_busy("ledger accounts"):
                raise exc

        assert exc_info.value.details == {"resource": "ledger accounts"}
        assert exc_info.value.http_status == 503

    def test_other_errors_propagate(self):
        with pytest.raises(OperationalError):
            with row_lock_timeout_as_busy("ledger accounts"):
                raise OperationalError("disk full")
