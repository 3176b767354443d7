"""
Concurrency control utilities for workflow and ledger operations.

This module provides two complementary mechanisms:

1. **Distributed Locks** (DistributedLock)
   - Redis-based mutual exclusion across processes/servers
   - TTL prevents deadlocks from crashed processes
   - Use for: serializing workflow transitions of one project

2. **Bounded Row Locks** (bounded_lock_wait, row_lock_timeout_as_busy)
   - SELECT ... FOR UPDATE inside the current transaction
   - On PostgreSQL the wait is capped with ``SET LOCAL lock_timeout``
   - Use for: ledger accounts touched by a posting, the project row itself

Usage:

    from payments.locks import DistributedLock, bounded_lock_wait, row_lock_timeout_as_busy

    with DistributedLock(f"project:{project_id}", ttl=10, timeout=0.5):
        with transaction.atomic():
            bounded_lock_wait()
            with row_lock_timeout_as_busy(f"project:{project_id}"):
                project = Project.objects.select_for_update().get(pk=project_id)
            ...

Note:
    No lock in this module waits indefinitely. Expired waits surface as
    payments.exceptions.Busy (or LockAcquisitionError for the Redis lock),
    both retryable.
"""

from __future__ import annotations

import time
import uuid as uuid_module
from contextlib import contextmanager
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import OperationalError, connection

from django_redis import get_redis_connection

from payments.exceptions import Busy, LockAcquisitionError

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

    from redis import Redis

# PostgreSQL SQLSTATE for "lock_not_available" (raised when lock_timeout expires)
LOCK_NOT_AVAILABLE = "55P03"


# =============================================================================
# Distributed Locks
# =============================================================================


class DistributedLock:
    """
    Redis-based distributed lock with TTL.

    Features:
        - Automatic TTL prevents deadlocks from crashed processes
        - Token-based ownership prevents accidental release by other processes
        - Blocking (bounded by timeout) and non-blocking acquisition modes
        - Context manager support for clean usage

    Example:
        with DistributedLock("project:123", ttl=10, timeout=0.5):
            WorkflowEngine._apply(...)

        lock = DistributedLock("project:123", blocking=False)
        try:
            with lock:
                ...
        except LockAcquisitionError:
            # Another request is transitioning this project
            ...

    Args:
        key: Lock identifier (will be prefixed with "lock:")
        ttl: Lock TTL in seconds (auto-releases after this time)
        blocking: If True, acquire() polls until the lock is free or timeout expires
        timeout: Maximum wait time in seconds (only if blocking=True)
    """

    # Lua script for atomic check-and-delete (release)
    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    # Lua script for atomic check-and-extend
    EXTEND_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("expire", KEYS[1], ARGV[2])
    else
        return 0
    end
    """

    # Delay between acquisition attempts in blocking mode
    POLL_INTERVAL = 0.02

    def __init__(
        self,
        key: str,
        ttl: int = 10,
        blocking: bool = True,
        timeout: float = 0.5,
    ) -> None:
        self.key = f"lock:{key}"
        self.ttl = ttl
        self.blocking = blocking
        self.timeout = timeout
        self._token: str | None = None
        self._redis: Redis | None = None

    def _get_redis(self) -> Redis:
        """Get Redis connection (lazy initialization)."""
        if self._redis is None:
            self._redis = get_redis_connection("default")
        return self._redis

    def acquire(self) -> bool:
        """
        Attempt to acquire the lock.

        Returns:
            True if lock was acquired

        Raises:
            LockAcquisitionError: If lock couldn't be acquired
        """
        token = str(uuid_module.uuid4())
        redis = self._get_redis()

        if self.blocking:
            deadline = time.monotonic() + self.timeout
            while True:
                if self._try_acquire(redis, token):
                    self._token = token
                    return True
                if time.monotonic() >= deadline:
                    break
                time.sleep(self.POLL_INTERVAL)

            raise LockAcquisitionError(
                f"Failed to acquire lock '{self.key}' within {self.timeout}s",
                details={"key": self.key, "timeout": self.timeout},
            )

        if not self._try_acquire(redis, token):
            raise LockAcquisitionError(
                f"Lock '{self.key}' is already held",
                details={"key": self.key},
            )
        self._token = token
        return True

    def _try_acquire(self, redis: Redis, token: str) -> bool:
        """Try once to acquire the lock."""
        return bool(redis.set(self.key, token, nx=True, ex=self.ttl))

    def release(self) -> bool:
        """
        Release the lock if we hold it.

        Returns:
            True if lock was released, False if we didn't hold it
        """
        if self._token is None:
            return False

        redis = self._get_redis()
        result = redis.eval(self.RELEASE_SCRIPT, 1, self.key, self._token)
        self._token = None
        return bool(result)

    def extend(self, additional_ttl: int | None = None) -> bool:
        """
        Reset the lock TTL if we hold it.

        Args:
            additional_ttl: New TTL in seconds (defaults to original TTL)

        Returns:
            True if lock was extended, False if we don't hold it
        """
        if self._token is None:
            return False

        ttl = additional_ttl or self.ttl
        redis = self._get_redis()
        result = redis.eval(self.EXTEND_SCRIPT, 1, self.key, self._token, ttl)
        return bool(result)

    @property
    def is_held(self) -> bool:
        """Check if we currently hold the lock."""
        return self._token is not None

    def __enter__(self) -> DistributedLock:
        """Context manager entry - acquire the lock."""
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> bool:
        """Context manager exit - always release the lock."""
        self.release()
        return False


# =============================================================================
# Bounded Row Locks
# =============================================================================


def bounded_lock_wait(timeout_ms: int | None = None) -> None:
    """
    Cap how long row locks in the current transaction may wait.

    Issues ``SET LOCAL lock_timeout`` on PostgreSQL; the setting lasts
    until the enclosing transaction ends. Other backends serialize
    writers without row locks and are left untouched.

    Must be called inside ``transaction.atomic()``.

    Args:
        timeout_ms: Maximum wait in milliseconds (default: LEDGER_LOCK_TIMEOUT_MS)
    """
    if connection.vendor != "postgresql":
        return

    timeout_ms = timeout_ms or settings.LEDGER_LOCK_TIMEOUT_MS
    with connection.cursor() as cursor:
        cursor.execute(f"SET LOCAL lock_timeout = '{int(timeout_ms)}ms'")


def is_lock_timeout(exc: OperationalError) -> bool:
    """Return True if a database error was caused by an expired lock wait."""
    cause = exc.__cause__
    code = getattr(cause, "sqlstate", None) or getattr(cause, "pgcode", None)
    return code == LOCK_NOT_AVAILABLE


@contextmanager
def row_lock_timeout_as_busy(resource: str) -> Generator[None, None, None]:
    """
    Translate an expired row-lock wait into a retryable Busy error.

    Args:
        resource: Human-readable name of what was being locked (for the error)

    Raises:
        Busy: If the lock wait inside the block timed out
    """
    try:
        yield
    except OperationalError as exc:
        if is_lock_timeout(exc):
            raise Busy(
                f"Timed out waiting for lock on {resource}",
                details={"resource": resource},
            ) from exc
        raise


__all__ = [
    "DistributedLock",
    "bounded_lock_wait",
    "is_lock_timeout",
    "row_lock_timeout_as_busy",
]
