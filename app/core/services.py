"""
Base service layer patterns for business logic encapsulation.

Services encapsulate business logic separate from views and models.
Views handle HTTP concerns, models handle data, services handle logic.

Error Handling:
    Services raise subclasses of core.exceptions.BaseApplicationError.
    A failed operation leaves no partial state behind: every write runs
    inside a database transaction that is rolled back when the exception
    propagates.

Usage:
    from core.services import BaseService

    class WithdrawalService(BaseService):
        @classmethod
        def request(cls, account_id, amount_cents, actor_id):
            with cls.atomic():
                withdrawal = WithdrawalRequest.objects.create(...)
                ledger.post(...)

            cls.get_logger().info(
                "Withdrawal requested",
                extra={"withdrawal_id": str(withdrawal.id)},
            )
            return withdrawal
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Raise BaseApplicationError subclasses for expected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.

        Example:
            class EscrowService(BaseService):
                @classmethod
                def refund(cls, project):
                    cls.get_logger().info("Refunding", extra={"project_id": ...})
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        All database operations within this context manager are
        wrapped in a transaction. If any operation fails, all
        changes are rolled back. Nested use creates a savepoint.

        Example:
            with cls.atomic():
                project.save()
                ProjectStatusHistory.objects.create(...)
        """
        with transaction.atomic():
            yield
