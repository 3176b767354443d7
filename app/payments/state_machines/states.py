"""
State enums for payment models.

This module defines the state enums used by payment models with django-fsm.
These are Django TextChoices for database storage and admin integration.

State Machines Overview:

WithdrawalRequest States:
    pending → approved → paid
    pending → rejected

EscrowSettlement kinds (not a state machine; one row per project):
    release | refund
"""

from django.db import models


class WithdrawalState(models.TextChoices):
    """
    States for the WithdrawalRequest lifecycle.

    Terminal states: PAID, REJECTED

    State Flow:
        PENDING → APPROVED → PAID
        PENDING → REJECTED

    While PENDING or APPROVED the requested amount sits in the
    account's held bucket.
    """

    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    PAID = "paid", "Paid"


class WithdrawalOutcome(models.TextChoices):
    """Reviewer decision passed to WithdrawalService.resolve."""

    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class SettlementKind(models.TextChoices):
    """
    How a project's escrow was settled.

    A project is settled at most once: either released to the
    fulfiller or refunded to the client, never both.
    """

    RELEASE = "release", "Release to fulfiller"
    REFUND = "refund", "Refund to client"


__all__ = [
    "SettlementKind",
    "WithdrawalOutcome",
    "WithdrawalState",
]
