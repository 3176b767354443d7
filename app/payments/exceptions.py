"""
Payment-specific exceptions for escrow, withdrawal and locking operations.

Ledger-level errors (insufficient funds, unbalanced postings, frozen
accounts) live in payments.ledger.exceptions; this module covers the
layers built on top of the ledger and the concurrency primitives.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentNotFoundError - Withdrawal/settlement lookup failures
    └── PaymentValidationError - Amount or currency validation failures

    Unauthorized - Actor may not move these funds (inherits PermissionDeniedError)
    DuplicateReference - Idempotency key reused where reuse is an error (inherits ConflictError)
    AlreadySettled - Project escrow already released or refunded (inherits ConflictError)
    InvalidStateTransitionError - FSM transition not allowed (inherits ConflictError)
    LockAcquisitionError - Distributed lock timeout (inherits ServiceUnavailableError)
        └── Busy - Bounded wait on a project/account lock expired, retry later

Usage:
    from payments.exceptions import Busy, DuplicateReference, Unauthorized

    # Crediting somebody else's wallet
    raise Unauthorized(
        "Account does not belong to the acting user",
        details={"account_id": str(account.id), "actor_id": str(actor_id)},
    )

    # Resolving a withdrawal twice
    raise DuplicateReference(
        f"Withdrawal {withdrawal.id} is already {withdrawal.status}",
        details={"withdrawal_id": str(withdrawal.id)},
    )
"""

from __future__ import annotations

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    PermissionDeniedError,
    ServiceUnavailableError,
)


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for payment operations that are not ledger errors.

    Example:
        try:
            EscrowService.receive_payment(...)
        except PaymentError as e:
            logger.error("Payment confirmation failed", extra={"code": e.error_code})
    """

    default_error_code: str = "PAYMENT_ERROR"


class PaymentNotFoundError(PaymentError):
    """
    Raised when a payment entity cannot be found.

    Use for:
    - WithdrawalRequest lookup fails
    """

    default_error_code: str = "PAYMENT_NOT_FOUND"
    http_status: int = 404


class PaymentValidationError(PaymentError):
    """
    Raised when payment validation fails.

    Use for:
    - Non-positive amounts
    - Payment amount differing from the quoted price
    - Withdrawal below the configured minimum

    Example:
        if amount_cents < settings.WITHDRAWAL_MINIMUM_CENTS:
            raise PaymentValidationError(
                "Withdrawal amount is below the minimum",
                details={"minimum_cents": settings.WITHDRAWAL_MINIMUM_CENTS},
            )
    """

    default_error_code: str = "PAYMENT_VALIDATION_ERROR"


# =============================================================================
# Authorization & Idempotency
# =============================================================================


class Unauthorized(PermissionDeniedError):
    """
    Raised when the actor may not perform an operation on these funds or this project.

    Covers both role checks (a fulfiller firing a supervisor event) and
    cross-account crediting: credited accounts are derived from the
    authenticated actor or the project, never trusted from the caller.
    """

    default_error_code: str = "UNAUTHORIZED"


class DuplicateReference(ConflictError):
    """
    Raised when an idempotency reference is reused where reuse is not a no-op.

    Payment confirmation treats a repeated external reference as a
    successful replay; this error is for the remaining cases (a second,
    different payment reference for the same project, a second release,
    resolving a withdrawal twice).
    """

    default_error_code: str = "DUPLICATE_REFERENCE"


class AlreadySettled(ConflictError):
    """
    Raised when escrow for a project was already settled the other way.

    Release and refund are mutually exclusive; the per-project settlement
    marker records which one happened.
    """

    default_error_code: str = "ALREADY_SETTLED"


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a django-fsm transition on a payment model is not allowed.

    Example:
        from django_fsm import TransitionNotAllowed

        try:
            withdrawal.mark_paid()
        except TransitionNotAllowed:
            raise InvalidStateTransitionError(
                f"Cannot pay withdrawal in '{withdrawal.status}' state",
                details={"current_state": withdrawal.status, "transition": "mark_paid"},
            )
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


# =============================================================================
# Concurrency Control Exceptions
# =============================================================================


class LockAcquisitionError(ServiceUnavailableError):
    """
    Raised when a distributed lock cannot be acquired.

    Another process holds the lock and it could not be acquired
    within the timeout period.

    Example:
        lock = DistributedLock("project:123", ttl=10, timeout=0.5)
        with lock:
            ...
    """

    default_error_code: str = "LOCK_ACQUISITION_FAILED"


class Busy(LockAcquisitionError):
    """
    Raised when a bounded wait on a project or account lock expires.

    Nothing was applied; the caller can retry the same request with the
    same idempotency key.
    """

    default_error_code: str = "BUSY"


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    "PaymentError",
    "PaymentNotFoundError",
    "PaymentValidationError",
    "Unauthorized",
    "DuplicateReference",
    "AlreadySettled",
    "InvalidStateTransitionError",
    "LockAcquisitionError",
    "Busy",
]
