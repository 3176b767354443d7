"""
Ledger-specific exceptions for financial operations.

Exception Hierarchy:
    LedgerError (base)
    ├── AccountNotFound - Account lookup failures
    ├── InactiveAccount - Posting to a deactivated account
    ├── AccountFrozen - Posting to an account halted by an integrity alarm
    ├── UnbalancedPosting - Legs of a posting do not net to zero
    ├── InsufficientFunds - A bucket would go negative
    └── LedgerIntegrityError - Cached balance disagrees with entry replay

A posting that raises any of these has written nothing: the whole
posting runs inside one transaction and is rolled back.

Usage:
    from payments.ledger.exceptions import InsufficientFunds

    try:
        WithdrawalService.request(account.id, 80000, actor_id=owner_id)
    except InsufficientFunds as e:
        print(f"Need {e.required}, have {e.available}")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError

if TYPE_CHECKING:
    import uuid
    from typing import Any


class LedgerError(BaseApplicationError):
    """
    Base exception for all ledger operations.

    Inherits from BaseApplicationError for consistent API error responses.
    """

    default_error_code: str = "LEDGER_ERROR"


class AccountNotFound(LedgerError):
    """
    Raised when a ledger account cannot be found.

    Example:
        raise AccountNotFound(
            f"Account {account_id} not found",
            details={"account_id": str(account_id)},
        )
    """

    default_error_code: str = "ACCOUNT_NOT_FOUND"
    http_status: int = 404


class InactiveAccount(LedgerError):
    """
    Raised when attempting to post to an inactive account.

    Accounts are never deleted, only deactivated; their history is
    preserved but new postings are rejected.
    """

    default_error_code: str = "INACTIVE_ACCOUNT"
    http_status: int = 409


class AccountFrozen(LedgerError):
    """
    Raised when attempting to post to a frozen account.

    Accounts are frozen when a balance read finds the cached balance
    disagreeing with the replay of committed entries. Only an operator
    can unfreeze them (LedgerService.unfreeze_account).
    """

    default_error_code: str = "ACCOUNT_FROZEN"
    http_status: int = 423


class UnbalancedPosting(LedgerError):
    """
    Raised when the legs of a posting do not net to zero.

    Also raised for empty postings and non-positive leg amounts.
    """

    default_error_code: str = "UNBALANCED_POSTING"


class InsufficientFunds(LedgerError):
    """
    Raised when a posting would drive an account bucket below zero.

    Attributes:
        account_id: The UUID of the account with insufficient funds
        required: The amount (in minor units) the posting needed
        available: The amount (in minor units) that was available

    Example:
        raise InsufficientFunds(account.id, required=80000, available=20000)
    """

    default_error_code: str = "INSUFFICIENT_FUNDS"
    http_status: int = 422

    def __init__(
        self,
        account_id: uuid.UUID,
        required: int,
        available: int,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.account_id = account_id
        self.required = required
        self.available = available

        message = (
            f"Account {account_id} has insufficient funds: "
            f"required {required}, available {available}"
        )

        full_details = {
            "account_id": str(account_id),
            "required_cents": required,
            "available_cents": available,
        }
        if details:
            full_details.update(details)

        super().__init__(
            message=message,
            error_code=error_code,
            details=full_details,
        )


class LedgerIntegrityError(LedgerError):
    """
    Raised when a stored ledger invariant is found violated on read.

    The account involved is frozen before this is raised; it must not
    accept further postings until the discrepancy is investigated.
    """

    default_error_code: str = "LEDGER_INTEGRITY_VIOLATION"
    http_status: int = 500

    def __init__(
        self,
        account_id: uuid.UUID,
        cached: tuple[int, int],
        computed: tuple[int, int],
    ):
        self.account_id = account_id
        self.cached = cached
        self.computed = computed
        super().__init__(
            f"Account {account_id} balance does not match its entries",
            details={
                "account_id": str(account_id),
                "cached_balance_cents": cached[0],
                "cached_held_cents": cached[1],
                "computed_balance_cents": computed[0],
                "computed_held_cents": computed[1],
            },
        )
