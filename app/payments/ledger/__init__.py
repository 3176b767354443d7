"""
Ledger - Double-entry bookkeeping for wallet and escrow balances.

Every balance change is a posting: a set of legs whose credits equal
its debits, applied atomically by LedgerService.post. Each account has
an available and a held bucket; balances are the replay of entries.

Public API:
    Models:
        LedgerAccount - Holds monetary value (wallets, escrow, revenue)
        LedgerEntry - One immutable leg of a posting
        AccountType - Enum of account categories
        ReferenceKind - Enum of business events
        Bucket / Direction - Leg coordinates

    Service:
        ledger - Singleton instance of LedgerService
        LedgerService - Class with all ledger operations

    Types:
        Balance - available / held / total view of an account
        Money - Monetary amount in minor units
        PostingLeg - One side of a posting
        PostingResult - Outcome of a posting

    Exceptions:
        LedgerError - Base exception for ledger operations
        AccountNotFound - Account lookup failures
        InactiveAccount - Posting to inactive accounts
        AccountFrozen - Posting to accounts halted by an integrity alarm
        UnbalancedPosting - Legs not netting to zero
        InsufficientFunds - A bucket would go negative
        LedgerIntegrityError - Cache disagrees with entries

Usage:
    from payments.ledger import ledger, PostingLeg, ReferenceKind, InsufficientFunds

    gateway = ledger.gateway_account()
    wallet = ledger.wallet_for(client_id)

    ledger.post(
        [PostingLeg.debit(gateway.id, 50000), PostingLeg.credit(wallet.id, 50000)],
        reference_kind=ReferenceKind.ADJUSTMENT,
        reference_id=topup_id,
        idempotency_key="topup",
    )

    try:
        ledger.transfer(
            wallet.id,
            escrow.id,
            90000,
            reference_kind=ReferenceKind.PROJECT_PAYMENT,
            reference_id=project.id,
            idempotency_key="payment:wallet",
        )
    except InsufficientFunds as e:
        print(f"Need {e.required}, have {e.available}")
"""

from .exceptions import (
    AccountFrozen,
    AccountNotFound,
    InactiveAccount,
    InsufficientFunds,
    LedgerError,
    LedgerIntegrityError,
    UnbalancedPosting,
)
from .models import (
    AccountType,
    Bucket,
    Direction,
    LedgerAccount,
    LedgerEntry,
    ReferenceKind,
)
from .services import LedgerService, ledger
from .types import Balance, Money, PostingLeg, PostingResult

__all__ = [
    # Models
    "LedgerAccount",
    "LedgerEntry",
    "AccountType",
    "ReferenceKind",
    "Bucket",
    "Direction",
    # Service
    "ledger",
    "LedgerService",
    # Types
    "Balance",
    "Money",
    "PostingLeg",
    "PostingResult",
    # Exceptions
    "LedgerError",
    "AccountNotFound",
    "InactiveAccount",
    "AccountFrozen",
    "UnbalancedPosting",
    "InsufficientFunds",
    "LedgerIntegrityError",
]
