"""
Payment domain models.

This module contains all payment-related models:
- LedgerAccount / LedgerEntry: Double-entry ledger (from payments.ledger)
- EscrowSettlement: Per-project release/refund marker
- WithdrawalRequest: Payout requests against a wallet's available balance
"""

from payments.ledger.models import LedgerAccount, LedgerEntry
from payments.models.settlement import EscrowSettlement
from payments.models.withdrawal import WithdrawalRequest

__all__ = [
    "EscrowSettlement",
    "LedgerAccount",
    "LedgerEntry",
    "WithdrawalRequest",
]
