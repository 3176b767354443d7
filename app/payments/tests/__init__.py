"""
Tests for payments app.

This package contains test modules for:
- test_escrow.py: EscrowService funding, release, refund and commission
- test_withdrawals.py: WithdrawalService holds and resolution
- test_wallets.py: WalletService lookups and top-ups
- test_locks.py: DistributedLock and bounded row locks
- test_tasks.py: Ledger integrity task
- test_views.py: API endpoint tests

Ledger service and model tests live in payments/ledger/tests/.

Usage:
    pytest app/payments/tests/
    pytest app/payments/tests/test_withdrawals.py
"""
