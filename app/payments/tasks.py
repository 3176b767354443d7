"""
Celery tasks for payment processing.

This module provides async tasks for:
- Periodic ledger integrity verification (scheduled via celery-beat)

Usage:
    from payments.tasks import verify_ledger_integrity

    # Run a check now instead of waiting for the schedule
    verify_ledger_integrity.delay()
"""

from __future__ import annotations

import logging

from celery import shared_task

from payments.ledger.services import LedgerService

logger = logging.getLogger(__name__)


@shared_task(acks_late=True)
def verify_ledger_integrity() -> dict:
    """
    Replay every unfrozen account and compare it with its cached balance.

    Accounts that disagree are frozen by LedgerService.get_balance, which
    also logs the discrepancy at CRITICAL. Global conservation (total
    credits == total debits) is checked on the way.

    Returns:
        Dict with the ids of frozen accounts and the global totals
    """
    failed = LedgerService.verify_all_accounts()
    totals = LedgerService.global_totals()
    balanced = totals["credits_cents"] == totals["debits_cents"]

    if not balanced:
        logger.critical(
            "Ledger credits and debits do not balance",
            extra=totals,
        )

    logger.info(
        "Ledger integrity check finished",
        extra={"frozen_accounts": len(failed), "balanced": balanced},
    )
    return {
        "frozen_accounts": [str(account_id) for account_id in failed],
        "balanced": balanced,
        **totals,
    }
