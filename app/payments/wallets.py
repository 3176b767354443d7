"""
Wallet operations for project parties.

Wallets are ledger accounts of type CLIENT_WALLET, FULFILLER_WALLET or
SUPERVISOR_WALLET, created lazily on first use. A top-up moves money in
from the gateway into a client wallet; clients can then pay projects
from that balance. Fulfiller and supervisor wallets are only credited by
escrow settlement.

Usage:
    from payments.wallets import WalletService

    wallet = WalletService.get_wallet(actor_id, AccountType.CLIENT_WALLET)
    WalletService.top_up(wallet.id, 100000, external_ref="topup-1", actor_id=actor_id)
"""

from __future__ import annotations

import logging
import uuid

from payments.exceptions import PaymentValidationError, Unauthorized
from payments.ledger.models import WALLET_TYPES, AccountType, ReferenceKind
from payments.ledger.services import LedgerService
from payments.ledger.types import PostingLeg

logger = logging.getLogger(__name__)

# Top-ups carry no business entity of their own; the reference id is
# derived from the gateway reference so a retried callback is a replay.
TOPUP_NAMESPACE = uuid.UUID("5f1c8a52-3c1e-4d5b-9a0e-7d2b8c6f4e11")


class WalletService:
    """Service for wallet lookups and top-ups."""

    @staticmethod
    def get_wallet(
        owner_id: uuid.UUID,
        account_type: AccountType | str = AccountType.CLIENT_WALLET,
        currency: str | None = None,
    ):
        """Get or create an actor's wallet."""
        if account_type not in WALLET_TYPES:
            raise PaymentValidationError(
                f"{account_type} is not a wallet type",
                details={"account_type": str(account_type)},
            )
        return LedgerService.wallet_for(owner_id, account_type, currency)

    @staticmethod
    def top_up(
        account_id: uuid.UUID,
        amount_cents: int,
        external_ref: str,
        actor_id: uuid.UUID,
    ):
        """
        Credit a wallet from the gateway.

        Args:
            account_id: The acting user's own client wallet
            amount_cents: Amount in minor units
            external_ref: Gateway reference; repeated refs are replays
            actor_id: Authenticated actor

        Returns:
            PostingResult of the top-up

        Raises:
            Unauthorized: Not the actor's own client wallet
            PaymentValidationError: Non-positive amount or missing reference
        """
        account = LedgerService.get_account(account_id)
        if account.type != AccountType.CLIENT_WALLET or account.owner_id != actor_id:
            raise Unauthorized(
                "Top-ups can only credit your own client wallet",
                details={"account_id": str(account_id)},
            )
        if amount_cents <= 0 or not external_ref:
            raise PaymentValidationError(
                "A positive amount and a payment reference are required",
                details={"amount_cents": amount_cents},
            )

        gateway = LedgerService.gateway_account(account.currency)
        result = LedgerService.post(
            [
                PostingLeg.debit(gateway.id, amount_cents),
                PostingLeg.credit(account.id, amount_cents),
            ],
            reference_kind=ReferenceKind.ADJUSTMENT,
            reference_id=uuid.uuid5(TOPUP_NAMESPACE, f"{account.id}:{external_ref}"),
            idempotency_key=f"topup:{external_ref}",
            description="Wallet top-up",
            metadata={"external_ref": external_ref},
            created_by=str(actor_id),
        )
        logger.info(
            "Wallet topped up",
            extra={
                "account_id": str(account.id),
                "amount_cents": amount_cents,
                "replayed": result.replayed,
            },
        )
        return result
