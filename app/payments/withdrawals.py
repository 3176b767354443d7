"""
Withdrawal processor: turns available wallet balance into payouts.

Ledger Flow (reference = withdrawal id):

    Request:   Debit wallet[available], Credit wallet[held]     key "hold"
    Paid:      Debit wallet[held],      Credit EXTERNAL_GATEWAY key "payout"
    Rejected:  Debit wallet[held],      Credit wallet[available] key "release-hold"

The hold is posted inside LedgerService.post's locked unit, so two
concurrent requests against the same wallet cannot both pass the
available-balance check.

Usage:
    from payments.withdrawals import WithdrawalService
    from payments.state_machines import WithdrawalOutcome

    withdrawal = WithdrawalService.request(wallet.id, 80000, actor_id=owner_id)
    WithdrawalService.resolve(withdrawal.id, WithdrawalOutcome.APPROVED, reviewer_id=staff_id)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import transaction

from django_fsm import TransitionNotAllowed

from payments.exceptions import (
    DuplicateReference,
    InvalidStateTransitionError,
    PaymentNotFoundError,
    PaymentValidationError,
    Unauthorized,
)
from payments.ledger.models import WALLET_TYPES, Bucket, ReferenceKind
from payments.ledger.services import LedgerService
from payments.ledger.types import PostingLeg
from payments.locks import bounded_lock_wait, row_lock_timeout_as_busy
from payments.models import WithdrawalRequest
from payments.state_machines import WithdrawalOutcome, WithdrawalState

if TYPE_CHECKING:
    import uuid

logger = logging.getLogger(__name__)

HOLD_KEY = "hold"
PAYOUT_KEY = "payout"
RELEASE_HOLD_KEY = "release-hold"


class WithdrawalService:
    """
    Service for withdrawal requests.

    All methods are static - no instance state is maintained.
    """

    @staticmethod
    def get(withdrawal_id: uuid.UUID) -> WithdrawalRequest:
        """
        Raises:
            PaymentNotFoundError: If the request doesn't exist
        """
        try:
            return WithdrawalRequest.objects.select_related("account").get(
                id=withdrawal_id
            )
        except WithdrawalRequest.DoesNotExist:
            raise PaymentNotFoundError(
                f"Withdrawal {withdrawal_id} not found",
                details={"withdrawal_id": str(withdrawal_id)},
            )

    @staticmethod
    def request(
        account_id: uuid.UUID,
        amount_cents: int,
        actor_id: uuid.UUID,
    ) -> WithdrawalRequest:
        """
        Create a pending withdrawal and hold its amount.

        Args:
            account_id: Wallet to withdraw from
            amount_cents: Amount in minor units
            actor_id: Authenticated actor; must own the wallet

        Returns:
            The pending WithdrawalRequest

        Raises:
            Unauthorized: Actor does not own the wallet
            PaymentValidationError: Amount below WITHDRAWAL_MINIMUM_CENTS
            InsufficientFunds: Amount exceeds the available balance
            Busy: Wallet lock not acquired in time
        """
        account = LedgerService.get_account(account_id)
        if account.type not in WALLET_TYPES or account.owner_id != actor_id:
            raise Unauthorized(
                "Withdrawals can only be made from your own wallet",
                details={"account_id": str(account_id)},
            )

        minimum = settings.WITHDRAWAL_MINIMUM_CENTS
        if amount_cents < minimum:
            raise PaymentValidationError(
                "Withdrawal amount is below the minimum",
                details={"amount_cents": amount_cents, "minimum_cents": minimum},
            )

        with transaction.atomic():
            withdrawal = WithdrawalRequest.objects.create(
                account=account,
                amount_cents=amount_cents,
                currency=account.currency,
                requested_by=actor_id,
            )
            LedgerService.post(
                [
                    PostingLeg.debit(account.id, amount_cents),
                    PostingLeg.credit(account.id, amount_cents, bucket=Bucket.HELD),
                ],
                reference_kind=ReferenceKind.WITHDRAWAL,
                reference_id=withdrawal.id,
                idempotency_key=HOLD_KEY,
                description=f"Hold for withdrawal {withdrawal.id}",
                created_by=str(actor_id),
            )

        logger.info(
            "Withdrawal requested",
            extra={
                "withdrawal_id": str(withdrawal.id),
                "account_id": str(account.id),
                "amount_cents": amount_cents,
            },
        )
        return withdrawal

    @staticmethod
    def resolve(
        withdrawal_id: uuid.UUID,
        outcome: str,
        reviewer_id: uuid.UUID,
        reason: str | None = None,
        external_payout_ref: str | None = None,
    ) -> WithdrawalRequest:
        """
        Approve (and pay out) or reject a pending withdrawal.

        Both outcomes are terminal. Resolving a resolved request raises
        DuplicateReference and changes nothing.

        Args:
            withdrawal_id: Request to resolve
            outcome: WithdrawalOutcome.APPROVED or WithdrawalOutcome.REJECTED
            reviewer_id: Staff actor resolving the request
            reason: Rejection reason
            external_payout_ref: Gateway reference of the payout

        Raises:
            PaymentNotFoundError: Unknown request
            PaymentValidationError: Unknown outcome
            DuplicateReference: Request already resolved
        """
        if outcome not in WithdrawalOutcome.values:
            raise PaymentValidationError(
                f"Unknown withdrawal outcome: {outcome}",
                details={"outcome": outcome},
            )

        with transaction.atomic():
            bounded_lock_wait()
            with row_lock_timeout_as_busy(f"withdrawal {withdrawal_id}"):
                withdrawal = (
                    WithdrawalRequest.objects.select_for_update()
                    .filter(id=withdrawal_id)
                    .first()
                )
            if withdrawal is None:
                raise PaymentNotFoundError(
                    f"Withdrawal {withdrawal_id} not found",
                    details={"withdrawal_id": str(withdrawal_id)},
                )
            if withdrawal.status != WithdrawalState.PENDING:
                raise DuplicateReference(
                    f"Withdrawal {withdrawal.id} is already {withdrawal.status}",
                    details={
                        "withdrawal_id": str(withdrawal.id),
                        "status": withdrawal.status,
                    },
                )

            account = withdrawal.account
            amount = withdrawal.amount_cents
            try:
                if outcome == WithdrawalOutcome.APPROVED:
                    withdrawal.approve(reviewer_id)
                    withdrawal.mark_paid(external_payout_ref or "")
                    gateway = LedgerService.gateway_account(account.currency)
                    legs = [
                        PostingLeg.debit(account.id, amount, bucket=Bucket.HELD),
                        PostingLeg.credit(gateway.id, amount),
                    ]
                    key = PAYOUT_KEY
                else:
                    withdrawal.reject(reviewer_id, reason or "")
                    legs = [
                        PostingLeg.debit(account.id, amount, bucket=Bucket.HELD),
                        PostingLeg.credit(account.id, amount),
                    ]
                    key = RELEASE_HOLD_KEY
            except TransitionNotAllowed:
                raise InvalidStateTransitionError(
                    f"Cannot resolve withdrawal in '{withdrawal.status}' state",
                    details={"withdrawal_id": str(withdrawal.id), "outcome": outcome},
                )

            LedgerService.post(
                legs,
                reference_kind=ReferenceKind.WITHDRAWAL,
                reference_id=withdrawal.id,
                idempotency_key=key,
                description=f"Withdrawal {withdrawal.id} {outcome}",
                metadata={"external_payout_ref": external_payout_ref or ""},
                created_by=str(reviewer_id),
            )
            withdrawal.save()

        logger.info(
            "Withdrawal resolved",
            extra={
                "withdrawal_id": str(withdrawal.id),
                "outcome": outcome,
                "status": withdrawal.status,
                "reviewer_id": str(reviewer_id),
            },
        )
        return withdrawal

    @staticmethod
    def list_for_account(account_id: uuid.UUID) -> list[WithdrawalRequest]:
        """Withdrawals of a wallet, newest first."""
        return list(WithdrawalRequest.objects.filter(account_id=account_id))
