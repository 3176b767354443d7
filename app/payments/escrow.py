"""
Escrow engine: moves project money in and out of platform escrow.

Ledger Flow (all postings use the project id as reference):

    Payment received (confirm_payment):
        Debit EXTERNAL_GATEWAY, Credit PLATFORM_ESCROW (quoted price)
        key: "payment:<external_ref>"

    Release (approve):
        Debit PLATFORM_ESCROW, Credit FULFILLER_WALLET (fulfiller payout)
        key: "release"

    Commission (complete):
        Debit PLATFORM_ESCROW (escrow remainder),
        Credit SUPERVISOR_WALLET (supervisor commission),
        Credit PLATFORM_REVENUE (the rest)
        key: "commission"

    Refund (cancel / refund):
        Debit PLATFORM_ESCROW, Credit CLIENT_WALLET (escrow remainder)
        key: "refund"

Release and refund are mutually exclusive per project: both insert the
project's EscrowSettlement marker in the same transaction as their
posting, and the marker's project_id is unique.

The service only reads ``id``, ``client_id``, ``supervisor_id``,
``fulfiller_id``, ``quoted_price_cents``, ``supervisor_commission_cents``
and ``currency`` from the project it is given, so this app does not
import the projects app.

Usage:
    from payments.escrow import EscrowService

    EscrowService.receive_payment(
        project,
        amount_cents=50000,
        external_ref="pay-1",
        payer_account_id=wallet.id,
        actor_id=client_id,
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.db import IntegrityError, transaction

from payments.exceptions import (
    AlreadySettled,
    DuplicateReference,
    PaymentValidationError,
    Unauthorized,
)
from payments.ledger.exceptions import InsufficientFunds
from payments.ledger.models import AccountType, LedgerEntry, ReferenceKind
from payments.ledger.services import LedgerService
from payments.ledger.types import PostingLeg
from payments.models import EscrowSettlement
from payments.state_machines import SettlementKind

if TYPE_CHECKING:
    import uuid

    from payments.ledger.models import LedgerAccount
    from payments.ledger.types import PostingResult

logger = logging.getLogger(__name__)

PAYMENT_KEY_PREFIX = "payment:"
RELEASE_KEY = "release"
REFUND_KEY = "refund"
COMMISSION_KEY = "commission"


class EscrowService:
    """
    Service for escrow operations on projects.

    All methods are static and may run inside the caller's transaction
    (the workflow engine calls them while holding the project lock), so
    a failure rolls back the surrounding transition as well.
    """

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _require_wallet(
        account_id: uuid.UUID,
        account_type: AccountType,
        owner_id: uuid.UUID | None,
        currency: str,
    ) -> LedgerAccount:
        """
        Load an account and check it is ``owner_id``'s wallet of the given type.

        Raises:
            AccountNotFound: If the account doesn't exist
            Unauthorized: If the account belongs to someone else
        """
        account = LedgerService.get_account(account_id)
        if (
            owner_id is None
            or account.type != account_type
            or account.owner_id != owner_id
            or account.currency != currency
        ):
            raise Unauthorized(
                "Account is not the expected wallet for this operation",
                details={
                    "account_id": str(account_id),
                    "expected_type": str(account_type),
                },
            )
        return account

    @staticmethod
    def escrow_balance(project) -> int:
        """
        Amount still held in escrow for a project.

        Computed from the escrow account's entries referencing the project.
        """
        escrow = LedgerService.escrow_account(project.currency)
        return LedgerService.net_for_reference(escrow.id, project.id)

    @staticmethod
    def get_settlement(project) -> EscrowSettlement | None:
        return EscrowSettlement.objects.filter(project_id=project.id).first()

    @staticmethod
    def _check_unsettled(project, kind: str) -> None:
        """
        Raise if the project's escrow was already settled.

        Raises:
            DuplicateReference: Settled the same way before
            AlreadySettled: Settled the other way
        """
        settlement = EscrowService.get_settlement(project)
        if settlement is None:
            return
        details = {
            "project_id": str(project.id),
            "settlement": settlement.kind,
        }
        if settlement.kind == kind:
            raise DuplicateReference(
                f"Escrow for project {project.id} was already settled by {kind}",
                details=details,
            )
        raise AlreadySettled(
            f"Escrow for project {project.id} was already settled by {settlement.kind}",
            details=details,
        )

    @staticmethod
    def _settle(
        project,
        kind: str,
        account: LedgerAccount,
        amount_cents: int,
        actor_id: uuid.UUID | None,
        reference_kind: str,
        idempotency_key: str,
    ) -> PostingResult:
        """
        Insert the settlement marker and post escrow -> account atomically.
        """
        EscrowService._check_unsettled(project, kind)
        escrow = LedgerService.escrow_account(project.currency)

        remainder = EscrowService.escrow_balance(project)
        if amount_cents > remainder:
            raise InsufficientFunds(
                account_id=escrow.id,
                required=amount_cents,
                available=remainder,
                details={"project_id": str(project.id)},
            )

        with transaction.atomic():
            try:
                with transaction.atomic():
                    settlement = EscrowSettlement.objects.create(
                        project_id=project.id,
                        kind=kind,
                        amount_cents=amount_cents,
                        account=account,
                        actor_id=actor_id,
                    )
            except IntegrityError:
                # Another request settled the project first
                EscrowService._check_unsettled(project, kind)
                raise

            result = LedgerService.post(
                [
                    PostingLeg.debit(escrow.id, amount_cents),
                    PostingLeg.credit(account.id, amount_cents),
                ],
                reference_kind=reference_kind,
                reference_id=project.id,
                idempotency_key=idempotency_key,
                description=f"Escrow {kind} for project {project.id}",
                created_by=str(actor_id or ""),
            )
            settlement.posting_id = result.posting_id
            settlement.save(update_fields=["posting_id"])

        logger.info(
            "Escrow settled",
            extra={
                "project_id": str(project.id),
                "kind": kind,
                "account_id": str(account.id),
                "amount_cents": amount_cents,
                "posting_id": str(result.posting_id),
            },
        )
        return result

    # =========================================================================
    # Operations
    # =========================================================================

    @staticmethod
    def receive_payment(
        project,
        amount_cents: int,
        external_ref: str,
        payer_account_id: uuid.UUID,
        actor_id: uuid.UUID,
        from_wallet: bool = False,
    ) -> PostingResult:
        """
        Record the client's payment for a project into escrow.

        Called when the payment collaborator has verified the transaction.
        Safe to retry: a repeated ``external_ref`` for the same project
        replays the original posting.

        Args:
            project: Project being paid for
            amount_cents: Amount paid; must equal the quoted price
            external_ref: Gateway reference of the payment
            payer_account_id: The acting client's own wallet
            actor_id: Authenticated actor (must be the project's client)
            from_wallet: Pay from the wallet's available balance instead
                of the gateway

        Returns:
            PostingResult (``replayed=True`` on a repeated reference)

        Raises:
            Unauthorized: Actor is not the client, or the account is not theirs
            PaymentValidationError: Missing reference or wrong amount
            DuplicateReference: Project already paid with another reference
            InsufficientFunds: Wallet payment exceeds the wallet balance
        """
        if actor_id != project.client_id:
            raise Unauthorized(
                "Only the project's client can pay for it",
                details={"project_id": str(project.id), "actor_id": str(actor_id)},
            )
        payer = EscrowService._require_wallet(
            payer_account_id, AccountType.CLIENT_WALLET, actor_id, project.currency
        )

        if not external_ref:
            raise PaymentValidationError("A payment reference is required")
        if amount_cents != project.quoted_price_cents:
            raise PaymentValidationError(
                "Payment amount does not match the quoted price",
                details={
                    "amount_cents": amount_cents,
                    "quoted_price_cents": project.quoted_price_cents,
                },
            )

        idempotency_key = f"{PAYMENT_KEY_PREFIX}{external_ref}"
        other_payment = (
            LedgerEntry.objects.filter(
                reference_id=project.id,
                reference_kind=ReferenceKind.PROJECT_PAYMENT,
            )
            .exclude(idempotency_key=idempotency_key)
            .exists()
        )
        if other_payment:
            raise DuplicateReference(
                f"Project {project.id} was already paid with another reference",
                details={"project_id": str(project.id), "external_ref": external_ref},
            )

        escrow = LedgerService.escrow_account(project.currency)
        source = payer if from_wallet else LedgerService.gateway_account(project.currency)

        result = LedgerService.post(
            [
                PostingLeg.debit(source.id, amount_cents),
                PostingLeg.credit(escrow.id, amount_cents),
            ],
            reference_kind=ReferenceKind.PROJECT_PAYMENT,
            reference_id=project.id,
            idempotency_key=idempotency_key,
            description=f"Payment for project {project.id}",
            metadata={
                "external_ref": external_ref,
                "payer_account_id": str(payer.id),
            },
            created_by=str(actor_id),
        )

        logger.info(
            "Project payment received into escrow",
            extra={
                "project_id": str(project.id),
                "amount_cents": amount_cents,
                "external_ref": external_ref,
                "replayed": result.replayed,
            },
        )
        return result

    @staticmethod
    def release_to_fulfiller(
        project,
        fulfiller_account_id: uuid.UUID,
        amount_cents: int,
        actor_id: uuid.UUID | None = None,
    ) -> PostingResult:
        """
        Release the fulfiller's payout from escrow. Once per project.

        Raises:
            Unauthorized: Account is not the assigned fulfiller's wallet
            PaymentValidationError: Non-positive amount
            DuplicateReference: Already released
            AlreadySettled: Already refunded
            InsufficientFunds: Amount exceeds the project's escrow remainder
        """
        account = EscrowService._require_wallet(
            fulfiller_account_id,
            AccountType.FULFILLER_WALLET,
            project.fulfiller_id,
            project.currency,
        )
        if amount_cents <= 0:
            raise PaymentValidationError(
                "Release amount must be positive",
                details={"amount_cents": amount_cents},
            )
        return EscrowService._settle(
            project,
            SettlementKind.RELEASE,
            account,
            amount_cents,
            actor_id,
            ReferenceKind.ESCROW_RELEASE,
            RELEASE_KEY,
        )

    @staticmethod
    def refund(
        project,
        client_account_id: uuid.UUID,
        amount_cents: int | None = None,
        actor_id: uuid.UUID | None = None,
    ) -> PostingResult | None:
        """
        Return escrowed funds to the client's wallet.

        Args:
            amount_cents: Amount to refund (None = the whole escrow remainder)

        Returns:
            PostingResult, or None when nothing is held for the project

        Raises:
            Unauthorized: Account is not the project client's wallet
            DuplicateReference: Already refunded
            AlreadySettled: Already released to the fulfiller
            InsufficientFunds: Amount exceeds the project's escrow remainder
        """
        account = EscrowService._require_wallet(
            client_account_id,
            AccountType.CLIENT_WALLET,
            project.client_id,
            project.currency,
        )
        if amount_cents is None:
            EscrowService._check_unsettled(project, SettlementKind.REFUND)
            amount_cents = EscrowService.escrow_balance(project)
            if amount_cents <= 0:
                logger.info(
                    "Nothing in escrow to refund",
                    extra={"project_id": str(project.id)},
                )
                return None
        elif amount_cents <= 0:
            raise PaymentValidationError(
                "Refund amount must be positive",
                details={"amount_cents": amount_cents},
            )

        return EscrowService._settle(
            project,
            SettlementKind.REFUND,
            account,
            amount_cents,
            actor_id,
            ReferenceKind.REFUND,
            REFUND_KEY,
        )

    @staticmethod
    def collect_remainder(project, actor_id: uuid.UUID | None = None) -> PostingResult | None:
        """
        Split what is left in escrow after release between the supervisor and revenue.

        The remainder is the commission (quoted price minus payout). The
        supervisor's wallet is credited ``supervisor_commission_cents`` and
        platform revenue the rest, in one balanced posting.

        Returns:
            PostingResult, or None when the remainder is zero

        Raises:
            PaymentValidationError: The escrow has not been released yet
            InsufficientFunds: The supervisor's share exceeds the remainder
        """
        settlement = EscrowService.get_settlement(project)
        if settlement is None or settlement.kind != SettlementKind.RELEASE:
            raise PaymentValidationError(
                "Commission can only be collected after release",
                details={"project_id": str(project.id)},
            )

        remainder = EscrowService.escrow_balance(project)
        if remainder <= 0:
            return None

        escrow = LedgerService.escrow_account(project.currency)
        supervisor_share = project.supervisor_commission_cents or 0
        if supervisor_share > remainder:
            raise InsufficientFunds(
                account_id=escrow.id,
                required=supervisor_share,
                available=remainder,
                details={"project_id": str(project.id)},
            )
        platform_fee = remainder - supervisor_share

        legs = [PostingLeg.debit(escrow.id, remainder)]
        if supervisor_share:
            supervisor_wallet = LedgerService.wallet_for(
                project.supervisor_id, AccountType.SUPERVISOR_WALLET, project.currency
            )
            legs.append(PostingLeg.credit(supervisor_wallet.id, supervisor_share))
        if platform_fee:
            revenue = LedgerService.revenue_account(project.currency)
            legs.append(PostingLeg.credit(revenue.id, platform_fee))

        result = LedgerService.post(
            legs,
            reference_kind=ReferenceKind.FEE,
            reference_id=project.id,
            idempotency_key=COMMISSION_KEY,
            description=f"Commission for project {project.id}",
            metadata={
                "supervisor_commission_cents": supervisor_share,
                "platform_fee_cents": platform_fee,
            },
            created_by=str(actor_id or ""),
        )
        logger.info(
            "Commission collected",
            extra={
                "project_id": str(project.id),
                "supervisor_commission_cents": supervisor_share,
                "platform_fee_cents": platform_fee,
            },
        )
        return result
