"""
Ledger service layer for financial operations.

LedgerService is the single authority for balance truth. All balance
changes go through LedgerService.post; no other code writes entries or
touches the cached balance columns.

Usage:
    from payments.ledger.services import ledger
    from payments.ledger.types import PostingLeg
    from payments.ledger.models import ReferenceKind

    escrow = ledger.escrow_account()
    gateway = ledger.gateway_account()

    result = ledger.post(
        [PostingLeg.debit(gateway.id, 50000), PostingLeg.credit(escrow.id, 50000)],
        reference_kind=ReferenceKind.PROJECT_PAYMENT,
        reference_id=project.id,
        idempotency_key="payment:pay_123",
    )
    balance = ledger.get_balance(escrow.id)
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Sum

from payments.locks import bounded_lock_wait, row_lock_timeout_as_busy

from .exceptions import (
    AccountFrozen,
    AccountNotFound,
    InactiveAccount,
    InsufficientFunds,
    LedgerIntegrityError,
    UnbalancedPosting,
)
from .models import AccountType, Bucket, Direction, LedgerAccount, LedgerEntry
from .types import Balance, PostingLeg, PostingResult

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


class LedgerService:
    """
    Service class for ledger operations.

    Key features:
    - One atomic ``post`` per business event; legs must net to zero
    - Accounts locked in ascending id order (no lock-order deadlocks)
    - Bounded lock waits surfacing as retryable Busy errors
    - Balance check and debit happen in the same locked unit
    - Idempotency via (reference_id, idempotency_key): replays are no-ops
    - Balances read by replaying entries, cross-checked against the cache

    All methods are static - no instance state is maintained.
    """

    # =========================================================================
    # Accounts
    # =========================================================================

    @staticmethod
    def get_or_create_account(
        account_type: AccountType | str,
        owner_id: uuid.UUID | None = None,
        currency: str | None = None,
        allow_negative: bool = False,
    ) -> LedgerAccount:
        """
        Get existing account or create new one.

        Accounts are created lazily the first time an owner transacts.

        Args:
            account_type: Type of account (e.g., CLIENT_WALLET, PLATFORM_ESCROW)
            owner_id: Actor owning the account (None for platform accounts)
            currency: ISO 4217 currency code (default: LEDGER_DEFAULT_CURRENCY)
            allow_negative: Whether account can have negative balance

        Returns:
            The existing or newly created LedgerAccount
        """
        account, created = LedgerAccount.objects.get_or_create(
            type=account_type,
            owner_id=owner_id,
            currency=currency or settings.LEDGER_DEFAULT_CURRENCY,
            defaults={"allow_negative": allow_negative},
        )
        if created:
            logger.info(
                "Ledger account created",
                extra={
                    "account_id": str(account.id),
                    "account_type": account.type,
                    "owner_id": str(owner_id) if owner_id else None,
                },
            )
        return account

    @staticmethod
    def escrow_account(currency: str | None = None) -> LedgerAccount:
        """Platform escrow account holding client payments."""
        return LedgerService.get_or_create_account(
            AccountType.PLATFORM_ESCROW, currency=currency
        )

    @staticmethod
    def revenue_account(currency: str | None = None) -> LedgerAccount:
        """Platform revenue account receiving commission."""
        return LedgerService.get_or_create_account(
            AccountType.PLATFORM_REVENUE, currency=currency
        )

    @staticmethod
    def gateway_account(currency: str | None = None) -> LedgerAccount:
        """External gateway account; its negative balance is money inside the platform."""
        return LedgerService.get_or_create_account(
            AccountType.EXTERNAL_GATEWAY, currency=currency, allow_negative=True
        )

    @staticmethod
    def wallet_for(
        owner_id: uuid.UUID,
        account_type: AccountType | str = AccountType.CLIENT_WALLET,
        currency: str | None = None,
    ) -> LedgerAccount:
        """Get or create the wallet of an actor."""
        return LedgerService.get_or_create_account(
            account_type, owner_id=owner_id, currency=currency
        )

    @staticmethod
    def get_account(account_id: uuid.UUID) -> LedgerAccount:
        """
        Get account by ID.

        Raises:
            AccountNotFound: If account doesn't exist
        """
        try:
            return LedgerAccount.objects.get(id=account_id)
        except LedgerAccount.DoesNotExist:
            raise AccountNotFound(
                f"Account {account_id} not found",
                details={"account_id": str(account_id)},
            )

    @staticmethod
    def get_account_by_owner(
        account_type: AccountType | str,
        owner_id: uuid.UUID,
        currency: str | None = None,
    ) -> LedgerAccount | None:
        """
        Get account by type, owner, and currency.

        Returns:
            The LedgerAccount if found, None otherwise
        """
        return LedgerAccount.objects.filter(
            type=account_type,
            owner_id=owner_id,
            currency=currency or settings.LEDGER_DEFAULT_CURRENCY,
        ).first()

    @staticmethod
    def deactivate_account(account_id: uuid.UUID) -> LedgerAccount:
        """
        Mark an account inactive.

        Inactive accounts reject new postings; their history is preserved.
        """
        account = LedgerService.get_account(account_id)
        account.is_active = False
        account.save(update_fields=["is_active", "updated_at"])
        return account

    @staticmethod
    def reactivate_account(account_id: uuid.UUID) -> LedgerAccount:
        """Reactivate a previously deactivated account."""
        account = LedgerService.get_account(account_id)
        account.is_active = True
        account.save(update_fields=["is_active", "updated_at"])
        return account

    # =========================================================================
    # Posting
    # =========================================================================

    @staticmethod
    def _validate_legs(legs: list[PostingLeg]) -> None:
        """
        Check a posting is non-empty, positive and balanced.

        Raises:
            UnbalancedPosting: If any check fails
        """
        if not legs:
            raise UnbalancedPosting("A posting needs at least one leg")

        for leg in legs:
            if leg.amount_cents <= 0:
                raise UnbalancedPosting(
                    "Posting leg amounts must be positive",
                    details={
                        "account_id": str(leg.account_id),
                        "amount_cents": leg.amount_cents,
                    },
                )

        net = sum(leg.signed_amount for leg in legs)
        if net != 0:
            raise UnbalancedPosting(
                f"Posting does not balance (net {net})",
                details={
                    "credits_cents": sum(
                        leg.amount_cents
                        for leg in legs
                        if leg.direction == Direction.CREDIT
                    ),
                    "debits_cents": sum(
                        leg.amount_cents
                        for leg in legs
                        if leg.direction == Direction.DEBIT
                    ),
                },
            )

    @staticmethod
    def _validate_account_for_posting(account: LedgerAccount) -> None:
        """
        Check an account may take part in a posting.

        Raises:
            InactiveAccount: If account is inactive
            AccountFrozen: If account is frozen
        """
        if not account.is_active:
            raise InactiveAccount(
                f"Account {account.id} is inactive",
                details={"account_id": str(account.id)},
            )
        if account.is_frozen:
            raise AccountFrozen(
                f"Account {account.id} is frozen",
                details={
                    "account_id": str(account.id),
                    "reason": account.frozen_reason,
                },
            )

    @staticmethod
    def _find_posting(
        reference_id: uuid.UUID, idempotency_key: str
    ) -> list[LedgerEntry]:
        return list(
            LedgerEntry.objects.filter(
                reference_id=reference_id,
                idempotency_key=idempotency_key,
            ).order_by("created_at")
        )

    @staticmethod
    def post(
        legs: list[PostingLeg],
        *,
        reference_kind: str,
        reference_id: uuid.UUID,
        idempotency_key: str,
        description: str = "",
        metadata: dict[str, Any] | None = None,
        created_by: str = "",
    ) -> PostingResult:
        """
        Apply a balanced set of legs atomically.

        Either every leg is written and every touched account's cached
        balance updated, or nothing is. Safe to retry with the same
        reference_id and idempotency_key: a posting already recorded under
        that pair is returned unchanged with ``replayed=True``.

        Args:
            legs: Credits and debits; must net to zero
            reference_kind: ReferenceKind of the business event
            reference_id: Project or withdrawal id the posting belongs to
            idempotency_key: Key identifying this posting within the reference
            description: Human-readable description stored on each entry
            metadata: JSON context stored on each entry
            created_by: Actor id or service name

        Returns:
            PostingResult with the entries written (or found)

        Raises:
            UnbalancedPosting: Legs empty, non-positive or not netting to zero
            AccountNotFound: A leg references an unknown account
            InactiveAccount / AccountFrozen: An account may not be posted to
            InsufficientFunds: A bucket of a non-negative account would go below zero
            Busy: Account locks could not be acquired in time
        """
        if not idempotency_key:
            raise UnbalancedPosting("idempotency_key is required")
        LedgerService._validate_legs(legs)

        account_ids = {leg.account_id for leg in legs}

        with transaction.atomic():
            bounded_lock_wait()
            # Fixed global lock order: ascending account id
            with row_lock_timeout_as_busy("ledger accounts"):
                accounts = {
                    acc.id: acc
                    for acc in LedgerAccount.objects.filter(id__in=account_ids)
                    .select_for_update()
                    .order_by("id")
                }

            for account_id in account_ids:
                if account_id not in accounts:
                    raise AccountNotFound(
                        f"Account {account_id} not found",
                        details={"account_id": str(account_id)},
                    )

            # Idempotency is checked under the account locks, so a concurrent
            # duplicate either sees our entries or waits for them.
            existing = LedgerService._find_posting(reference_id, idempotency_key)
            if existing:
                logger.info(
                    "Ledger posting replayed",
                    extra={
                        "reference_id": str(reference_id),
                        "idempotency_key": idempotency_key,
                        "posting_id": str(existing[0].posting_id),
                    },
                )
                return PostingResult(
                    posting_id=existing[0].posting_id,
                    entries=existing,
                    replayed=True,
                )

            currencies = {acc.currency for acc in accounts.values()}
            if len(currencies) > 1:
                raise UnbalancedPosting(
                    "A posting cannot mix currencies",
                    details={"currencies": sorted(currencies)},
                )
            currency = currencies.pop()

            for account in accounts.values():
                LedgerService._validate_account_for_posting(account)

            before = {
                acc.id: {
                    Bucket.AVAILABLE: acc.available_cents,
                    Bucket.HELD: acc.held_cents,
                }
                for acc in accounts.values()
            }
            debited: dict[tuple[uuid.UUID, str], int] = defaultdict(int)

            posting_id = uuid.uuid4()
            entries: list[LedgerEntry] = []
            for leg in legs:
                account = accounts[leg.account_id]
                account.balance_cents += leg.signed_amount
                if leg.bucket == Bucket.HELD:
                    account.held_cents += leg.signed_amount
                if leg.direction == Direction.DEBIT:
                    debited[(account.id, leg.bucket)] += leg.amount_cents

                entries.append(
                    LedgerEntry(
                        posting_id=posting_id,
                        account=account,
                        bucket=leg.bucket,
                        direction=leg.direction,
                        amount_cents=leg.amount_cents,
                        currency=currency,
                        reference_kind=reference_kind,
                        reference_id=reference_id,
                        idempotency_key=idempotency_key,
                        balance_after_cents=account.balance_cents,
                        held_after_cents=account.held_cents,
                        description=description,
                        metadata=metadata or {},
                        created_by=str(created_by or ""),
                    )
                )

            # Non-negativity is judged on the final state of each account
            for account in accounts.values():
                if account.allow_negative:
                    continue
                after = {
                    Bucket.AVAILABLE: account.available_cents,
                    Bucket.HELD: account.held_cents,
                }
                for bucket, amount in after.items():
                    if amount < 0:
                        raise InsufficientFunds(
                            account_id=account.id,
                            required=debited[(account.id, bucket)],
                            available=before[account.id][bucket],
                            details={"bucket": bucket},
                        )

            try:
                with transaction.atomic():
                    LedgerEntry.objects.bulk_create(entries)
            except IntegrityError:
                # Lost a race on the unique (account, bucket, reference, key)
                existing = LedgerService._find_posting(reference_id, idempotency_key)
                if not existing:
                    raise
                return PostingResult(
                    posting_id=existing[0].posting_id,
                    entries=existing,
                    replayed=True,
                )

            for account in accounts.values():
                account.save(update_fields=["balance_cents", "held_cents", "updated_at"])

        logger.info(
            "Ledger posting committed",
            extra={
                "posting_id": str(posting_id),
                "reference_kind": reference_kind,
                "reference_id": str(reference_id),
                "idempotency_key": idempotency_key,
                "legs": len(legs),
            },
        )
        return PostingResult(posting_id=posting_id, entries=entries, replayed=False)

    @staticmethod
    def transfer(
        from_account_id: uuid.UUID,
        to_account_id: uuid.UUID,
        amount_cents: int,
        *,
        reference_kind: str,
        reference_id: uuid.UUID,
        idempotency_key: str,
        description: str = "",
        created_by: str = "",
    ) -> PostingResult:
        """
        Convenience method for a two-leg transfer between available buckets.

        Example:
            ledger.transfer(
                escrow.id,
                fulfiller_wallet.id,
                40000,
                reference_kind=ReferenceKind.ESCROW_RELEASE,
                reference_id=project.id,
                idempotency_key="release",
            )
        """
        return LedgerService.post(
            [
                PostingLeg.debit(from_account_id, amount_cents),
                PostingLeg.credit(to_account_id, amount_cents),
            ],
            reference_kind=reference_kind,
            reference_id=reference_id,
            idempotency_key=idempotency_key,
            description=description,
            created_by=created_by,
        )

    # =========================================================================
    # Balances & integrity
    # =========================================================================

    @staticmethod
    def _read_consistent(account_id: uuid.UUID) -> tuple[LedgerAccount, int, int]:
        """Lock the account row and replay its entries in one transaction."""
        with transaction.atomic():
            bounded_lock_wait()
            with row_lock_timeout_as_busy(f"ledger account {account_id}"):
                account = (
                    LedgerAccount.objects.select_for_update()
                    .filter(id=account_id)
                    .first()
                )
            if account is None:
                raise AccountNotFound(
                    f"Account {account_id} not found",
                    details={"account_id": str(account_id)},
                )
            available, held = account.compute_balance()
        return account, available, held

    @staticmethod
    def _freeze(account: LedgerAccount, reason: str) -> None:
        LedgerAccount.objects.filter(id=account.id).update(
            is_frozen=True, frozen_reason=reason
        )
        account.is_frozen = True
        account.frozen_reason = reason

    @staticmethod
    def get_balance(account_id: uuid.UUID) -> Balance:
        """
        Get the balance of an account, computed from committed entries.

        The replayed balance is compared with the cached columns. On a
        mismatch the account is frozen and a consistency alarm raised.

        Returns:
            Balance with available, held and total amounts

        Raises:
            AccountNotFound: If account doesn't exist
            LedgerIntegrityError: If the cache disagrees with the entries

        Note:
            Call outside any enclosing transaction: the freeze is written
            before the error is raised and would be rolled back with it.
        """
        account, available, held = LedgerService._read_consistent(account_id)
        cached = (account.balance_cents, account.held_cents)
        computed = (available + held, held)

        if cached != computed:
            LedgerService._freeze(account, "Cached balance does not match entries")
            logger.critical(
                "Ledger integrity violation, account frozen",
                extra={
                    "account_id": str(account.id),
                    "cached_balance_cents": cached[0],
                    "cached_held_cents": cached[1],
                    "computed_balance_cents": computed[0],
                    "computed_held_cents": computed[1],
                },
            )
            raise LedgerIntegrityError(account.id, cached=cached, computed=computed)

        return Balance(available=available, held=held, currency=account.currency)

    @staticmethod
    def verify_account(account_id: uuid.UUID) -> bool:
        """
        Check one account; returns False (and freezes it) on a mismatch.
        """
        try:
            LedgerService.get_balance(account_id)
        except LedgerIntegrityError:
            return False
        return True

    @staticmethod
    def verify_all_accounts() -> list[uuid.UUID]:
        """
        Check every unfrozen account.

        Returns:
            Ids of the accounts found inconsistent (now frozen)
        """
        failed = []
        for account_id in LedgerAccount.objects.filter(is_frozen=False).values_list(
            "id", flat=True
        ):
            if not LedgerService.verify_account(account_id):
                failed.append(account_id)
        return failed

    @staticmethod
    def unfreeze_account(account_id: uuid.UUID, operator: str = "") -> LedgerAccount:
        """
        Unfreeze an account after investigation.

        The cache is rebuilt from the entries, which are authoritative.
        """
        with transaction.atomic():
            account, available, held = LedgerService._read_consistent(account_id)
            account.balance_cents = available + held
            account.held_cents = held
            account.is_frozen = False
            account.frozen_reason = ""
            account.save(
                update_fields=[
                    "balance_cents",
                    "held_cents",
                    "is_frozen",
                    "frozen_reason",
                    "updated_at",
                ]
            )
        logger.warning(
            "Ledger account unfrozen",
            extra={"account_id": str(account_id), "operator": operator},
        )
        return account

    @staticmethod
    def global_totals() -> dict[str, int]:
        """
        Sum of all credits and all debits across the ledger.

        The two are always equal; a difference means an unbalanced write
        bypassed ``post``.
        """
        totals = dict(
            LedgerEntry.objects.order_by()
            .values("direction")
            .annotate(total=Sum("amount_cents"))
            .values_list("direction", "total")
        )
        return {
            "credits_cents": totals.get(Direction.CREDIT, 0) or 0,
            "debits_cents": totals.get(Direction.DEBIT, 0) or 0,
        }

    # =========================================================================
    # Queries
    # =========================================================================

    @staticmethod
    def get_entries_for_account(
        account_id: uuid.UUID,
        limit: int = 100,
        offset: int = 0,
    ) -> list[LedgerEntry]:
        """
        Get entries of an account, newest first.
        """
        return list(
            LedgerEntry.objects.filter(account_id=account_id).order_by("-created_at")[
                offset : offset + limit
            ]
        )

    @staticmethod
    def get_entries_by_reference(
        reference_id: uuid.UUID,
        reference_kind: str | None = None,
    ) -> list[LedgerEntry]:
        """
        Get all entries for a project or withdrawal, in time order.

        Used for audit and dispute resolution: replaying the result
        reconstructs every fund movement of the reference.
        """
        queryset = LedgerEntry.objects.filter(reference_id=reference_id)
        if reference_kind:
            queryset = queryset.filter(reference_kind=reference_kind)
        return list(queryset.select_related("account").order_by("created_at"))

    @staticmethod
    def net_for_reference(account_id: uuid.UUID, reference_id: uuid.UUID) -> int:
        """
        Net amount (credits minus debits) an account holds for one reference.

        For the escrow account and a project id this is the project's
        escrow remainder.
        """
        return sum(
            entry.signed_amount
            for entry in LedgerEntry.objects.filter(
                account_id=account_id, reference_id=reference_id
            ).only("direction", "amount_cents")
        )


# Singleton instance for convenience
# Usage: from payments.ledger.services import ledger
ledger = LedgerService()
