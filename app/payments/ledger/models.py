"""
Ledger models for double-entry bookkeeping.

This module defines the core models for the wallet ledger:
- LedgerAccount: Holds monetary value (client/fulfiller wallets, escrow, revenue)
- LedgerEntry: One immutable leg of a posting against one account bucket

Every posting writes one entry per leg and its credits equal its debits,
so the sum of all credits always equals the sum of all debits.

Each account has two buckets:
- available: spendable funds
- held: funds reserved against a pending withdrawal

Usage:
    from payments.ledger.models import AccountType, LedgerAccount

    escrow = LedgerAccount.objects.create(type=AccountType.PLATFORM_ESCROW)
    available, held = escrow.compute_balance()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import Case, Q, Sum, Value, When
from django.db.models.functions import Coalesce

from core.model_mixins import UUIDPrimaryKeyMixin


def default_currency() -> str:
    return settings.LEDGER_DEFAULT_CURRENCY


class AccountType(models.TextChoices):
    """
    Types of ledger accounts.

    Values:
        CLIENT_WALLET: A client's wallet (refunds land here)
        FULFILLER_WALLET: A fulfiller's wallet (escrow releases land here)
        SUPERVISOR_WALLET: A supervisor's wallet (their commission share lands here)
        PLATFORM_ESCROW: Client payments held until work is approved
        PLATFORM_REVENUE: Platform fee forwarded on completion
        EXTERNAL_GATEWAY: Money entering/leaving the platform (may go negative)
    """

    CLIENT_WALLET = "client_wallet", "Client Wallet"
    FULFILLER_WALLET = "fulfiller_wallet", "Fulfiller Wallet"
    SUPERVISOR_WALLET = "supervisor_wallet", "Supervisor Wallet"
    PLATFORM_ESCROW = "platform_escrow", "Platform Escrow"
    PLATFORM_REVENUE = "platform_revenue", "Platform Revenue"
    EXTERNAL_GATEWAY = "external_gateway", "External Gateway"


# Account types owned by an end user (owner_id is the actor id)
WALLET_TYPES = (
    AccountType.CLIENT_WALLET,
    AccountType.FULFILLER_WALLET,
    AccountType.SUPERVISOR_WALLET,
)


class ReferenceKind(models.TextChoices):
    """
    Business event a posting belongs to.

    Values:
        PROJECT_PAYMENT: Client payment received into escrow
        ESCROW_RELEASE: Fulfiller payout released from escrow
        REFUND: Escrow remainder returned to the client
        WITHDRAWAL: Hold, payout or hold reversal of a withdrawal request
        ADJUSTMENT: Wallet top-up or manual correction
        FEE: Platform commission forwarded from escrow to revenue
    """

    PROJECT_PAYMENT = "project_payment", "Project Payment"
    ESCROW_RELEASE = "escrow_release", "Escrow Release"
    REFUND = "refund", "Refund"
    WITHDRAWAL = "withdrawal", "Withdrawal"
    ADJUSTMENT = "adjustment", "Adjustment"
    FEE = "fee", "Fee"


class Direction(models.TextChoices):
    CREDIT = "credit", "Credit"
    DEBIT = "debit", "Debit"


class Bucket(models.TextChoices):
    AVAILABLE = "available", "Available"
    HELD = "held", "Held"


class LedgerAccount(UUIDPrimaryKeyMixin, models.Model):
    """
    A ledger account that holds monetary value.

    The authoritative balance is the replay of the account's entries;
    balance_cents and held_cents are a cache updated in the same
    transaction as every posting.

    Fields:
        id: UUID primary key (from UUIDPrimaryKeyMixin)
        type: Account category
        owner_id: Actor owning the account (null for platform accounts)
        currency: ISO 4217 currency code
        balance_cents: Cached total (available + held)
        held_cents: Cached held amount
        allow_negative: Whether buckets may go negative (gateway only)
        is_active: Whether the account accepts postings
        is_frozen: Set when an integrity check fails; blocks postings
        frozen_reason: Why the account was frozen
        created_at / updated_at: Timestamps

    Constraints:
        - Unique combination of (type, owner_id, currency)
        - One platform account (no owner) per (type, currency)
        - held_cents <= balance_cents and held_cents >= 0 unless allow_negative
    """

    type = models.CharField(
        max_length=50,
        choices=AccountType.choices,
        help_text="Category of this account",
    )
    owner_id = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text="UUID of the actor that owns this account",
    )
    currency = models.CharField(
        max_length=3,
        default=default_currency,
        help_text="ISO 4217 currency code",
    )
    balance_cents = models.BigIntegerField(
        default=0,
        help_text="Cached total balance (available + held) in minor units",
    )
    held_cents = models.BigIntegerField(
        default=0,
        help_text="Cached amount reserved for pending withdrawals",
    )
    allow_negative = models.BooleanField(
        default=False,
        help_text="Whether this account can have a negative balance",
    )
    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Whether this account is active",
    )
    is_frozen = models.BooleanField(
        default=False,
        help_text="Whether postings are halted after an integrity alarm",
    )
    frozen_reason = models.TextField(
        blank=True,
        default="",
        help_text="Why this account was frozen",
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when the cached balance last changed",
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["type", "owner_id", "currency"],
                name="unique_account_per_owner",
            ),
            models.UniqueConstraint(
                fields=["type", "currency"],
                condition=Q(owner_id__isnull=True),
                name="unique_platform_account",
            ),
            models.CheckConstraint(
                condition=Q(allow_negative=True)
                | (Q(held_cents__gte=0) & Q(balance_cents__gte=models.F("held_cents"))),
                name="ledger_account_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["type", "currency"], name="ledger_acct_type_currency_idx"),
        ]

    def __str__(self) -> str:
        """Return string representation."""
        if self.owner_id:
            return f"{self.get_type_display()} ({self.owner_id})"
        return self.get_type_display()

    @property
    def available_cents(self) -> int:
        """Cached spendable amount."""
        return self.balance_cents - self.held_cents

    def compute_balance(self) -> tuple[int, int]:
        """
        Compute (available, held) from committed entries.

        Returns:
            Tuple of available and held amounts in minor units

        Note:
            This performs one aggregate query and ignores the cached
            columns; LedgerService.get_balance compares the two.
        """

        def bucket_sum(bucket: str, direction: str):
            return Coalesce(
                Sum(
                    Case(
                        When(
                            bucket=bucket,
                            direction=direction,
                            then="amount_cents",
                        ),
                        default=Value(0),
                        output_field=models.BigIntegerField(),
                    )
                ),
                Value(0),
                output_field=models.BigIntegerField(),
            )

        result = self.entries.aggregate(
            available_in=bucket_sum(Bucket.AVAILABLE, Direction.CREDIT),
            available_out=bucket_sum(Bucket.AVAILABLE, Direction.DEBIT),
            held_in=bucket_sum(Bucket.HELD, Direction.CREDIT),
            held_out=bucket_sum(Bucket.HELD, Direction.DEBIT),
        )
        return (
            result["available_in"] - result["available_out"],
            result["held_in"] - result["held_out"],
        )


class LedgerEntry(UUIDPrimaryKeyMixin, models.Model):
    """
    One immutable leg of a posting.

    Entries are never updated or deleted; corrections are new postings.
    Entries of one posting share posting_id, reference and idempotency key.

    Fields:
        id: UUID primary key (from UUIDPrimaryKeyMixin)
        posting_id: Groups the legs written by one LedgerService.post call
        account: Account the leg applies to
        bucket: available or held
        direction: credit or debit
        amount_cents: Amount in minor units (always positive)
        currency: ISO 4217 currency code
        reference_kind: Business event (project payment, release, ...)
        reference_id: Id of the project or withdrawal the posting belongs to
        idempotency_key: Caller-chosen key, unique per reference and account bucket
        balance_after_cents / held_after_cents: Account snapshot after this leg
        description / metadata / created_by: Audit context
        created_at: Timestamp when entry was recorded

    Constraints:
        - amount_cents must be positive
        - (account, bucket, reference_id, idempotency_key) is unique, so a
          replayed posting can never credit the same account twice
    """

    posting_id = models.UUIDField(
        db_index=True,
        help_text="Identifier shared by all legs of one posting",
    )
    account = models.ForeignKey(
        LedgerAccount,
        on_delete=models.PROTECT,
        related_name="entries",
        help_text="Account this leg applies to",
    )
    bucket = models.CharField(
        max_length=10,
        choices=Bucket.choices,
        default=Bucket.AVAILABLE,
        help_text="Balance bucket this leg moves",
    )
    direction = models.CharField(
        max_length=6,
        choices=Direction.choices,
        help_text="Credit (money in) or debit (money out)",
    )
    amount_cents = models.PositiveBigIntegerField(
        help_text="Amount in minor units (always positive)",
    )
    currency = models.CharField(
        max_length=3,
        default=default_currency,
        help_text="ISO 4217 currency code",
    )

    reference_kind = models.CharField(
        max_length=50,
        choices=ReferenceKind.choices,
        help_text="Business event this entry belongs to",
    )
    reference_id = models.UUIDField(
        help_text="UUID of the project or withdrawal this entry belongs to",
    )
    idempotency_key = models.CharField(
        max_length=255,
        help_text="Key preventing the same posting from applying twice",
    )

    balance_after_cents = models.BigIntegerField(
        help_text="Account total balance after this leg",
    )
    held_after_cents = models.BigIntegerField(
        help_text="Account held amount after this leg",
    )

    description = models.TextField(
        blank=True,
        default="",
        help_text="Human-readable description of this entry",
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Arbitrary JSON data for extensibility",
    )
    created_by = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Actor id or service that created this entry",
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this entry was recorded",
    )

    class Meta:
        ordering = ["created_at"]
        verbose_name_plural = "ledger entries"
        indexes = [
            models.Index(
                fields=["reference_kind", "reference_id"],
                name="ledger_entry_reference_idx",
            ),
            models.Index(
                fields=["reference_id", "idempotency_key"],
                name="ledger_entry_ref_key_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount_cents__gt=0),
                name="ledger_entry_amount_cents_positive",
            ),
            models.UniqueConstraint(
                fields=["account", "bucket", "reference_id", "idempotency_key"],
                name="unique_ledger_entry_per_reference",
            ),
        ]

    def __str__(self) -> str:
        """Return string representation."""
        return f"{self.get_direction_display()} {self.amount_cents} ({self.reference_kind})"

    @property
    def signed_amount(self) -> int:
        """Amount with credits positive and debits negative."""
        if self.direction == Direction.CREDIT:
            return self.amount_cents
        return -self.amount_cents
