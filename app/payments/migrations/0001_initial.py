"""
Initial payments schema.

Creates:
    - LedgerAccount with cached available/held buckets
    - LedgerEntry (immutable posting legs)
    - EscrowSettlement (per-project release/refund marker)
    - WithdrawalRequest (django-fsm status)
"""

import uuid

import django.db.models.deletion
import django.utils.timezone
import django_fsm
from django.db import migrations, models

import payments.ledger.models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="LedgerAccount",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("client_wallet", "Client Wallet"),
                            ("fulfiller_wallet", "Fulfiller Wallet"),
                            ("platform_escrow", "Platform Escrow"),
                            ("platform_revenue", "Platform Revenue"),
                            ("external_gateway", "External Gateway"),
                        ],
                        help_text="Category of this account",
                        max_length=50,
                    ),
                ),
                (
                    "owner_id",
                    models.UUIDField(
                        blank=True,
                        db_index=True,
                        help_text="UUID of the actor that owns this account",
                        null=True,
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default=payments.ledger.models.default_currency,
                        help_text="ISO 4217 currency code",
                        max_length=3,
                    ),
                ),
                (
                    "balance_cents",
                    models.BigIntegerField(
                        default=0,
                        help_text="Cached total balance (available + held) in minor units",
                    ),
                ),
                (
                    "held_cents",
                    models.BigIntegerField(
                        default=0,
                        help_text="Cached amount reserved for pending withdrawals",
                    ),
                ),
                (
                    "allow_negative",
                    models.BooleanField(
                        default=False,
                        help_text="Whether this account can have a negative balance",
                    ),
                ),
                (
                    "is_active",
                    models.BooleanField(
                        db_index=True,
                        default=True,
                        help_text="Whether this account is active",
                    ),
                ),
                (
                    "is_frozen",
                    models.BooleanField(
                        default=False,
                        help_text="Whether postings are halted after an integrity alarm",
                    ),
                ),
                (
                    "frozen_reason",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Why this account was frozen",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this account was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when the cached balance last changed",
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(
                        fields=["type", "currency"],
                        name="ledger_acct_type_currency_idx",
                    )
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("type", "owner_id", "currency"),
                        name="unique_account_per_owner",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("owner_id__isnull", True)),
                        fields=("type", "currency"),
                        name="unique_platform_account",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("allow_negative", True),
                            models.Q(
                                ("held_cents__gte", 0),
                                ("balance_cents__gte", models.F("held_cents")),
                            ),
                            _connector="OR",
                        ),
                        name="ledger_account_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "posting_id",
                    models.UUIDField(
                        db_index=True,
                        help_text="Identifier shared by all legs of one posting",
                    ),
                ),
                (
                    "bucket",
                    models.CharField(
                        choices=[("available", "Available"), ("held", "Held")],
                        default="available",
                        help_text="Balance bucket this leg moves",
                        max_length=10,
                    ),
                ),
                (
                    "direction",
                    models.CharField(
                        choices=[("credit", "Credit"), ("debit", "Debit")],
                        help_text="Credit (money in) or debit (money out)",
                        max_length=6,
                    ),
                ),
                (
                    "amount_cents",
                    models.PositiveBigIntegerField(
                        help_text="Amount in minor units (always positive)",
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default=payments.ledger.models.default_currency,
                        help_text="ISO 4217 currency code",
                        max_length=3,
                    ),
                ),
                (
                    "reference_kind",
                    models.CharField(
                        choices=[
                            ("project_payment", "Project Payment"),
                            ("escrow_release", "Escrow Release"),
                            ("refund", "Refund"),
                            ("withdrawal", "Withdrawal"),
                            ("adjustment", "Adjustment"),
                            ("fee", "Fee"),
                        ],
                        help_text="Business event this entry belongs to",
                        max_length=50,
                    ),
                ),
                (
                    "reference_id",
                    models.UUIDField(
                        help_text="UUID of the project or withdrawal this entry belongs to",
                    ),
                ),
                (
                    "idempotency_key",
                    models.CharField(
                        help_text="Key preventing the same posting from applying twice",
                        max_length=255,
                    ),
                ),
                (
                    "balance_after_cents",
                    models.BigIntegerField(
                        help_text="Account total balance after this leg",
                    ),
                ),
                (
                    "held_after_cents",
                    models.BigIntegerField(
                        help_text="Account held amount after this leg",
                    ),
                ),
                (
                    "description",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Human-readable description of this entry",
                    ),
                ),
                (
                    "metadata",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Arbitrary JSON data for extensibility",
                    ),
                ),
                (
                    "created_by",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Actor id or service that created this entry",
                        max_length=255,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this entry was recorded",
                    ),
                ),
                (
                    "account",
                    models.ForeignKey(
                        help_text="Account this leg applies to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="entries",
                        to="payments.ledgeraccount",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "ledger entries",
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(
                        fields=["reference_kind", "reference_id"],
                        name="ledger_entry_reference_idx",
                    ),
                    models.Index(
                        fields=["reference_id", "idempotency_key"],
                        name="ledger_entry_ref_key_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount_cents__gt", 0)),
                        name="ledger_entry_amount_cents_positive",
                    ),
                    models.UniqueConstraint(
                        fields=("account", "bucket", "reference_id", "idempotency_key"),
                        name="unique_ledger_entry_per_reference",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="EscrowSettlement",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "project_id",
                    models.UUIDField(
                        help_text="Project whose escrow was settled",
                        unique=True,
                    ),
                ),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("release", "Release to fulfiller"),
                            ("refund", "Refund to client"),
                        ],
                        help_text="Release to fulfiller or refund to client",
                        max_length=10,
                    ),
                ),
                (
                    "amount_cents",
                    models.PositiveBigIntegerField(
                        help_text="Amount moved out of escrow in minor units",
                    ),
                ),
                (
                    "posting_id",
                    models.UUIDField(
                        blank=True,
                        help_text="Ledger posting that moved the funds",
                        null=True,
                    ),
                ),
                (
                    "actor_id",
                    models.UUIDField(
                        blank=True,
                        help_text="Actor that triggered the settlement",
                        null=True,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        help_text="When the settlement was recorded",
                    ),
                ),
                (
                    "account",
                    models.ForeignKey(
                        help_text="Wallet that received the settled funds",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="settlements",
                        to="payments.ledgeraccount",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="WithdrawalRequest",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "amount_cents",
                    models.PositiveBigIntegerField(
                        help_text="Withdrawal amount in minor units",
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="inr",
                        help_text="ISO 4217 currency code (lowercase)",
                        max_length=3,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("approved", "Approved"),
                            ("rejected", "Rejected"),
                            ("paid", "Paid"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current state of the withdrawal (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "requested_by",
                    models.UUIDField(
                        help_text="Actor that requested the withdrawal",
                    ),
                ),
                (
                    "reviewed_by",
                    models.UUIDField(
                        blank=True,
                        help_text="Staff actor that resolved the withdrawal",
                        null=True,
                    ),
                ),
                (
                    "rejection_reason",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Reason given when the withdrawal was rejected",
                    ),
                ),
                (
                    "external_payout_ref",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Gateway reference of the payout",
                        max_length=255,
                    ),
                ),
                (
                    "requested_at",
                    models.DateTimeField(
                        default=django.utils.timezone.now,
                        help_text="When the withdrawal was requested",
                    ),
                ),
                (
                    "resolved_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the withdrawal was approved or rejected",
                        null=True,
                    ),
                ),
                (
                    "paid_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the payout left the platform",
                        null=True,
                    ),
                ),
                (
                    "account",
                    models.ForeignKey(
                        help_text="Wallet the withdrawal is taken from",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="withdrawals",
                        to="payments.ledgeraccount",
                    ),
                ),
            ],
            options={
                "verbose_name": "Withdrawal Request",
                "verbose_name_plural": "Withdrawal Requests",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["account", "status"],
                        name="withdrawal_account_status_idx",
                    )
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount_cents__gt", 0)),
                        name="withdrawal_amount_positive",
                    )
                ],
            },
        ),
    ]
