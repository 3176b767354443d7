"""
Tests for ledger models.

This module tests the LedgerAccount and LedgerEntry models,
including field constraints, defaults, and balance replay.
"""

import uuid

import pytest
from django.db import IntegrityError, transaction
from django.db.models import ProtectedError

from payments.ledger.models import (
    AccountType,
    Bucket,
    Direction,
    LedgerAccount,
    LedgerEntry,
)
from payments.ledger.tests.factories import LedgerAccountFactory, LedgerEntryFactory


class TestLedgerAccount:
    """Tests for the LedgerAccount model."""

    def test_account_created_with_uuid_primary_key(self, db):
        account = LedgerAccountFactory()
        assert isinstance(account.id, uuid.UUID)

    def test_account_defaults(self, db):
        """Account should have correct default values."""
        account = LedgerAccount.objects.create(
            type=AccountType.CLIENT_WALLET,
            owner_id=uuid.uuid4(),
        )

        assert account.currency == "inr"
        assert account.balance_cents == 0
        assert account.held_cents == 0
        assert account.allow_negative is False
        assert account.is_active is True
        assert account.is_frozen is False

    def test_account_str_with_owner(self, db):
        owner_id = uuid.uuid4()
        account = LedgerAccountFactory(
            type=AccountType.FULFILLER_WALLET,
            owner_id=owner_id,
        )

        assert str(owner_id) in str(account)
        assert "Fulfiller Wallet" in str(account)

    def test_account_str_without_owner(self, db):
        account = LedgerAccountFactory(
            type=AccountType.PLATFORM_ESCROW,
            owner_id=None,
        )

        assert str(account) == "Platform Escrow"

    def test_available_is_total_minus_held(self, db):
        account = LedgerAccountFactory(balance_cents=10000, held_cents=4000)

        assert account.available_cents == 6000

    def test_unique_constraint_same_type_owner_currency(self, db):
        owner_id = uuid.uuid4()
        LedgerAccountFactory(type=AccountType.CLIENT_WALLET, owner_id=owner_id)

        with pytest.raises(IntegrityError), transaction.atomic():
            LedgerAccountFactory(type=AccountType.CLIENT_WALLET, owner_id=owner_id)

    def test_one_platform_account_per_type_and_currency(self, db):
        LedgerAccountFactory(type=AccountType.PLATFORM_ESCROW, owner_id=None)

        with pytest.raises(IntegrityError), transaction.atomic():
            LedgerAccountFactory(type=AccountType.PLATFORM_ESCROW, owner_id=None)

    def test_same_owner_can_hold_client_and_fulfiller_wallets(self, db):
        owner_id = uuid.uuid4()
        client = LedgerAccountFactory(type=AccountType.CLIENT_WALLET, owner_id=owner_id)
        fulfiller = LedgerAccountFactory(
            type=AccountType.FULFILLER_WALLET, owner_id=owner_id
        )

        assert client.id != fulfiller.id

    def test_negative_balance_rejected_by_database(self, db):
        with pytest.raises(IntegrityError), transaction.atomic():
            LedgerAccountFactory(balance_cents=-1)

    def test_held_above_total_rejected_by_database(self, db):
        with pytest.raises(IntegrityError), transaction.atomic():
            LedgerAccountFactory(balance_cents=100, held_cents=200)

    def test_negative_allowed_for_gateway(self, db):
        account = LedgerAccountFactory(
            type=AccountType.EXTERNAL_GATEWAY,
            owner_id=None,
            allow_negative=True,
            balance_cents=-5000,
        )

        assert account.balance_cents == -5000


class TestComputeBalance:
    """Tests for LedgerAccount.compute_balance()."""

    def test_empty_account_is_zero(self, db):
        assert LedgerAccountFactory().compute_balance() == (0, 0)

    def test_replays_both_buckets(self, db):
        account = LedgerAccountFactory()
        LedgerEntryFactory(account=account, amount_cents=10000)
        LedgerEntryFactory(
            account=account, amount_cents=3000, direction=Direction.DEBIT
        )
        LedgerEntryFactory(account=account, amount_cents=2500, bucket=Bucket.HELD)
        LedgerEntryFactory(
            account=account,
            amount_cents=500,
            bucket=Bucket.HELD,
            direction=Direction.DEBIT,
        )

        assert account.compute_balance() == (7000, 2000)

    def test_ignores_cached_columns(self, db):
        account = LedgerAccountFactory(balance_cents=99999)

        assert account.compute_balance() == (0, 0)


class TestLedgerEntry:
    """Tests for the LedgerEntry model."""

    def test_entry_defaults(self, db):
        account = LedgerAccountFactory()
        entry = LedgerEntry.objects.create(
            posting_id=uuid.uuid4(),
            account=account,
            direction=Direction.CREDIT,
            amount_cents=1000,
            reference_kind="adjustment",
            reference_id=uuid.uuid4(),
            idempotency_key="k",
            balance_after_cents=1000,
            held_after_cents=0,
        )

        assert entry.bucket == Bucket.AVAILABLE
        assert entry.currency == "inr"
        assert entry.metadata == {}
        assert entry.created_at is not None

    def test_signed_amount(self, db):
        credit = LedgerEntryFactory(amount_cents=500)
        debit = LedgerEntryFactory(amount_cents=500, direction=Direction.DEBIT)

        assert credit.signed_amount == 500
        assert debit.signed_amount == -500

    def test_str_shows_direction_and_amount(self, db):
        entry = LedgerEntryFactory(amount_cents=5000)

        assert "Credit" in str(entry)
        assert "5000" in str(entry)

    def test_amount_must_be_positive(self, db):
        with pytest.raises(IntegrityError), transaction.atomic():
            LedgerEntryFactory(amount_cents=0)

    def test_same_reference_and_key_unique_per_account_bucket(self, db):
        account = LedgerAccountFactory()
        reference_id = uuid.uuid4()
        LedgerEntryFactory(
            account=account, reference_id=reference_id, idempotency_key="release"
        )

        with pytest.raises(IntegrityError), transaction.atomic():
            LedgerEntryFactory(
                account=account, reference_id=reference_id, idempotency_key="release"
            )

    def test_same_key_allowed_on_other_bucket(self, db):
        account = LedgerAccountFactory()
        reference_id = uuid.uuid4()
        LedgerEntryFactory(
            account=account, reference_id=reference_id, idempotency_key="hold"
        )
        entry = LedgerEntryFactory(
            account=account,
            reference_id=reference_id,
            idempotency_key="hold",
            bucket=Bucket.HELD,
        )

        assert entry.pk is not None

    def test_entry_protects_account_deletion(self, db):
        entry = LedgerEntryFactory()

        with pytest.raises(ProtectedError):
            entry.account.delete()
