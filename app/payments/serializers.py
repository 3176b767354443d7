"""
DRF serializers for payments app.

This module provides serializers for:
- Payment confirmation requests (escrow funding)
- Account balance responses
- Withdrawal requests and resolutions
- Ledger entry history

Related files:
    - escrow.py: EscrowService
    - withdrawals.py: WithdrawalService
    - views.py: Payment API views

Usage:
    serializer = WithdrawalCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
"""

from __future__ import annotations

from rest_framework import serializers

from payments.ledger.models import LedgerEntry
from payments.models import WithdrawalRequest
from payments.state_machines import WithdrawalOutcome


class ConfirmPaymentSerializer(serializers.Serializer):
    """
    Serializer for payment confirmation.

    Fields:
        amount_cents: Amount paid; must equal the project's quoted price
        external_ref: Gateway reference (idempotency key of the payment)
        from_wallet: Pay from the client's wallet balance instead of the gateway

    The paying account is never taken from the request body; it is the
    authenticated client's own wallet.
    """

    amount_cents = serializers.IntegerField(
        min_value=1,
        help_text="Amount paid in minor units",
    )
    external_ref = serializers.CharField(
        max_length=200,
        help_text="Payment gateway reference; retries must reuse it",
    )
    from_wallet = serializers.BooleanField(
        default=False,
        help_text="Pay from the wallet balance instead of the gateway",
    )


class BalanceSerializer(serializers.Serializer):
    """Read-only view of a ledger Balance."""

    account_id = serializers.UUIDField(read_only=True)
    available_cents = serializers.IntegerField(read_only=True)
    held_cents = serializers.IntegerField(read_only=True)
    total_cents = serializers.IntegerField(read_only=True)
    currency = serializers.CharField(read_only=True)


class LedgerEntrySerializer(serializers.ModelSerializer):
    """Ledger entry for account history listings."""

    class Meta:
        model = LedgerEntry
        fields = [
            "id",
            "posting_id",
            "bucket",
            "direction",
            "amount_cents",
            "currency",
            "reference_kind",
            "reference_id",
            "balance_after_cents",
            "held_after_cents",
            "description",
            "created_at",
        ]
        read_only_fields = fields


class WithdrawalSerializer(serializers.ModelSerializer):
    """
    Withdrawal request for API responses.

    Fields:
        id: Withdrawal id (also the ledger reference of its postings)
        account: Wallet id
        amount_cents / currency: Requested amount
        status: pending | approved | rejected | paid
        requested_at / resolved_at / paid_at: Lifecycle timestamps
    """

    class Meta:
        model = WithdrawalRequest
        fields = [
            "id",
            "account",
            "amount_cents",
            "currency",
            "status",
            "requested_by",
            "reviewed_by",
            "rejection_reason",
            "external_payout_ref",
            "requested_at",
            "resolved_at",
            "paid_at",
        ]
        read_only_fields = fields


class WithdrawalCreateSerializer(serializers.Serializer):
    """
    Serializer for requesting a withdrawal.

    Usage:
        serializer = WithdrawalCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        WithdrawalService.request(
            serializer.validated_data["account_id"],
            serializer.validated_data["amount_cents"],
            actor_id=actor_id,
        )
    """

    account_id = serializers.UUIDField(
        help_text="Wallet to withdraw from (must be your own)",
    )
    amount_cents = serializers.IntegerField(
        min_value=1,
        help_text="Amount in minor units",
    )


class WithdrawalResolveSerializer(serializers.Serializer):
    """Serializer for approving or rejecting a pending withdrawal."""

    outcome = serializers.ChoiceField(
        choices=WithdrawalOutcome.choices,
        help_text="approved (pay out) or rejected (release the hold)",
    )
    reason = serializers.CharField(
        required=False,
        allow_blank=True,
        default="",
        help_text="Rejection reason shown to the requester",
    )
    external_payout_ref = serializers.CharField(
        required=False,
        allow_blank=True,
        default="",
        max_length=255,
        help_text="Gateway reference of the payout",
    )


class TopUpSerializer(serializers.Serializer):
    """Serializer for crediting the caller's wallet from the gateway."""

    amount_cents = serializers.IntegerField(min_value=1)
    external_ref = serializers.CharField(max_length=200)


class EntriesQuerySerializer(serializers.Serializer):
    """Paging parameters for an account's entry history."""

    limit = serializers.IntegerField(min_value=1, max_value=200, default=50)
    offset = serializers.IntegerField(min_value=0, default=0)
