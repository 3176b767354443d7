"""
WithdrawalRequest model for converting wallet balance into a payout.

A WithdrawalRequest is created by WithdrawalService.request together with
a ledger hold that moves the amount from the account's available bucket
into its held bucket. Resolution either pays the held amount out to the
gateway or returns it to available.

Usage:
    from payments.models import WithdrawalRequest
    from payments.state_machines import WithdrawalState

    # Transitions are driven by WithdrawalService, never called directly
    withdrawal.approve(reviewer_id)   # pending -> approved
    withdrawal.mark_paid("payout_1")  # approved -> paid
    withdrawal.save()
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import WithdrawalState


class WithdrawalRequest(UUIDPrimaryKeyMixin, BaseModel):
    """
    A request to pay out part of a wallet's available balance.

    State Flow:
        PENDING -> APPROVED -> PAID
        PENDING -> REJECTED

    Fields:
        account: Wallet the funds come from
        amount_cents: Requested amount in minor units
        currency: ISO 4217 currency code (copied from the account)
        status: Current FSM state
        requested_by: Actor id of the account owner
        reviewed_by: Actor id of the staff reviewer
        rejection_reason: Why the request was rejected
        external_payout_ref: Gateway reference of the payout
        requested_at / resolved_at / paid_at: Timestamps

    Note:
        The hold posting uses this request's id as its reference, so the
        ledger entries of one withdrawal can be replayed by id.
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    account = models.ForeignKey(
        "payments.LedgerAccount",
        on_delete=models.PROTECT,
        related_name="withdrawals",
        help_text="Wallet the withdrawal is taken from",
    )

    # ==========================================================================
    # Amount & Currency
    # ==========================================================================

    amount_cents = models.PositiveBigIntegerField(
        help_text="Withdrawal amount in minor units",
    )

    currency = models.CharField(
        max_length=3,
        default="inr",
        help_text="ISO 4217 currency code (lowercase)",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=WithdrawalState.PENDING,
        choices=WithdrawalState.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the withdrawal (managed by FSM)",
    )

    # ==========================================================================
    # Actors & Review
    # ==========================================================================

    requested_by = models.UUIDField(
        help_text="Actor that requested the withdrawal",
    )

    reviewed_by = models.UUIDField(
        null=True,
        blank=True,
        help_text="Staff actor that resolved the withdrawal",
    )

    rejection_reason = models.TextField(
        blank=True,
        default="",
        help_text="Reason given when the withdrawal was rejected",
    )

    external_payout_ref = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Gateway reference of the payout",
    )

    # ==========================================================================
    # Timestamps
    # ==========================================================================

    requested_at = models.DateTimeField(
        default=timezone.now,
        help_text="When the withdrawal was requested",
    )

    resolved_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the withdrawal was approved or rejected",
    )

    paid_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the payout left the platform",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Withdrawal Request"
        verbose_name_plural = "Withdrawal Requests"
        indexes = [
            models.Index(fields=["account", "status"], name="withdrawal_account_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount_cents__gt=0),
                name="withdrawal_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        """Return string representation with ID, state, and amount."""
        amount_display = f"{self.amount_cents / 100:.2f} {self.currency.upper()}"
        return f"Withdrawal({self.id}, {self.status}, {amount_display})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=WithdrawalState.PENDING,
        target=WithdrawalState.APPROVED,
    )
    def approve(self, reviewer_id):
        """
        Approve the withdrawal.

        Transition: PENDING -> APPROVED
        """
        self.reviewed_by = reviewer_id
        self.resolved_at = timezone.now()

    @transition(
        field=status,
        source=WithdrawalState.APPROVED,
        target=WithdrawalState.PAID,
    )
    def mark_paid(self, external_payout_ref: str = ""):
        """
        Mark the payout as sent.

        Transition: APPROVED -> PAID
        """
        self.external_payout_ref = external_payout_ref or ""
        self.paid_at = timezone.now()

    @transition(
        field=status,
        source=WithdrawalState.PENDING,
        target=WithdrawalState.REJECTED,
    )
    def reject(self, reviewer_id, reason: str = ""):
        """
        Reject the withdrawal; the hold is reversed by the service.

        Transition: PENDING -> REJECTED
        """
        self.reviewed_by = reviewer_id
        self.rejection_reason = reason or ""
        self.resolved_at = timezone.now()

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_pending(self) -> bool:
        return self.status == WithdrawalState.PENDING

    @property
    def is_resolved(self) -> bool:
        """Check if the request reached a terminal state."""
        return self.status in (WithdrawalState.PAID, WithdrawalState.REJECTED)
