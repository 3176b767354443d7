"""
EscrowSettlement model: the per-project settlement marker.

A project's escrow is settled exactly once, either released to the
fulfiller or refunded to the client. The unique project_id makes the two
mutually exclusive at the database level: the marker row is inserted in
the same transaction as the ledger posting it guards.
"""

from __future__ import annotations

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import SettlementKind


class EscrowSettlement(UUIDPrimaryKeyMixin, models.Model):
    """
    Records how (and to whom) a project's escrow was settled.

    Fields:
        project_id: Project whose escrow was settled (unique)
        kind: release or refund
        amount_cents: Amount moved out of escrow
        account: Wallet that received the funds
        posting_id: Ledger posting that moved the funds
        actor_id: Actor that triggered the settlement
        created_at: When the settlement was recorded

    Note:
        project_id is a plain UUID rather than a foreign key so the
        payments app does not depend on the projects app.
    """

    project_id = models.UUIDField(
        unique=True,
        help_text="Project whose escrow was settled",
    )
    kind = models.CharField(
        max_length=10,
        choices=SettlementKind.choices,
        help_text="Release to fulfiller or refund to client",
    )
    amount_cents = models.PositiveBigIntegerField(
        help_text="Amount moved out of escrow in minor units",
    )
    account = models.ForeignKey(
        "payments.LedgerAccount",
        on_delete=models.PROTECT,
        related_name="settlements",
        help_text="Wallet that received the settled funds",
    )
    posting_id = models.UUIDField(
        null=True,
        blank=True,
        help_text="Ledger posting that moved the funds",
    )
    actor_id = models.UUIDField(
        null=True,
        blank=True,
        help_text="Actor that triggered the settlement",
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="When the settlement was recorded",
    )

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.get_kind_display()} for project {self.project_id}"
