"""
Payment admin configuration.

This file imports admin configurations from the ledger submodule
and registers payment domain models with the Django admin.
"""

from django.contrib import admin

from payments.ledger.admin import LedgerAccountAdmin, LedgerEntryAdmin
from payments.models import EscrowSettlement, WithdrawalRequest

__all__ = [
    "LedgerAccountAdmin",
    "LedgerEntryAdmin",
    "WithdrawalRequestAdmin",
    "EscrowSettlementAdmin",
]


@admin.register(WithdrawalRequest)
class WithdrawalRequestAdmin(admin.ModelAdmin):
    """
    Admin configuration for WithdrawalRequest.

    Provides visibility into withdrawal status and history.
    Resolution must go through WithdrawalService.resolve so the hold is
    paid out or released in the same transaction.
    """

    list_display = [
        "id",
        "account",
        "amount_display",
        "status",
        "requested_at",
        "resolved_at",
        "paid_at",
    ]
    list_filter = ["status", "currency", "requested_at"]
    search_fields = ["id", "account__id", "requested_by", "external_payout_ref"]
    readonly_fields = [
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
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "requested_at"
    ordering = ["-requested_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "account", "status"),
            },
        ),
        (
            "Amount",
            {
                "fields": ("amount_cents", "currency"),
            },
        ),
        (
            "Review",
            {
                "fields": (
                    "requested_by",
                    "reviewed_by",
                    "rejection_reason",
                    "external_payout_ref",
                ),
            },
        ),
        (
            "Status Timestamps",
            {
                "fields": ("requested_at", "resolved_at", "paid_at"),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    @admin.display(description="Amount")
    def amount_display(self, obj: WithdrawalRequest) -> str:
        return f"{obj.amount_cents / 100:.2f} {obj.currency.upper()}"

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for withdrawals (audit trail)."""
        return False

    def has_add_permission(self, request) -> bool:
        """Withdrawals are created through WithdrawalService.request."""
        return False


@admin.register(EscrowSettlement)
class EscrowSettlementAdmin(admin.ModelAdmin):
    """Read-only view of per-project release/refund markers."""

    list_display = ["project_id", "kind", "amount_cents", "account", "created_at"]
    list_filter = ["kind", "created_at"]
    search_fields = ["project_id", "posting_id"]
    readonly_fields = [
        "id",
        "project_id",
        "kind",
        "amount_cents",
        "account",
        "posting_id",
        "actor_id",
        "created_at",
    ]
    ordering = ["-created_at"]

    def has_delete_permission(self, request, obj=None) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_add_permission(self, request) -> bool:
        return False
