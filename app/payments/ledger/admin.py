"""
Django admin configuration for ledger models.

Accounts are visible with their cached buckets and freeze status;
entries are strictly read-only. Corrections are new postings made
through LedgerService, never admin edits.
"""

from django.contrib import admin

from .models import LedgerAccount, LedgerEntry
from .services import LedgerService


@admin.register(LedgerAccount)
class LedgerAccountAdmin(admin.ModelAdmin):
    """
    Admin configuration for LedgerAccount.

    Cached balances are read-only; only the active flag may be toggled.
    Unfreezing goes through LedgerService.unfreeze_account, which rebuilds
    the cache from entries.
    """

    list_display = [
        "id",
        "type",
        "owner_id",
        "currency",
        "available_display",
        "held_display",
        "is_active",
        "is_frozen",
        "created_at",
    ]
    list_filter = ["type", "currency", "is_active", "is_frozen", "allow_negative"]
    search_fields = ["id", "owner_id"]
    readonly_fields = [
        "id",
        "type",
        "owner_id",
        "currency",
        "balance_cents",
        "held_cents",
        "allow_negative",
        "is_frozen",
        "frozen_reason",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]
    actions = ["unfreeze_accounts"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "type", "owner_id", "currency"),
            },
        ),
        (
            "Balance",
            {
                "fields": ("balance_cents", "held_cents"),
            },
        ),
        (
            "Status",
            {
                "fields": ("allow_negative", "is_active", "is_frozen", "frozen_reason"),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    @admin.display(description="Available")
    def available_display(self, obj: LedgerAccount) -> str:
        return f"{obj.available_cents / 100:.2f} {obj.currency.upper()}"

    @admin.display(description="Held")
    def held_display(self, obj: LedgerAccount) -> str:
        return f"{obj.held_cents / 100:.2f} {obj.currency.upper()}"

    @admin.action(description="Unfreeze selected accounts (rebuild cached balances)")
    def unfreeze_accounts(self, request, queryset):
        """Rebuild the cache from entries and lift the freeze."""
        count = 0
        for account_id in queryset.filter(is_frozen=True).values_list("id", flat=True):
            LedgerService.unfreeze_account(account_id, operator=str(request.user.pk))
            count += 1
        self.message_user(request, f"Unfrozen {count} accounts.")

    def has_delete_permission(self, request, obj=None) -> bool:
        """Accounts are deactivated, never deleted."""
        return False


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    """
    Admin configuration for LedgerEntry.

    Ledger entries are immutable - they cannot be added, edited or
    deleted through the admin interface.
    """

    list_display = [
        "id",
        "created_at",
        "posting_id",
        "account",
        "bucket",
        "direction",
        "amount_display",
        "reference_kind",
        "created_by",
    ]
    list_filter = ["reference_kind", "direction", "bucket", "created_at"]
    search_fields = [
        "id",
        "posting_id",
        "idempotency_key",
        "reference_id",
        "description",
        "created_by",
    ]
    readonly_fields = [
        "id",
        "posting_id",
        "created_at",
        "account",
        "bucket",
        "direction",
        "amount_cents",
        "currency",
        "reference_kind",
        "reference_id",
        "idempotency_key",
        "balance_after_cents",
        "held_after_cents",
        "description",
        "metadata",
        "created_by",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    @admin.display(description="Amount")
    def amount_display(self, obj: LedgerEntry) -> str:
        return f"{obj.amount_cents / 100:.2f} {obj.currency.upper()}"

    def has_delete_permission(self, request, obj=None) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_add_permission(self, request) -> bool:
        """Entries are only created through LedgerService.post."""
        return False
