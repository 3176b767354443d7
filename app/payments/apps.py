"""
Payments app configuration.

This app provides the money side of the marketplace:
- Double-entry ledger with available/held buckets
- Escrow engine for project payments, releases and refunds
- Wallet top-ups and withdrawal processing
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
