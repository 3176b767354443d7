"""
URL configuration for the payments app.

Routes:
    - POST projects/<id>/confirm-payment/ - Fund escrow for a project
    - GET  wallets/ - Caller's wallets
    - POST wallets/<id>/top-up/ - Top up own wallet
    - GET  accounts/<id>/balance/ - Account balance
    - GET  accounts/<id>/entries/ - Account entries
    - GET/POST withdrawals/ - List / request withdrawals
    - POST withdrawals/<id>/resolve/ - Resolve a withdrawal (staff)

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.

Usage:
    # In config/urls.py
    api_v1_patterns = [
        path("payments/", include("payments.urls")),
    ]
"""

from django.urls import path

from payments.views import (
    AccountBalanceView,
    AccountEntriesView,
    ConfirmPaymentView,
    WalletListView,
    WalletTopUpView,
    WithdrawalListCreateView,
    WithdrawalResolveView,
)

app_name = "payments"

urlpatterns = [
    # Escrow
    path(
        "projects/<uuid:project_id>/confirm-payment/",
        ConfirmPaymentView.as_view(),
        name="confirm-payment",
    ),
    # Wallets and accounts
    path("wallets/", WalletListView.as_view(), name="wallet-list"),
    path(
        "wallets/<uuid:account_id>/top-up/",
        WalletTopUpView.as_view(),
        name="wallet-top-up",
    ),
    path(
        "accounts/<uuid:account_id>/balance/",
        AccountBalanceView.as_view(),
        name="account-balance",
    ),
    path(
        "accounts/<uuid:account_id>/entries/",
        AccountEntriesView.as_view(),
        name="account-entries",
    ),
    # Withdrawals
    path("withdrawals/", WithdrawalListCreateView.as_view(), name="withdrawal-list"),
    path(
        "withdrawals/<uuid:withdrawal_id>/resolve/",
        WithdrawalResolveView.as_view(),
        name="withdrawal-resolve",
    ),
]
