"""
URL configuration for the Django application.

The `urlpatterns` list routes URLs to views. This is the root URL configuration
that includes all app-specific routes.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/projects/              - Project endpoints
        {id}/                      - Project detail
        {id}/transitions/          - Fire a workflow event
        {id}/history/              - Status history
        {id}/deliverables/         - List/submit deliverables
        deliverables/{id}/qc/      - Record a QC decision
    /api/v1/payments/              - Payment endpoints
        projects/{id}/confirm-payment/  - Confirm a project payment
        wallets/                   - My wallet balances
        wallets/{id}/top-up/       - Top up a client wallet
        accounts/{id}/balance/     - Account balance
        accounts/{id}/entries/     - Account statement
        withdrawals/               - List/request withdrawals
        withdrawals/{id}/resolve/  - Settle a withdrawal (staff)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # Projects
    path("projects/", include("projects.urls")),
    # Payments
    path("payments/", include("payments.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "AssignX Admin"
admin.site.site_title = "AssignX Admin Portal"
admin.site.index_title = "Projects, ledger and withdrawals"
