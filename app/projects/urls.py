"""
URL configuration for projects API.

URL Structure:
    /                                GET, POST
    /{id}/                           GET
    /{id}/transitions/               POST
    /{id}/history/                   GET
    /{id}/deliverables/              GET, POST
    /deliverables/{id}/qc/           POST

All URLs are prefixed with /api/v1/projects/ in the main URL configuration.
"""

from django.urls import path

from projects.views import (
    DeliverableListCreateView,
    DeliverableQCView,
    ProjectDetailView,
    ProjectHistoryView,
    ProjectListCreateView,
    ProjectTransitionView,
)

app_name = "projects"

urlpatterns = [
    path("", ProjectListCreateView.as_view(), name="project-list"),
    path(
        "deliverables/<uuid:deliverable_id>/qc/",
        DeliverableQCView.as_view(),
        name="deliverable-qc",
    ),
    path("<uuid:project_id>/", ProjectDetailView.as_view(), name="project-detail"),
    path(
        "<uuid:project_id>/transitions/",
        ProjectTransitionView.as_view(),
        name="project-transition",
    ),
    path(
        "<uuid:project_id>/history/",
        ProjectHistoryView.as_view(),
        name="project-history",
    ),
    path(
        "<uuid:project_id>/deliverables/",
        DeliverableListCreateView.as_view(),
        name="project-deliverables",
    ),
]
