"""
State and choice enums for the projects app.

Project States:
    submitted → analyzing → quoted → accepted → payment_pending → paid
    → ready_to_assign → assigned → in_progress → delivered → for_review
    → approved | revision_requested → in_revision → delivered → ...
    approved → delivered_to_client → client_review → client_revision
    → in_revision → ...
    delivered_to_client | client_review → completed*

    any non-terminal → cancelled*
    paid .. for_review, revision states → refunded*

The legal edges live in projects.workflow.TRANSITIONS; this module only
names the states.
"""

from django.db import models


class ProjectStatus(models.TextChoices):
    """States of the project lifecycle. Terminal: COMPLETED, CANCELLED, REFUNDED."""

    SUBMITTED = "submitted", "Submitted"
    ANALYZING = "analyzing", "Analyzing"
    QUOTED = "quoted", "Quoted"
    ACCEPTED = "accepted", "Accepted"
    PAYMENT_PENDING = "payment_pending", "Payment Pending"
    PAID = "paid", "Paid"
    READY_TO_ASSIGN = "ready_to_assign", "Ready to Assign"
    ASSIGNED = "assigned", "Assigned"
    IN_PROGRESS = "in_progress", "In Progress"
    DELIVERED = "delivered", "Delivered"
    FOR_REVIEW = "for_review", "For Review"
    APPROVED = "approved", "Approved"
    REVISION_REQUESTED = "revision_requested", "Revision Requested"
    IN_REVISION = "in_revision", "In Revision"
    DELIVERED_TO_CLIENT = "delivered_to_client", "Delivered to Client"
    CLIENT_REVIEW = "client_review", "Client Review"
    CLIENT_REVISION = "client_revision", "Client Revision"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"
    REFUNDED = "refunded", "Refunded"


TERMINAL_STATUSES = frozenset(
    {ProjectStatus.COMPLETED, ProjectStatus.CANCELLED, ProjectStatus.REFUNDED}
)

# Before payment the client may still walk away on their own
PRE_PAYMENT_STATUSES = frozenset(
    {
        ProjectStatus.SUBMITTED,
        ProjectStatus.ANALYZING,
        ProjectStatus.QUOTED,
        ProjectStatus.ACCEPTED,
        ProjectStatus.PAYMENT_PENDING,
    }
)

# Funds are in escrow and not yet released
REFUNDABLE_STATUSES = frozenset(
    {
        ProjectStatus.PAID,
        ProjectStatus.READY_TO_ASSIGN,
        ProjectStatus.ASSIGNED,
        ProjectStatus.IN_PROGRESS,
        ProjectStatus.DELIVERED,
        ProjectStatus.FOR_REVIEW,
        ProjectStatus.REVISION_REQUESTED,
        ProjectStatus.IN_REVISION,
    }
)

# Fulfiller may upload a new deliverable version
WORKING_STATUSES = frozenset({ProjectStatus.IN_PROGRESS, ProjectStatus.IN_REVISION})


class ServiceType(models.TextChoices):
    NEW_PROJECT = "new_project", "New Project"
    PROOFREADING = "proofreading", "Proofreading"
    PLAGIARISM_CHECK = "plagiarism_check", "Plagiarism Check"
    AI_DETECTION = "ai_detection", "AI Detection"
    EXPERT_OPINION = "expert_opinion", "Expert Opinion"


class QCStatus(models.TextChoices):
    """Quality-check outcome of one deliverable version."""

    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class ActorRole(models.TextChoices):
    """Role an actor holds on a project, derived from the project's ids."""

    CLIENT = "client", "Client"
    SUPERVISOR = "supervisor", "Supervisor"
    FULFILLER = "fulfiller", "Fulfiller"


__all__ = [
    "ActorRole",
    "PRE_PAYMENT_STATUSES",
    "ProjectStatus",
    "QCStatus",
    "REFUNDABLE_STATUSES",
    "ServiceType",
    "TERMINAL_STATUSES",
    "WORKING_STATUSES",
]
