"""
Project workflow exceptions.

Exception Hierarchy:
    ProjectNotFound - Project or deliverable lookup failures (NotFoundError)
    ProjectValidationError - Bad event payload (ValidationError)
    InvalidTransition - Event not legal from the current status (ConflictError)
    NotReviewable - QC action outside a review status (ConflictError)

Authorization failures raise payments.exceptions.Unauthorized so that
role checks and cross-account checks share one error code.

Usage:
    from projects.exceptions import InvalidTransition

    raise InvalidTransition(
        "Event 'approve' is not allowed from 'in_progress'",
        details={"status": "in_progress", "event": "approve"},
    )
"""

from __future__ import annotations

from core.exceptions import ConflictError, NotFoundError, ValidationError


class ProjectNotFound(NotFoundError):
    default_error_code: str = "PROJECT_NOT_FOUND"


class ProjectValidationError(ValidationError):
    """
    Raised when an event payload is missing or out of range.

    Example:
        raise ProjectValidationError(
            "fulfiller_payout_cents cannot exceed quoted_price_cents",
            details={"quoted_price_cents": 50000, "fulfiller_payout_cents": 60000},
        )
    """

    default_error_code: str = "PROJECT_VALIDATION_ERROR"


class InvalidTransition(ConflictError):
    """
    Raised when an event is not legal from the project's current status.

    The project is left unchanged. Callers losing a race receive this
    against the now-current status and can re-read the project.
    """

    default_error_code: str = "INVALID_TRANSITION"


class NotReviewable(ConflictError):
    """
    Raised when a QC decision is made outside a review status.

    Deliverables can only be QC'd while the project is in for_review
    (supervisor) or client_review (client).
    """

    default_error_code: str = "NOT_REVIEWABLE"


__all__ = [
    "InvalidTransition",
    "NotReviewable",
    "ProjectNotFound",
    "ProjectValidationError",
]
