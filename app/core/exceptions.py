"""
Base exception classes for application-wide error handling.

Every domain error raised by the service layer (workflow, ledger, escrow,
withdrawals) derives from BaseApplicationError so the API layer can turn
it into a uniform JSON body without knowing the concrete class.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input or business-rule validation failures
    ├── NotFoundError - Resource not found
    ├── PermissionDeniedError - Actor may not perform the operation
    ├── ConflictError - Operation conflicts with current state
    └── ServiceUnavailableError - Transient contention, safe to retry

Usage:
    from core.exceptions import ConflictError, NotFoundError

    raise NotFoundError(
        f"Project {project_id} not found",
        error_code="PROJECT_NOT_FOUND",
        details={"project_id": str(project_id)},
    )

    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.http_status)

Note:
    These exceptions are for domain/business logic errors.
    DRF handles API-layer exceptions (serialization, authentication, etc.).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, amounts, states)
        http_status: Status code the API layer should respond with
        is_retryable: Whether the caller can retry the same request unchanged

    Example:
        try:
            project = ProjectService.get(project_id)
        except NotFoundError as e:
            logger.warning("Project lookup failed", extra={"code": e.error_code})
            return Response(e.to_dict(), status=e.http_status)
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = 400
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            error_code: Machine-readable error code (defaults to class default)
            details: Additional error context
        """
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Returns:
            Dict with error, error_code, and (when present) details keys

        Example:
            {
                "error": "Project abc not found",
                "error_code": "PROJECT_NOT_FOUND",
                "details": {"project_id": "abc"}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails in the service layer.

    Use for:
    - Non-positive or out-of-range amounts
    - Missing payload keys required by a workflow event
    - Business rule violations (payout above quoted price, etc.)

    Example:
        raise ValidationError(
            "fulfiller_payout_cents cannot exceed quoted_price_cents",
            error_code="PAYOUT_EXCEEDS_PRICE",
            details={"quoted_price_cents": 50000, "fulfiller_payout_cents": 60000},
        )

    Note:
        For DRF serializer validation, use DRF's built-in validation.
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Example:
        project = Project.objects.filter(id=project_id).first()
        if not project:
            raise NotFoundError(
                f"Project {project_id} not found",
                error_code="PROJECT_NOT_FOUND",
                details={"project_id": str(project_id)},
            )
    """

    default_error_code: str = "NOT_FOUND"
    http_status: int = 404


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when an actor lacks permission for an operation.

    Use for:
    - Role checks on workflow events (only the supervisor approves)
    - Ownership checks on accounts (only the owner withdraws)

    Note:
        For authentication failures (missing/invalid token), DRF raises
        NotAuthenticated. Use this for authorization failures.
    """

    default_error_code: str = "PERMISSION_DENIED"
    http_status: int = 403


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Use for:
    - Invalid state transitions
    - Reused idempotency keys where reuse is not a no-op
    - Concurrent modification conflicts

    Note:
        HTTP 409 Conflict is the appropriate status for these errors.
    """

    default_error_code: str = "CONFLICT"
    http_status: int = 409


class ServiceUnavailableError(BaseApplicationError):
    """
    Raised when an operation could not run because a shared resource is busy.

    The request had no effect; the caller may retry it unchanged.

    Example:
        raise ServiceUnavailableError(
            "Project is being modified by another request",
            details={"retry_after": 1},
        )
    """

    default_error_code: str = "SERVICE_UNAVAILABLE"
    http_status: int = 503
    is_retryable: bool = True
