"""Approval engine exceptions.

Every failure of an engine call is raised synchronously as one of the
classes below. Callers catch ``ApprovalError`` to handle them uniformly;
only ``ConcurrentModificationError`` is safe to retry without user input.
"""

from typing import Any


class ApprovalError(Exception):
    """Base class for all approval engine errors."""

    code: str = "approval_error"
    retryable: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize approval error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize error for API responses."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
        }


class NotFoundError(ApprovalError):
    """Raised when a request id does not resolve to a stored request."""

    code = "not_found"

    def __init__(self, request_id: str) -> None:
        super().__init__(
            f"Approval request {request_id} not found",
            details={"request_id": request_id},
        )


class InvalidStateError(ApprovalError):
    """Raised when an operation is not valid for the request's current status."""

    code = "invalid_state"

    def __init__(self, request_id: str, current_status: str, operation: str) -> None:
        """Initialize invalid state error.

        Args:
            request_id: ID of the request.
            current_status: Status the request is in.
            operation: Operation that was attempted.
        """
        super().__init__(
            f"Cannot {operation} approval request {request_id} "
            f"in status '{current_status}'",
            details={
                "request_id": request_id,
                "current_status": current_status,
                "operation": operation,
            },
        )


class NotAuthorizedApproverError(ApprovalError):
    """Raised when the caller is not a pending approver at the current level."""

    code = "not_authorized_approver"

    def __init__(self, request_id: str, user_id: str, current_level: int) -> None:
        super().__init__(
            f"User {user_id} is not a pending approver of request {request_id} "
            f"at level {current_level}",
            details={
                "request_id": request_id,
                "user_id": user_id,
                "current_level": current_level,
            },
        )


class ValidationError(ApprovalError):
    """Raised when a required field is missing or malformed."""

    code = "validation_error"

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message, details={"field": field})
        self.field = field


class ConcurrentModificationError(ApprovalError):
    """Raised when conditional writes kept losing races and retries ran out."""

    code = "concurrent_modification"
    retryable = True

    def __init__(self, request_id: str, attempts: int) -> None:
        super().__init__(
            f"Approval request {request_id} was modified concurrently; "
            f"gave up after {attempts} attempts",
            details={"request_id": request_id, "attempts": attempts},
        )
