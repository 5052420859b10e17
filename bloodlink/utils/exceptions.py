"""
Domain errors.

Every error is an ``HTTPException`` so services can raise it directly and
FastAPI maps it to the right status code. The application exception
handlers wrap ``detail`` into the standard error envelope.
"""

from typing import Any, Optional

from fastapi import HTTPException, status


class BloodLinkError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Unexpected error"

    def __init__(self, message: Optional[str] = None, errors: Optional[list[Any]] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(status_code=self.status_code, detail=self.message)


class ValidationError(BloodLinkError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"


class AuthenticationError(BloodLinkError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message)
        self.headers = {"WWW-Authenticate": "Bearer"}


class AuthorizationError(BloodLinkError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized"


class NotFoundError(BloodLinkError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class StateConflictError(BloodLinkError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Operation not allowed in the current state"


class InsufficientInventoryError(BloodLinkError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, available: int, requested: int):
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient inventory. Available: {available}, Requested: {requested}"
        )


class CampClosedError(StateConflictError):
    default_message = "Camp is not active"


class CampExpiredError(StateConflictError):
    default_message = "Camp date has passed"


class AlreadyRegisteredError(StateConflictError):
    default_message = "Already registered for this camp"


class ConcurrentModificationError(BloodLinkError):
    """Another writer changed the rows this operation depended on. Safe to retry."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "The resource was modified concurrently, please retry"
