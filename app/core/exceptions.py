"""
Exception classes for the application.
Every business failure maps to a 4xx response with a human-readable detail.
"""

from fastapi import HTTPException, status


class ValidationError(HTTPException):
    """Raised when input validation fails (missing return date, empty cart, ...)."""

    def __init__(self, message: str):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=message
        )


class NotFoundError(HTTPException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND, detail=f"{resource_type} not found"
        )


class ConflictError(HTTPException):
    """Raised when there's a conflict with existing data."""

    def __init__(self, message: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=message)


class InsufficientStockError(ConflictError):
    """Raised when an equipment item cannot cover a reservation."""

    def __init__(self, equipment_name: str, available: int, requested: int):
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for '{equipment_name}'. "
            f"Available: {available}, Requested: {requested}"
        )


class InvalidTransitionError(ConflictError):
    """Raised when an action is attempted from a status that does not permit it."""


class ExternalServiceError(HTTPException):
    """Raised when external service calls fail."""

    def __init__(self, service_name: str, message: str):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"{service_name} service error: {message}",
        )


class UnauthorizedError(HTTPException):
    """Raised when a request carries no valid credentials."""

    def __init__(self, message: str):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)


class ForbiddenError(HTTPException):
    """Raised when the acting user does not own the resource."""

    def __init__(self, message: str):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=message)
