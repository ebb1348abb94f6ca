"""Custom application exceptions."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class ValidationError(AppException):
    """Validation error exception."""

    def __init__(
        self,
        detail: str = "Validation failed",
        errors: list[dict[str, Any]] | None = None,
        status_code: int = status.HTTP_400_BAD_REQUEST,
    ) -> None:
        self.errors = errors
        super().__init__(status_code=status_code, detail=detail)


class NotFoundError(AppException):
    """Resource not found exception."""

    def __init__(self, resource: str = "Resource", identifier: str | int | None = None) -> None:
        detail = f"{resource} not found."
        if identifier is not None:
            detail = f"{resource} with ID '{identifier}' not found."
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AuthenticationError(AppException):
    """Authentication failed exception."""

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(AppException):
    """Authorization denied exception."""

    def __init__(self, detail: str = "You don't have permission to access this resource") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ConflictError(AppException):
    """The request conflicts with the current state of a resource."""

    def __init__(self, detail: str = "The request conflicts with existing data") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class DatesNotAvailable(ConflictError):
    """Requested dates overlap an existing booking."""

    def __init__(
        self,
        detail: str = "The selected dates are not available or overlap with an existing booking.",
    ) -> None:
        super().__init__(detail=detail)


class AlreadyDecided(AppException):
    """Booking has already left the pending state."""

    def __init__(self, current_status: str) -> None:
        self.current_status = current_status
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Booking is already {current_status}.",
        )


class RateLimitExceeded(AppException):
    """Rate limit exceeded exception."""

    def __init__(self, detail: str = "Too many requests. Please try again later.") -> None:
        super().__init__(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=detail)
