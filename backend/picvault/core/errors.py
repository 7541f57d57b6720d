"""Application error taxonomy.

Every error carries the HTTP status it maps to. The handlers in main.py turn
them into ``{"message": ...}`` bodies.
"""
from fastapi import status


class AppError(Exception):
    """Base exception for errors surfaced to API clients."""
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "An unknown error occurred!"
    headers: dict[str, str] | None = None

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    """Raised when request input is malformed."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Please cross-check your inputs..."


class AuthenticationError(AppError):
    """Raised on bad credentials, tokens or human verification."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication failed!"
    headers = {"WWW-Authenticate": "Bearer"}


class ConflictError(AppError):
    """Raised when a unique resource already exists."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "User already exists..."


class NotFoundError(AppError):
    """Raised for a missing user, library, subscription or entitlement."""
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found."


class UpstreamError(AppError):
    """Raised when an external service (Stripe, R2, reCAPTCHA) fails."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "An external service failed, try again later."


class InternalError(AppError):
    """Raised for unexpected internal failures."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
