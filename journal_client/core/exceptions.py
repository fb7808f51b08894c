"""Base exceptions for the journal client."""

from __future__ import annotations

from typing import Dict, Optional


class DomainError(Exception):
    """Base class for all client level exceptions."""


class ValidationError(DomainError):
    """Raised when input fails client-side validation before any request.

    ``field_errors`` maps a field name to the message shown next to it.
    """

    def __init__(self, message: str, field_errors: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message)
        self.field_errors: Dict[str, str] = dict(field_errors or {})


class IdentifierError(DomainError):
    """Raised when a value cannot be used as a 64-bit identifier."""


class TransportError(DomainError):
    """Raised when the remote API cannot be reached."""


class ApiError(DomainError):
    """Raised when the remote API rejects a request."""

    def __init__(self, status_code: int, detail: str = "") -> None:
        super().__init__(f"API request failed with status {status_code}: {detail}".rstrip(": "))
        self.status_code = status_code
        self.detail = detail


class AuthenticationError(ApiError):
    """Raised when the session token is missing, expired or rejected."""


class NotFoundError(ApiError):
    """Raised when a remote entity cannot be located."""


class FolderNotFoundError(NotFoundError):
    """Raised when an entry is moved into a folder that no longer exists."""


# Alias to keep a generic name for error type hints
Error = DomainError

__all__ = [
    "DomainError",
    "ValidationError",
    "IdentifierError",
    "TransportError",
    "ApiError",
    "AuthenticationError",
    "NotFoundError",
    "FolderNotFoundError",
    "Error",
]
