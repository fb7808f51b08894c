"""Core library exposing domain models, settings, exceptions and types."""

from .settings import Settings, get_settings
from .exceptions import (
    ApiError,
    AuthenticationError,
    DomainError,
    Error,
    FolderNotFoundError,
    IdentifierError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from .types import Id, Result
from .models import CreatedEntry, Entry, Folder, Media, MediaType, SharedEntry, User

__all__ = [
    "Settings",
    "get_settings",
    "ApiError",
    "AuthenticationError",
    "DomainError",
    "Error",
    "FolderNotFoundError",
    "IdentifierError",
    "NotFoundError",
    "TransportError",
    "ValidationError",
    "Id",
    "Result",
    "CreatedEntry",
    "Entry",
    "Folder",
    "Media",
    "MediaType",
    "SharedEntry",
    "User",
]
