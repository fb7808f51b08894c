"""HTTP access to the remote journal API."""

from .client import JournalApiClient

__all__ = ["JournalApiClient"]
