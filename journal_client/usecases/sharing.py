from __future__ import annotations

import logging
from typing import Iterable, List

from journal_client.api import JournalApiClient
from journal_client.cache import QueryCache, keys
from journal_client.core.exceptions import ValidationError
from journal_client.core.models import SharedEntry
from journal_client.core.types import Id

logger = logging.getLogger(__name__)


def split_emails(emails: str | Iterable[str]) -> List[str]:
    """Accept ``"a@x.com, b@y.com"`` or a list; trim and drop blanks."""
    parts = emails.split(",") if isinstance(emails, str) else list(emails)
    return list(dict.fromkeys(part.strip() for part in parts if part.strip()))


class SharingService:
    def __init__(self, api: JournalApiClient, cache: QueryCache) -> None:
        self.api = api
        self.cache = cache

    async def share(
        self, entry_id: Id, emails: str | Iterable[str] = "", allow_anyone: bool = False
    ) -> str:
        """Create a shared view of ``entry_id`` and return its identifier."""
        allowed = [] if allow_anyone else split_emails(emails)
        if not allow_anyone and not allowed:
            raise ValidationError(
                "Share with at least one email or allow anyone",
                {"emails": "At least one email is required"},
            )
        shared_id = await self.api.create_shared_entry(entry_id, allowed, allow_anyone)
        logger.info(
            "Entry shared",
            extra={"entry_id": str(entry_id), "shared_id": shared_id, "allow_anyone": allow_anyone},
        )
        return shared_id

    async def get(self, shared_id: str) -> SharedEntry:
        return await self.cache.fetch(
            keys.shared_entry(shared_id), lambda: self.api.get_shared_entry(shared_id)
        )

    async def add_user(self, shared_id: str, email: str) -> None:
        await self.api.add_shared_user(shared_id, email.strip())
        self.cache.invalidate(keys.shared_entry(shared_id))

    async def remove_user(self, shared_id: str, email: str) -> None:
        await self.api.remove_shared_user(shared_id, email.strip())
        self.cache.invalidate(keys.shared_entry(shared_id))


__all__ = ["SharingService", "split_emails"]
