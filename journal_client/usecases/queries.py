from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, List

from journal_client.api import JournalApiClient
from journal_client.cache import EntryStateStore, QueryCache, keys
from journal_client.core.models import Entry, Folder, Media, User
from journal_client.core.types import Id


class JournalQueries:
    """Cached server reads.

    Every entry read also refreshes the confirmed-state snapshot that the
    mutation coordinators merge into.
    """

    def __init__(
        self,
        api: JournalApiClient,
        cache: QueryCache,
        state: EntryStateStore | None = None,
    ) -> None:
        self.api = api
        self.cache = cache
        self.state = state or EntryStateStore()

    def _observe(self, entries: List[Entry], since: int) -> List[Entry]:
        for entry in entries:
            self.state.observe(entry, since)
        return entries

    async def entries(self, page: int = 0, size: int = 10) -> List[Entry]:
        async def _load() -> List[Entry]:
            since = self.state.mark()
            return self._observe(await self.api.list_entries(page, size), since)

        return await self.cache.fetch(keys.entries_page(page, size), _load)

    async def entry(self, entry_id: Id) -> Entry:
        async def _load() -> Entry:
            since = self.state.mark()
            entry = await self.api.get_entry(entry_id)
            self.state.observe(entry, since)
            return entry

        return await self.cache.fetch(keys.entry(entry_id), _load)

    async def entry_by_public_id(self, public_id: str) -> Entry:
        async def _load() -> Entry:
            since = self.state.mark()
            entry = await self.api.get_entry_by_public_id(public_id)
            self.state.observe(entry, since)
            return entry

        return await self.cache.fetch(keys.entry_by_public_id(public_id), _load)

    async def folder_entries(self, folder_id: Id) -> List[Entry]:
        async def _load() -> List[Entry]:
            since = self.state.mark()
            return self._observe(await self.api.get_folder_entries(folder_id), since)

        return await self.cache.fetch(keys.folder_entries(folder_id), _load)

    async def entries_with_tags(self, tag_names: Iterable[str]) -> List[Entry]:
        names = sorted(set(tag_names))

        async def _load() -> List[Entry]:
            since = self.state.mark()
            return self._observe(await self.api.get_entries_by_tags(names), since)

        return await self.cache.fetch(keys.tag_entries(names), _load)

    async def entries_on(self, day: date) -> List[Entry]:
        async def _load() -> List[Entry]:
            since = self.state.mark()
            return self._observe(await self.api.get_entries_by_date(day), since)

        return await self.cache.fetch(keys.entries_on(day), _load)

    async def entries_between(self, start: datetime, end: datetime) -> List[Entry]:
        async def _load() -> List[Entry]:
            since = self.state.mark()
            return self._observe(await self.api.get_entries_by_time_range(start, end), since)

        return await self.cache.fetch(keys.entries_between(start, end), _load)

    async def search(self, query: str) -> List[Entry]:
        async def _load() -> List[Entry]:
            since = self.state.mark()
            return self._observe(await self.api.search_entries(query), since)

        return await self.cache.fetch(keys.entry_search(query), _load)

    async def folders(self) -> List[Folder]:
        return await self.cache.fetch(keys.FOLDERS, self.api.list_folders)

    async def folder(self, folder_id: Id) -> Folder:
        return await self.cache.fetch(
            keys.folder(folder_id), lambda: self.api.get_folder(folder_id)
        )

    async def tags(self) -> List[str]:
        return await self.cache.fetch(keys.TAGS, self.api.list_tags)

    async def media(self, entry_id: Id) -> List[Media]:
        return await self.cache.fetch(keys.media(entry_id), lambda: self.api.list_media(entry_id))

    async def user(self) -> User:
        return await self.cache.fetch(keys.USER, self.api.get_user)


__all__ = ["JournalQueries"]
