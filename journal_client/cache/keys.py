"""Query keys shared by readers and the mutation coordinators.

Keys are tuples so one invalidation prefix can cover a family of views:
``ENTRIES`` covers the global list, folder lists, tag filters and searches.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable

from journal_client.core.types import Id

from .query_cache import QueryKey

ENTRIES: QueryKey = ("entries",)
ENTRY: QueryKey = ("entry",)
ENTRY_BY_PUBLIC_ID: QueryKey = ("entry-uuid",)
FOLDERS: QueryKey = ("folders",)
FOLDER: QueryKey = ("folder",)
TAGS: QueryKey = ("tags",)
USER: QueryKey = ("user",)
MEDIA: QueryKey = ("media",)
SHARED_ENTRY: QueryKey = ("shared-entry",)
AI_PROMPT: QueryKey = ("ai-prompt",)


def entries_page(page: int, size: int) -> QueryKey:
    return ENTRIES + ("page", page, size)


def folder_entries(folder_id: Id) -> QueryKey:
    return ENTRIES + ("folder", folder_id)


def tag_entries(tags: Iterable[str]) -> QueryKey:
    return ENTRIES + ("tags", tuple(sorted(set(tags))))


def tag_entries_prefix() -> QueryKey:
    return ENTRIES + ("tags",)


def entries_on(day: date) -> QueryKey:
    return ENTRIES + ("date", day.isoformat())


def entries_between(start: datetime, end: datetime) -> QueryKey:
    return ENTRIES + ("range", start.isoformat(), end.isoformat())


def entry_search(query: str) -> QueryKey:
    return ENTRIES + ("search", query)


def entry(entry_id: Id) -> QueryKey:
    return ENTRY + (entry_id,)


def entry_by_public_id(public_id: str) -> QueryKey:
    return ENTRY_BY_PUBLIC_ID + (public_id,)


def folder(folder_id: Id) -> QueryKey:
    return FOLDER + (folder_id,)


def media(entry_id: Id) -> QueryKey:
    return MEDIA + (entry_id,)


def shared_entry(shared_id: str) -> QueryKey:
    return SHARED_ENTRY + (shared_id,)
