"""Pessimistic entry mutations with per-field-group ordering.

Every write goes to the server first; the query cache is only invalidated
after the server confirms. Writes to one entry are split into field groups
(title, content, favorite, folder, tags). Each (entry, group) pair is a lane:

- requests in a lane are sent one at a time, in issue order;
- a replacing write that is superseded while queued is never sent;
- a response to a superseded replacing write is discarded;
- a confirmed response merges only its own group's fields into the
  confirmed snapshot, so a late content save cannot undo a favorite toggle.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from journal_client.cache import EntryStateStore, QueryCache, keys
from journal_client.core.exceptions import FolderNotFoundError, NotFoundError, ValidationError
from journal_client.core.models import CreatedEntry
from journal_client.core.schemas import EntryForm, validate
from journal_client.core.text import count_words, escape_newlines, unescape_newlines
from journal_client.core.types import Id
from journal_client.api import JournalApiClient

logger = logging.getLogger(__name__)


class FieldGroup(str, Enum):
    TITLE = "title"
    CONTENT = "content"
    FAVORITE = "favorite"
    FOLDER = "folder"
    TAGS = "tags"


_GROUP_FIELDS: Dict[FieldGroup, Tuple[str, ...]] = {
    FieldGroup.TITLE: ("title",),
    FieldGroup.CONTENT: ("content", "word_count"),
    FieldGroup.FAVORITE: ("is_favorite",),
    FieldGroup.FOLDER: ("folder_id",),
    FieldGroup.TAGS: ("tags",),
}

_FIELD_GROUP = {name: group for group, names in _GROUP_FIELDS.items() for name in names}

_WIRE_NAMES = {
    "title": "title",
    "content": "content",
    "word_count": "wordCount",
    "is_favorite": "isFavorite",
    "tags": "tags",
}


@dataclass(frozen=True)
class UpdateOutcome:
    """Result of :meth:`EntryMutationCoordinator.update`.

    ``applied`` is False when at least one group's write was superseded by a
    newer write; the newer write carries the latest value.
    """

    entry_id: Id
    applied: bool
    confirmed: Dict[str, Any] = field(default_factory=dict)
    superseded: Tuple[FieldGroup, ...] = ()


@dataclass
class _Lane:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    issued: int = 0
    latest_replace: int = 0


@dataclass(frozen=True)
class _GroupResult:
    group: FieldGroup
    applied: bool
    fields: Dict[str, Any]


Sender = Callable[[], Awaitable[Optional[Dict[str, Any]]]]
Confirmer = Callable[[Optional[Dict[str, Any]]], Dict[str, Any]]


class EntryMutationCoordinator:
    def __init__(
        self,
        api: JournalApiClient,
        cache: QueryCache,
        state: EntryStateStore | None = None,
    ) -> None:
        self.api = api
        self.cache = cache
        self.state = state or EntryStateStore()
        self._lanes: Dict[Tuple[Id, FieldGroup], _Lane] = {}

    def confirmed(self, entry_id: Id) -> Optional[Dict[str, Any]]:
        """Copy of the last server-confirmed fields of ``entry_id``."""
        return self.state.get(entry_id)

    # ------------------------------------------------------------------
    # create / delete
    async def create(self, data: Dict[str, Any] | EntryForm) -> CreatedEntry:
        form = data if isinstance(data, EntryForm) else validate(EntryForm, dict(data))
        payload = {
            "title": form.title,
            "content": escape_newlines(form.content),
            "wordCount": count_words(form.content),
            "isFavorite": False,
            "folderId": form.folder_id,
            "tagNames": form.tag_names,
        }
        created = await self.api.create_entry(payload)
        logger.info(
            "Entry created",
            extra={"entry_id": str(created.id), "folder_id": str(form.folder_id or "")},
        )
        self._invalidate(keys.ENTRIES)
        if form.folder_id is not None:
            self._invalidate(keys.folder_entries(form.folder_id))
        if form.tag_names:
            self._invalidate(keys.tag_entries_prefix(), keys.TAGS)
        return created

    async def delete(self, entry_id: Id) -> None:
        snapshot = self.state.get(entry_id) or {}
        try:
            await self.api.delete_entry(entry_id)
        except NotFoundError:
            logger.info("Entry already gone on delete", extra={"entry_id": str(entry_id)})
        else:
            logger.info("Entry deleted", extra={"entry_id": str(entry_id)})
        self.state.forget(entry_id)
        for group in FieldGroup:
            self._lanes.pop((entry_id, group), None)
        self._invalidate(
            keys.ENTRIES,
            keys.TAGS,
            keys.media(entry_id),
            *self._entry_views(entry_id, snapshot),
        )

    # ------------------------------------------------------------------
    # field updates
    async def update(self, entry_id: Id, fields: Dict[str, Any]) -> UpdateOutcome:
        """Write a partial update, one request per touched field group."""
        groups = self._split(fields)
        tasks: List[Awaitable[_GroupResult]] = []
        for group, values in groups.items():
            if group is FieldGroup.FOLDER:
                tasks.append(self._move(entry_id, values["folder_id"]))
            else:
                tasks.append(self._replace(entry_id, group, values))

        results = await asyncio.gather(*tasks, return_exceptions=True)
        errors = [result for result in results if isinstance(result, BaseException)]
        if errors:
            raise errors[0]

        confirmed: Dict[str, Any] = {}
        superseded: List[FieldGroup] = []
        for result in results:
            confirmed.update(result.fields)
            if not result.applied:
                superseded.append(result.group)
        return UpdateOutcome(
            entry_id=entry_id,
            applied=not superseded,
            confirmed=confirmed,
            superseded=tuple(superseded),
        )

    @staticmethod
    def _split(fields: Dict[str, Any]) -> Dict[FieldGroup, Dict[str, Any]]:
        unknown = sorted(set(fields) - set(_FIELD_GROUP))
        if unknown:
            raise ValidationError(
                f"Unknown entry fields: {', '.join(unknown)}",
                {name: "Unknown field" for name in unknown},
            )
        if not fields:
            raise ValidationError("Nothing to update")
        if "word_count" in fields and "content" not in fields:
            raise ValidationError(
                "Word count is derived from content",
                {"word_count": "Word count cannot be set without content"},
            )

        values = dict(fields)
        if "content" in values:
            content = values["content"]
            if not isinstance(content, str):
                raise ValidationError("Content must be text", {"content": "Content must be text"})
            values["word_count"] = count_words(unescape_newlines(content))
        if "tags" in values:
            tags = values["tags"]
            if not isinstance(tags, (list, tuple)) or any(
                not isinstance(tag, str) or not tag for tag in tags
            ):
                raise ValidationError(
                    "Tags must be a list of names", {"tags": "Tags must be a list of non-empty names"}
                )
            values["tags"] = list(dict.fromkeys(tags))
        if "folder_id" in values and values["folder_id"] is not None:
            values["folder_id"] = Id.parse(values["folder_id"])

        groups: Dict[FieldGroup, Dict[str, Any]] = {}
        for name, value in values.items():
            groups.setdefault(_FIELD_GROUP[name], {})[name] = value
        return groups

    async def _replace(
        self, entry_id: Id, group: FieldGroup, values: Dict[str, Any]
    ) -> _GroupResult:
        body = {_WIRE_NAMES[name]: value for name, value in values.items()}

        def _confirm(response: Optional[Dict[str, Any]]) -> Dict[str, Any]:
            # Echoed values win over sent ones, but only for this group's fields
            confirmed = dict(values)
            if response:
                for name in _GROUP_FIELDS[group]:
                    if _WIRE_NAMES[name] in response:
                        confirmed[name] = response[_WIRE_NAMES[name]]
            return confirmed

        result = await self._run(
            entry_id,
            group,
            lambda: self.api.update_entry(entry_id, body),
            _confirm,
            replace=True,
        )
        if result.applied:
            views = [keys.ENTRIES, *self._entry_views(entry_id)]
            if group is FieldGroup.TAGS:
                views.append(keys.TAGS)
            self._invalidate(*views)
        return result

    # ------------------------------------------------------------------
    # tags
    async def add_tags(self, entry_id: Id, names: Iterable[str]) -> None:
        tag_names = self._tag_names(names)

        async def _send() -> None:
            await self.api.add_tags(entry_id, tag_names)

        def _confirm(_: Any) -> Dict[str, Any]:
            current = self._known_tags(entry_id)
            if current is None:
                return {}
            return {"tags": list(dict.fromkeys(current + tag_names))}

        await self._run(entry_id, FieldGroup.TAGS, _send, _confirm, replace=False)
        logger.info("Tags added", extra={"entry_id": str(entry_id), "tags": tag_names})
        self._invalidate(keys.ENTRIES, keys.TAGS, *self._entry_views(entry_id))

    async def remove_tag(self, entry_id: Id, name: str) -> None:
        (tag_name,) = self._tag_names([name])

        async def _send() -> None:
            await self.api.remove_tag(entry_id, tag_name)

        def _confirm(_: Any) -> Dict[str, Any]:
            current = self._known_tags(entry_id)
            if current is None:
                return {}
            return {"tags": [tag for tag in current if tag != tag_name]}

        await self._run(entry_id, FieldGroup.TAGS, _send, _confirm, replace=False)
        logger.info("Tag removed", extra={"entry_id": str(entry_id), "tag": tag_name})
        self._invalidate(keys.ENTRIES, keys.TAGS, *self._entry_views(entry_id))

    @staticmethod
    def _tag_names(names: Iterable[str]) -> List[str]:
        if isinstance(names, str):
            names = [names]
        tag_names = list(dict.fromkeys(names))
        if not tag_names or any(not isinstance(tag, str) or not tag for tag in tag_names):
            raise ValidationError("Tag names must be non-empty text", {"tags": "Tag name is required"})
        return tag_names

    def _known_tags(self, entry_id: Id) -> Optional[List[str]]:
        snapshot = self.state.get(entry_id)
        if snapshot is None or "tags" not in snapshot:
            return None
        return list(snapshot["tags"])

    # ------------------------------------------------------------------
    # folders
    async def move_to_folder(self, entry_id: Id, folder_id: Optional[Id]) -> UpdateOutcome:
        """File ``entry_id`` under ``folder_id``, or unfile it for ``None``."""
        if folder_id is not None:
            folder_id = Id.parse(folder_id)
        result = await self._move(entry_id, folder_id)
        return UpdateOutcome(
            entry_id=entry_id,
            applied=result.applied,
            confirmed=result.fields,
            superseded=() if result.applied else (FieldGroup.FOLDER,),
        )

    async def _move(self, entry_id: Id, folder_id: Optional[Id]) -> _GroupResult:
        previous = (self.state.get(entry_id) or {}).get("folder_id", ...)

        async def _send() -> None:
            if folder_id is None:
                await self.api.remove_from_folder(entry_id)
                return
            try:
                await self.api.add_to_folder(entry_id, folder_id)
            except FolderNotFoundError:
                raise
            except NotFoundError as exc:
                raise FolderNotFoundError(exc.status_code, exc.detail) from exc

        result = await self._run(
            entry_id,
            FieldGroup.FOLDER,
            _send,
            lambda _: {"folder_id": folder_id},
            replace=True,
        )
        if result.applied:
            views = list(self._entry_views(entry_id))
            if previous is ...:
                # Old folder unknown: every folder collection may hold the entry
                views.append(keys.ENTRIES + ("folder",))
            elif previous is not None:
                views.append(keys.folder_entries(previous))
            if folder_id is not None:
                views.append(keys.folder_entries(folder_id))
            logger.info(
                "Entry moved",
                extra={"entry_id": str(entry_id), "folder_id": str(folder_id or "")},
            )
            self._invalidate(*views)
        return result

    # ------------------------------------------------------------------
    # lanes
    async def _run(
        self,
        entry_id: Id,
        group: FieldGroup,
        send: Sender,
        confirm: Confirmer,
        *,
        replace: bool,
    ) -> _GroupResult:
        key = (entry_id, group)
        lane = self._lanes.setdefault(key, _Lane())
        lane.issued += 1
        seq = lane.issued
        if replace:
            lane.latest_replace = seq

        try:
            async with lane.lock:
                if replace and seq != lane.latest_replace:
                    logger.debug(
                        "Coalesced superseded write",
                        extra={"entry_id": str(entry_id), "group": group.value},
                    )
                    return _GroupResult(group, False, {})
                response = await send()
        finally:
            # Last request issued on this lane: nothing else waits on it
            if lane.issued == seq and self._lanes.get(key) is lane:
                del self._lanes[key]

        if replace and seq != lane.latest_replace:
            logger.debug(
                "Discarded response of superseded write",
                extra={"entry_id": str(entry_id), "group": group.value},
            )
            return _GroupResult(group, False, {})

        fields = confirm(response)
        if fields:
            self.state.merge(entry_id, fields)
        return _GroupResult(group, True, fields)

    # ------------------------------------------------------------------
    # cache
    def _entry_views(
        self, entry_id: Id, snapshot: Optional[Dict[str, Any]] = None
    ) -> List[Tuple[Any, ...]]:
        if snapshot is None:
            snapshot = self.state.get(entry_id) or {}
        public_id = snapshot.get("public_id")
        by_public_id = (
            keys.entry_by_public_id(public_id) if public_id else keys.ENTRY_BY_PUBLIC_ID
        )
        return [keys.entry(entry_id), by_public_id]

    def _invalidate(self, *prefixes: Tuple[Any, ...]) -> None:
        for prefix in dict.fromkeys(prefixes):
            self.cache.invalidate(prefix)


__all__ = ["EntryMutationCoordinator", "FieldGroup", "UpdateOutcome"]
