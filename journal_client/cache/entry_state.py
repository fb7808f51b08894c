from __future__ import annotations

from typing import Any, Dict, List, Optional

from journal_client.core.models import Entry
from journal_client.core.types import Id


class EntryStateStore:
    """Last server-confirmed field values per entry.

    Filled from server reads (:meth:`observe`) and from confirmed mutation
    responses (:meth:`merge`). Merges are per field, so a response for one
    field group never overwrites fields of another group.

    Every confirmed write ticks a clock. A reader takes :meth:`mark` before
    its request and passes it to :meth:`observe`; entries written after the
    mark keep their newer fields.
    """

    def __init__(self) -> None:
        self._entries: Dict[Id, Dict[str, Any]] = {}
        self._clock = 0
        self._written: Dict[Id, int] = {}

    def mark(self) -> int:
        return self._clock

    def _touch(self, entry_id: Id) -> None:
        self._clock += 1
        self._written[entry_id] = self._clock

    def observe(self, entry: Entry, since: Optional[int] = None) -> bool:
        """Replace the snapshot with a server read; False when the read is older."""
        if since is not None and self._written.get(entry.id, 0) > since:
            return False
        self._entries[entry.id] = entry.model_dump()
        return True

    def get(self, entry_id: Id) -> Optional[Dict[str, Any]]:
        snapshot = self._entries.get(entry_id)
        if snapshot is None:
            return None
        copy = dict(snapshot)
        if "tags" in copy:
            copy["tags"] = list(copy["tags"])
        return copy

    def merge(self, entry_id: Id, fields: Dict[str, Any]) -> None:
        snapshot = self._entries.setdefault(entry_id, {"id": entry_id})
        snapshot.update(fields)
        self._touch(entry_id)

    def forget(self, entry_id: Id) -> None:
        self._entries.pop(entry_id, None)
        self._touch(entry_id)

    def unfile(self, folder_id: Id) -> List[Id]:
        """Reset every entry filed under ``folder_id`` to unfiled."""
        moved: List[Id] = []
        for entry_id, snapshot in self._entries.items():
            if snapshot.get("folder_id") == folder_id:
                snapshot["folder_id"] = None
                moved.append(entry_id)
        for entry_id in moved:
            self._touch(entry_id)
        return moved


__all__ = ["EntryStateStore"]
