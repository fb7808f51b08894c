from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

QueryKey = Tuple[Any, ...]
Loader = Callable[[], Awaitable[Any]]
Subscriber = Callable[[QueryKey, List[QueryKey]], None]

logger = logging.getLogger(__name__)


@dataclass
class _Slot:
    value: Any = None
    has_value: bool = False
    stale: bool = False
    generation: int = 0
    inflight: Optional["asyncio.Future[Any]"] = None


class QueryCache:
    """Client-side cache of server reads keyed by query identity.

    The cache never holds optimistic data: it is filled only by loaders
    that read from the server, and mutations mark entries stale through
    :meth:`invalidate`. A stale entry is reloaded by the next :meth:`fetch`.
    """

    def __init__(self) -> None:
        self._slots: Dict[QueryKey, _Slot] = {}
        self._subscribers: List[Subscriber] = []

    # ------------------------------------------------------------------
    # reads
    async def fetch(self, key: QueryKey, loader: Loader) -> Any:
        """Return the fresh cached value for ``key`` or load it.

        Concurrent fetches of one key share a single loader call. A value
        whose load started before an invalidation of its key is returned
        to the caller but stored as stale.
        """
        slot = self._slots.setdefault(key, _Slot())
        if slot.has_value and not slot.stale and slot.inflight is None:
            return slot.value
        if slot.inflight is not None:
            return await asyncio.shield(slot.inflight)

        generation = slot.generation
        task = asyncio.ensure_future(loader())
        slot.inflight = task
        try:
            value = await asyncio.shield(task)
        finally:
            if slot.inflight is task:
                slot.inflight = None
        slot.value = value
        slot.has_value = True
        slot.stale = slot.generation != generation
        return value

    def peek(self, key: QueryKey) -> Any:
        """Return the cached value for ``key`` (fresh or stale) or ``None``."""
        slot = self._slots.get(key)
        return slot.value if slot is not None and slot.has_value else None

    def is_stale(self, key: QueryKey) -> bool:
        slot = self._slots.get(key)
        return slot is None or not slot.has_value or slot.stale

    def keys(self) -> List[QueryKey]:
        return [key for key, slot in self._slots.items() if slot.has_value]

    # ------------------------------------------------------------------
    # invalidation
    def invalidate(self, prefix: QueryKey) -> List[QueryKey]:
        """Mark every key starting with ``prefix`` stale.

        Returns the affected keys and notifies subscribers, even when no
        key is currently cached, so views that have not loaded yet can
        still react.
        """
        affected: List[QueryKey] = []
        for key, slot in self._slots.items():
            if key[: len(prefix)] == prefix:
                slot.stale = True
                slot.generation += 1
                affected.append(key)
        logger.debug("Invalidated %s (%d cached keys)", prefix, len(affected))
        for subscriber in list(self._subscribers):
            subscriber(prefix, affected)
        return affected

    def clear(self) -> None:
        """Drop everything, e.g. after logout."""
        self._slots.clear()

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register ``subscriber(prefix, keys)``; returns an unsubscribe function."""
        self._subscribers.append(subscriber)

        def _unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return _unsubscribe


__all__ = ["QueryCache", "QueryKey", "Loader"]
