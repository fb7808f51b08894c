"""Debounced autosave for the entry editor.

::

    IDLE --edit--> DIRTY --timer--> SAVING --ok--> IDLE
                     ^                 |
                     |                 +--draft changed--> DIRTY (timer restarted)
                     |                 +--failure--> ERROR --> DIRTY
                     +-----edit-------------------------------+

The timer only runs while autosave is enabled and an entry is loaded. At
most one save is in flight per machine.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional

from journal_client.core.exceptions import DomainError
from journal_client.core.models import Entry
from journal_client.core.settings import Settings, get_settings
from journal_client.core.text import count_words, escape_newlines
from journal_client.core.types import Id
from journal_client.storage.preferences import PreferenceStore

from .entry_mutations import EntryMutationCoordinator

logger = logging.getLogger(__name__)


class State(str, Enum):
    IDLE = "idle"
    DIRTY = "dirty"
    SAVING = "saving"
    ERROR = "error"


Listener = Callable[[State, Optional[BaseException]], None]


class AutoSave:
    def __init__(
        self,
        coordinator: EntryMutationCoordinator,
        preferences: PreferenceStore,
        settings: Settings | None = None,
        *,
        delay: float | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.coordinator = coordinator
        self.preferences = preferences
        self.delay = delay if delay is not None else settings.autosave_delay_ms / 1000
        self.state = State.IDLE
        self.entry_id: Optional[Id] = None
        self.draft = ""
        self.enabled = False
        self.last_error: Optional[BaseException] = None
        self._saved = ""
        self._timer: Optional["asyncio.Task[None]"] = None
        self._inflight: Optional["asyncio.Task[bool]"] = None
        self._listeners: List[Listener] = []

    @property
    def loaded(self) -> bool:
        return self.entry_id is not None

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _set_state(self, state: State, error: Optional[BaseException] = None) -> None:
        self.state = state
        for listener in list(self._listeners):
            listener(state, error)

    # ------------------------------------------------------------------
    # editor events
    def load(self, entry: Entry) -> None:
        """Start editing ``entry``; the draft is its unescaped content."""
        self._cancel_timer()
        self.entry_id = entry.id
        self.draft = entry.text
        self._saved = self.draft
        self.last_error = None
        self.enabled = self.preferences.is_enabled()
        self._set_state(State.IDLE)

    def edit(self, content: str) -> None:
        if content == self.draft:
            return
        self.draft = content
        # A save in flight settles the state itself once it completes
        if self.state is not State.SAVING:
            self._set_state(State.DIRTY)
        if self.enabled and self.loaded:
            self._restart_timer()

    def set_enabled(self, enabled: bool) -> None:
        """Persist the preference; disabling never cancels an in-flight save."""
        self.preferences.set(enabled)
        self.enabled = enabled
        if not enabled:
            self._cancel_timer()
        elif self.loaded and self.state is State.DIRTY:
            self._restart_timer()

    async def save(self) -> bool:
        """Save the current draft now. Returns False when the save failed."""
        self._cancel_timer()
        await self._wait_inflight()
        # The finished save may have re-armed the timer for a newer draft
        self._cancel_timer()
        if not self.loaded:
            return True
        if self.draft == self._saved and self.state is State.IDLE:
            return True
        self._inflight = asyncio.ensure_future(self._save())
        return await self._inflight

    async def save_and_exit(self, on_exit: Callable[[], None] | None = None) -> None:
        """Flush the draft, then call ``on_exit``; raises if the flush fails."""
        if not await self.save():
            if self.last_error is None:
                raise RuntimeError("Save failed without recording an error")
            raise self.last_error
        if on_exit is not None:
            on_exit()

    def close(self) -> None:
        """Editor teardown: no further timer-driven saves for this entry."""
        self._cancel_timer()
        self.entry_id = None

    # ------------------------------------------------------------------
    # timer
    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    def _restart_timer(self) -> None:
        self._cancel_timer()
        self._timer = asyncio.ensure_future(self._debounce())

    async def _debounce(self) -> None:
        await asyncio.sleep(self.delay)
        self._timer = None
        if self.state is not State.DIRTY or not self.enabled or not self.loaded:
            return
        if self._inflight is not None and not self._inflight.done():
            return
        self._inflight = asyncio.ensure_future(self._save())

    async def _wait_inflight(self) -> None:
        while self._inflight is not None and not self._inflight.done():
            await asyncio.shield(self._inflight)

    # ------------------------------------------------------------------
    # save
    async def _save(self) -> bool:
        entry_id = self.entry_id
        if entry_id is None:
            raise RuntimeError("No entry loaded")
        draft = self.draft
        self._set_state(State.SAVING)
        try:
            await self.coordinator.update(
                entry_id,
                {"content": escape_newlines(draft), "word_count": count_words(draft)},
            )
        except DomainError as exc:
            self.last_error = exc
            logger.error("Autosave failed", exc_info=True, extra={"entry_id": str(entry_id)})
            if self.entry_id == entry_id:
                self._set_state(State.ERROR, exc)
                self._set_state(State.DIRTY)
                # A timer that fired during the save skipped its tick
                if self.draft != draft and self.enabled:
                    self._restart_timer()
            return False

        self.last_error = None
        if self.entry_id != entry_id:
            # Editor moved on to another entry or was closed during the save
            return True
        self._saved = draft
        if self.draft != draft:
            self._set_state(State.DIRTY)
            if self.enabled:
                self._restart_timer()
        else:
            self._set_state(State.IDLE)
        logger.debug("Autosaved entry", extra={"entry_id": str(entry_id)})
        return True


__all__ = ["AutoSave", "State"]
