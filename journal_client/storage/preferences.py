"""Durable autosave preference."""

from __future__ import annotations

import logging
from datetime import timedelta
from enum import Enum

from journal_client.core.settings import Settings, get_settings

from .client_state import AUTOSAVE_KEY, ClientStateStore, StateCorruptedError

logger = logging.getLogger(__name__)


class AutosavePreference(str, Enum):
    ENABLED = "enabled"
    DISABLED = "disabled"
    UNSET = "unset"


class PreferenceStore:
    """Read and persist whether the user wants background autosave.

    The value is read from local state only, so an editor can be set up
    before any request completes. Anything unreadable counts as disabled.
    A stored choice lasts ``preference_ttl_days`` from the last time it was set.
    """

    def __init__(self, state: ClientStateStore, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self.state = state
        self.ttl = timedelta(days=settings.preference_ttl_days)

    def get(self) -> AutosavePreference:
        try:
            raw = self.state.get(AUTOSAVE_KEY)
        except StateCorruptedError:
            logger.warning("Autosave preference unreadable; treating as disabled")
            return AutosavePreference.DISABLED
        if raw is None:
            return AutosavePreference.UNSET
        if raw == "true":
            return AutosavePreference.ENABLED
        if raw != "false":
            logger.warning("Unexpected autosave preference %r; treating as disabled", raw)
        return AutosavePreference.DISABLED

    def is_enabled(self) -> bool:
        return self.get() is AutosavePreference.ENABLED

    def set(self, enabled: bool) -> None:
        self.state.set(AUTOSAVE_KEY, "true" if enabled else "false", ttl=self.ttl)


__all__ = ["AutosavePreference", "PreferenceStore"]
