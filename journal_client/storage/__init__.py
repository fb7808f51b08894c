"""Durable client-side state."""

from .client_state import (
    AI_PROMPT_KEY,
    AUTOSAVE_KEY,
    RESET_CODE_KEY,
    TOKEN_KEY,
    ClientStateStore,
    StateCorruptedError,
)
from .preferences import AutosavePreference, PreferenceStore

__all__ = [
    "AI_PROMPT_KEY",
    "AUTOSAVE_KEY",
    "RESET_CODE_KEY",
    "TOKEN_KEY",
    "ClientStateStore",
    "StateCorruptedError",
    "AutosavePreference",
    "PreferenceStore",
]
