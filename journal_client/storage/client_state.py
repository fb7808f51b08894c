from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from journal_client.core.exceptions import DomainError

# Well-known names of persisted values
TOKEN_KEY = "token"
AUTOSAVE_KEY = "autosave"
RESET_CODE_KEY = "verification-code"
AI_PROMPT_KEY = "ai-prompt"

logger = logging.getLogger(__name__)


class StateCorruptedError(DomainError):
    """Raised when persisted client state cannot be parsed."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ClientStateStore:
    """Small durable key/value store for client-side state.

    Values are strings with an optional expiry, kept in a single JSON file
    under the state directory. This plays the role browser cookies and
    local storage play for a web front-end: it is readable without any
    network round trip.
    """

    def __init__(
        self,
        state_dir: Path,
        filename: str = "client_state.json",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.state_dir = Path(state_dir)
        self.path = self.state_dir / filename
        self._clock = clock

    # ------------------------------------------------------------------
    # public API
    def get(self, name: str) -> Optional[str]:
        """Return the stored value, or ``None`` when absent or expired.

        Raises :class:`StateCorruptedError` when the file or the record is
        unreadable.
        """
        data = self._load()
        record = data.get(name)
        if record is None:
            return None
        if not isinstance(record, dict) or not isinstance(record.get("value"), str):
            raise StateCorruptedError(f"Malformed record for {name!r} in {self.path}")
        expires_at = record.get("expires_at")
        if expires_at is not None:
            try:
                expiry = datetime.fromisoformat(expires_at)
            except (TypeError, ValueError) as exc:
                raise StateCorruptedError(f"Malformed expiry for {name!r}") from exc
            if expiry <= self._clock():
                logger.debug("Client state %s expired at %s", name, expires_at)
                self.delete(name)
                return None
        return record["value"]

    def set(self, name: str, value: str, ttl: Optional[timedelta] = None) -> None:
        """Persist ``value`` under ``name``; ``ttl`` of ``None`` never expires."""
        try:
            data = self._load()
        except StateCorruptedError:
            logger.warning("Discarding unreadable client state at %s", self.path)
            data = {}
        record: Dict[str, Any] = {"value": value, "expires_at": None}
        if ttl is not None:
            record["expires_at"] = (self._clock() + ttl).isoformat()
        data[name] = record
        self._write(data)

    def delete(self, name: str) -> None:
        try:
            data = self._load()
        except StateCorruptedError:
            logger.warning("Discarding unreadable client state at %s", self.path)
            self._write({})
            return
        if data.pop(name, None) is not None:
            self._write(data)

    # ------------------------------------------------------------------
    # helpers
    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StateCorruptedError(f"Cannot read client state at {self.path}") from exc
        if not isinstance(data, dict):
            raise StateCorruptedError(f"Client state at {self.path} is not an object")
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, self.path)


__all__ = [
    "ClientStateStore",
    "StateCorruptedError",
    "TOKEN_KEY",
    "AUTOSAVE_KEY",
    "RESET_CODE_KEY",
    "AI_PROMPT_KEY",
]
