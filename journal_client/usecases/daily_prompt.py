from __future__ import annotations

import json
import logging

from journal_client.api import JournalApiClient
from journal_client.storage.client_state import AI_PROMPT_KEY, StateCorruptedError

logger = logging.getLogger(__name__)


class DailyPrompt:
    """Writing prompt generated once by the API and then kept locally."""

    def __init__(self, api: JournalApiClient) -> None:
        self.api = api

    def stored(self) -> str | None:
        try:
            raw = self.api.state.get(AI_PROMPT_KEY)
        except StateCorruptedError:
            return None
        if raw is None:
            return None
        try:
            value = json.loads(raw)
        except ValueError:
            logger.warning("Stored prompt unreadable; fetching a new one")
            return None
        return value if isinstance(value, str) and value else None

    async def get(self) -> str:
        prompt = self.stored()
        if prompt is not None:
            return prompt
        prompt = await self.api.daily_prompt()
        if prompt:
            self.api.state.set(AI_PROMPT_KEY, json.dumps(prompt))
        return prompt


__all__ = ["DailyPrompt"]
