from __future__ import annotations

import logging
from typing import Any, Dict

from journal_client.api import JournalApiClient
from journal_client.cache import QueryCache, keys
from journal_client.core.models import User
from journal_client.core.schemas import AccountForm, validate

logger = logging.getLogger(__name__)

_WIRE_NAMES = {
    "username": "username",
    "enabled2fa": "enabled2fa",
    "ai_allow_title_access": "aiAllowTitleAccess",
    "ai_allow_content_access": "aiAllowContentAccess",
}


class AccountSettings:
    """Username, two-factor login and AI access flags of the signed-in user."""

    def __init__(self, api: JournalApiClient, cache: QueryCache) -> None:
        self.api = api
        self.cache = cache

    async def update(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Send the settings in ``changes`` that differ from the current user.

        Returns the fields actually sent; nothing is sent when nothing
        differs.
        """
        form = validate(AccountForm, dict(changes))
        current: User = await self.cache.fetch(keys.USER, self.api.get_user)
        changed = {
            name: value
            for name, value in form.model_dump(exclude_none=True).items()
            if getattr(current, name) != value
        }
        if not changed:
            return {}

        await self.api.update_user({_WIRE_NAMES[name]: value for name, value in changed.items()})
        logger.info("Account settings updated", extra={"fields": sorted(changed)})
        self.cache.invalidate(keys.USER)
        return changed


__all__ = ["AccountSettings"]
