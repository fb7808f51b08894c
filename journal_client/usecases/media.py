from __future__ import annotations

import logging
import mimetypes

from journal_client.api import JournalApiClient
from journal_client.cache import QueryCache, keys
from journal_client.core.models import MediaType
from journal_client.core.types import Id

logger = logging.getLogger(__name__)


def media_type_for(mime_type: str) -> MediaType:
    major = mime_type.split("/", 1)[0].lower()
    if major == "image":
        return MediaType.IMAGE
    if major == "video":
        return MediaType.VIDEO
    return MediaType.FILE


class MediaService:
    def __init__(self, api: JournalApiClient, cache: QueryCache) -> None:
        self.api = api
        self.cache = cache

    async def upload(
        self,
        entry_id: Id,
        filename: str,
        data: bytes,
        mime_type: str | None = None,
    ) -> MediaType:
        mime_type = mime_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
        media_type = media_type_for(mime_type)
        await self.api.upload_media(entry_id, media_type, filename, data, mime_type)
        logger.info(
            "Media uploaded",
            extra={"entry_id": str(entry_id), "media_type": media_type.value, "size": len(data)},
        )
        self.cache.invalidate(keys.media(entry_id))
        return media_type


__all__ = ["MediaService", "media_type_for"]
