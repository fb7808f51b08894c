from __future__ import annotations

import logging

from journal_client.api import JournalApiClient
from journal_client.cache import EntryStateStore, QueryCache, keys
from journal_client.core.models import Folder
from journal_client.core.schemas import FolderForm, validate
from journal_client.core.types import Id

logger = logging.getLogger(__name__)


class FolderCoordinator:
    """Create, rename and delete folders, invalidating affected views.

    Deleting a folder keeps its entries; they become unfiled both on the
    server and in the confirmed entry snapshots.
    """

    def __init__(
        self,
        api: JournalApiClient,
        cache: QueryCache,
        state: EntryStateStore | None = None,
    ) -> None:
        self.api = api
        self.cache = cache
        self.state = state or EntryStateStore()

    async def create(self, name: str) -> Folder:
        form = validate(FolderForm, {"name": name})
        folder = await self.api.create_folder(form.name)
        logger.info("Folder created", extra={"folder_id": str(folder.id)})
        self.cache.invalidate(keys.FOLDERS)
        return folder

    async def rename(self, folder_id: Id, name: str) -> None:
        form = validate(FolderForm, {"name": name})
        await self.api.rename_folder(folder_id, form.name)
        logger.info("Folder renamed", extra={"folder_id": str(folder_id)})
        self.cache.invalidate(keys.FOLDERS)
        self.cache.invalidate(keys.folder(folder_id))

    async def delete(self, folder_id: Id) -> None:
        await self.api.delete_folder(folder_id)
        unfiled = self.state.unfile(folder_id)
        logger.info(
            "Folder deleted",
            extra={"folder_id": str(folder_id), "unfiled_entries": len(unfiled)},
        )
        self.cache.invalidate(keys.FOLDERS)
        self.cache.invalidate(keys.folder(folder_id))
        # Former members now appear unfiled in every list and entry view
        self.cache.invalidate(keys.ENTRIES)
        self.cache.invalidate(keys.ENTRY)
        self.cache.invalidate(keys.ENTRY_BY_PUBLIC_ID)


__all__ = ["FolderCoordinator"]
