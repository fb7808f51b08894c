"""In-memory stand-in for the journal REST API.

Serves the entry, folder, tag and account endpoints with the real wire
format (camelCase fields, identifiers as decimal strings) so the client can
be exercised end to end without a backend::

    uvicorn apps.stub_api.main:app --port 8080
"""

from __future__ import annotations

import itertools
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Query, status
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

STUB_EMAIL = "writer@example.com"
STUB_PASSWORD = "Passw0rd!"
STUB_TOKEN = "stub-token"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _Entry:
    id: int
    title: str
    content: str
    word_count: int = 0
    is_favorite: bool = False
    tags: List[str] = field(default_factory=list)
    folder_id: Optional[int] = None
    public_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    journal_date: date = field(default_factory=lambda: _now().date())
    date_created: datetime = field(default_factory=_now)
    last_edited: datetime = field(default_factory=_now)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "publicId": self.public_id,
            "title": self.title,
            "content": self.content,
            "wordCount": self.word_count,
            "journalDate": self.journal_date.isoformat(),
            "dateCreated": self.date_created.isoformat(),
            "lastEdited": self.last_edited.isoformat(),
            "isFavorite": self.is_favorite,
            "tags": list(self.tags),
            "folderId": None if self.folder_id is None else str(self.folder_id),
        }


@dataclass
class _Folder:
    id: int
    name: str
    public_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    date_created: datetime = field(default_factory=_now)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "publicId": self.public_id,
            "name": self.name,
            "dateCreated": self.date_created.isoformat(),
        }


class _Store:
    def __init__(self, first_id: int) -> None:
        self.entries: Dict[int, _Entry] = {}
        self.folders: Dict[int, _Folder] = {}
        self.user: Dict[str, Any] = {
            "username": "writer",
            "enabled2fa": False,
            "aiAllowTitleAccess": False,
            "aiAllowContentAccess": False,
        }
        self._ids = itertools.count(first_id)

    def next_id(self) -> int:
        return next(self._ids)


# ---------------------------------------------------------------------------
# Request schemas


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginRequest(_Body):
    email: str
    password: str


class CreateEntryRequest(_Body):
    title: str = Field(min_length=1)
    content: str = ""
    word_count: int = Field(0, ge=0)
    is_favorite: bool = False
    folder_id: Optional[str] = None
    tag_names: List[str] = Field(default_factory=list)


class UpdateEntryRequest(_Body):
    title: Optional[str] = None
    content: Optional[str] = None
    word_count: Optional[int] = Field(None, ge=0)
    is_favorite: Optional[bool] = None
    tags: Optional[List[str]] = None


class UpdateUserRequest(_Body):
    username: Optional[str] = Field(None, min_length=3, max_length=16)
    enabled2fa: Optional[bool] = Field(None, alias="enabled2fa")
    ai_allow_title_access: Optional[bool] = None
    ai_allow_content_access: Optional[bool] = None


class TagNamesRequest(_Body):
    tag_names: List[str]


class FolderRequest(_Body):
    name: str = Field(min_length=1)


def _parse_id(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=f"Malformed id: {raw!r}")


# ---------------------------------------------------------------------------
# FastAPI application


def create_app(first_id: int = 9_007_199_254_740_993) -> FastAPI:
    """Build an app with its own empty store.

    Ids start above 2**53 so clients that round identifiers through floats
    fail visibly.
    """
    store = _Store(first_id)
    router = APIRouter(prefix="/api/v1")

    def current_user(authorization: str | None = Header(None)) -> str:
        if authorization != f"Bearer {STUB_TOKEN}":
            raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
        return STUB_EMAIL

    def get_entry_or_404(entry_id: str) -> _Entry:
        entry = store.entries.get(_parse_id(entry_id))
        if entry is None:
            raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Entry not found")
        return entry

    def get_folder_or_404(folder_id: str) -> _Folder:
        folder = store.folders.get(_parse_id(folder_id))
        if folder is None:
            raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Folder not found")
        return folder

    def ordered(entries: List[_Entry]) -> List[Dict[str, Any]]:
        return [e.to_wire() for e in sorted(entries, key=lambda e: e.date_created, reverse=True)]

    # Auth ---------------------------------------------------------------------

    @router.post("/auth/login")
    def login(req: LoginRequest) -> Dict[str, Any]:
        if req.email != STUB_EMAIL or req.password != STUB_PASSWORD:
            raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Bad credentials")
        return {"token": STUB_TOKEN}

    @router.get("/user/me")
    def me(user: str = Depends(current_user)) -> Dict[str, Any]:
        return {**store.user, "email": user, "profilePicture": None, "streak": 0}

    @router.put("/user/update")
    def update_user(req: UpdateUserRequest, user: str = Depends(current_user)) -> Dict[str, Any]:
        store.user.update(req.model_dump(by_alias=True, exclude_none=True))
        return {**store.user, "email": user}

    # Entries ------------------------------------------------------------------
    # Literal paths first so they are not captured by /entry/{entry_id}

    @router.get("/entry")
    def list_entries(
        page: int = Query(0, ge=0),
        size: int = Query(10, ge=1),
        user: str = Depends(current_user),
    ) -> List[Dict[str, Any]]:
        items = ordered(list(store.entries.values()))
        return items[page * size : (page + 1) * size]

    @router.post("/entry", status_code=status.HTTP_201_CREATED)
    def create_entry(req: CreateEntryRequest, user: str = Depends(current_user)) -> Dict[str, Any]:
        folder_id = None
        if req.folder_id is not None:
            folder_id = get_folder_or_404(req.folder_id).id
        entry = _Entry(
            id=store.next_id(),
            title=req.title,
            content=req.content,
            word_count=req.word_count,
            is_favorite=req.is_favorite,
            tags=list(dict.fromkeys(req.tag_names)),
            folder_id=folder_id,
        )
        store.entries[entry.id] = entry
        return {"id": str(entry.id), "publicId": entry.public_id}

    @router.get("/entry/search")
    def search_entries(query: str, user: str = Depends(current_user)) -> List[Dict[str, Any]]:
        needle = query.lower()
        return ordered(
            [
                e
                for e in store.entries.values()
                if needle in e.title.lower() or needle in e.content.lower()
            ]
        )

    @router.post("/entry/tag")
    def entries_by_tags(req: TagNamesRequest, user: str = Depends(current_user)) -> List[Dict[str, Any]]:
        wanted = set(req.tag_names)
        return ordered([e for e in store.entries.values() if wanted <= set(e.tags)])

    @router.get("/entry/uuid/{public_id}")
    def entry_by_public_id(public_id: str, user: str = Depends(current_user)) -> Dict[str, Any]:
        for entry in store.entries.values():
            if entry.public_id == public_id:
                return entry.to_wire()
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Entry not found")

    @router.get("/entry/date/{day}")
    def entries_on(day: date, user: str = Depends(current_user)) -> List[Dict[str, Any]]:
        return ordered([e for e in store.entries.values() if e.journal_date == day])

    @router.get("/entry/time-range")
    def entries_between(
        start_date: datetime = Query(alias="startDate"),
        end_date: datetime = Query(alias="endDate"),
        user: str = Depends(current_user),
    ) -> List[Dict[str, Any]]:
        return ordered(
            [e for e in store.entries.values() if start_date <= e.date_created <= end_date]
        )

    @router.get("/entry/folder/{folder_id}")
    def folder_entries(folder_id: str, user: str = Depends(current_user)) -> List[Dict[str, Any]]:
        folder = get_folder_or_404(folder_id)
        return ordered([e for e in store.entries.values() if e.folder_id == folder.id])

    @router.get("/entry/{entry_id}")
    def get_entry(entry_id: str, user: str = Depends(current_user)) -> Dict[str, Any]:
        return get_entry_or_404(entry_id).to_wire()

    @router.put("/entry/{entry_id}/update")
    def update_entry(
        entry_id: str, req: UpdateEntryRequest, user: str = Depends(current_user)
    ) -> Dict[str, Any]:
        entry = get_entry_or_404(entry_id)
        changes = req.model_dump(exclude_unset=True)
        for name, value in changes.items():
            if name == "tags":
                value = list(dict.fromkeys(value or []))
            setattr(entry, name, value)
        entry.last_edited = _now()
        return entry.to_wire()

    @router.delete("/entry/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_entry(entry_id: str, user: str = Depends(current_user)) -> Response:
        entry = get_entry_or_404(entry_id)
        del store.entries[entry.id]
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @router.post("/entry/{entry_id}/tag/new")
    def add_tags(
        entry_id: str, req: TagNamesRequest, user: str = Depends(current_user)
    ) -> Dict[str, Any]:
        entry = get_entry_or_404(entry_id)
        entry.tags = list(dict.fromkeys(entry.tags + req.tag_names))
        return entry.to_wire()

    @router.delete("/entry/{entry_id}/tag/{tag_name:path}")
    def remove_tag(entry_id: str, tag_name: str, user: str = Depends(current_user)) -> Dict[str, Any]:
        entry = get_entry_or_404(entry_id)
        if tag_name not in entry.tags:
            raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Tag not on entry")
        entry.tags = [tag for tag in entry.tags if tag != tag_name]
        return entry.to_wire()

    @router.post("/entry/{entry_id}/add-to-folder/{folder_id}")
    def add_to_folder(entry_id: str, folder_id: str, user: str = Depends(current_user)) -> Dict[str, Any]:
        entry = get_entry_or_404(entry_id)
        entry.folder_id = get_folder_or_404(folder_id).id
        return entry.to_wire()

    @router.delete("/entry/{entry_id}/remove-from-folder")
    def remove_from_folder(entry_id: str, user: str = Depends(current_user)) -> Dict[str, Any]:
        entry = get_entry_or_404(entry_id)
        entry.folder_id = None
        return entry.to_wire()

    # Folders and tags -----------------------------------------------------------

    @router.get("/folder")
    def list_folders(user: str = Depends(current_user)) -> List[Dict[str, Any]]:
        return [f.to_wire() for f in store.folders.values()]

    @router.post("/folder", status_code=status.HTTP_201_CREATED)
    def create_folder(req: FolderRequest, user: str = Depends(current_user)) -> Dict[str, Any]:
        folder = _Folder(id=store.next_id(), name=req.name)
        store.folders[folder.id] = folder
        return folder.to_wire()

    @router.get("/folder/{folder_id}")
    def get_folder(folder_id: str, user: str = Depends(current_user)) -> Dict[str, Any]:
        return get_folder_or_404(folder_id).to_wire()

    @router.put("/folder/{folder_id}/update-name/{name:path}")
    def rename_folder(folder_id: str, name: str, user: str = Depends(current_user)) -> Dict[str, Any]:
        if not name:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Name is required")
        folder = get_folder_or_404(folder_id)
        folder.name = name
        return folder.to_wire()

    @router.delete("/folder/{folder_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_folder(folder_id: str, user: str = Depends(current_user)) -> Response:
        folder = get_folder_or_404(folder_id)
        del store.folders[folder.id]
        # Entries survive their folder and become unfiled
        for entry in store.entries.values():
            if entry.folder_id == folder.id:
                entry.folder_id = None
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @router.get("/tags")
    def list_tags(user: str = Depends(current_user)) -> List[str]:
        return sorted({tag for e in store.entries.values() for tag in e.tags})

    app = FastAPI(title="Journal API (stub)")
    app.include_router(router)
    app.state.store = store
    return app


app = create_app()
