"""Pydantic models for the entities exchanged with the journal API."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .text import unescape_newlines
from .types import Id

# Keys that carry 64-bit identifiers in API payloads
ENTRY_ID_FIELDS = frozenset({"id", "folderId", "entryId"})
FOLDER_ID_FIELDS = frozenset({"id"})
MEDIA_ID_FIELDS = frozenset({"id", "entryId"})


class WireModel(BaseModel):
    """Base model using the API's camelCase field names on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self, **kwargs) -> dict:
        return self.model_dump(mode="json", by_alias=True, **kwargs)


class Entry(WireModel):
    """A journal entry as last confirmed by the server."""

    id: Id
    public_id: str = ""
    title: str = ""
    # Transport form: newlines are the two-character sequence ``\n``
    content: str = ""
    word_count: int = Field(default=0, ge=0)
    journal_date: Optional[date] = None
    date_created: Optional[datetime] = None
    last_edited: Optional[datetime] = None
    is_favorite: bool = False
    tags: List[str] = Field(default_factory=list)
    folder_id: Optional[Id] = None

    @field_validator("tags")
    @classmethod
    def _unique_tags(cls, value: List[str]) -> List[str]:
        return list(dict.fromkeys(value))

    @property
    def text(self) -> str:
        """Content with real newlines, as shown in an editor."""
        return unescape_newlines(self.content)


class CreatedEntry(WireModel):
    """Identifiers returned when an entry is created."""

    id: Id
    public_id: str = ""


class Folder(WireModel):
    id: Id
    public_id: str = ""
    name: str = Field(min_length=1)
    date_created: Optional[datetime] = None


class MediaType(str, Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    FILE = "FILE"


class Media(WireModel):
    id: Id
    entry_id: Id
    filename: str
    presigned_url: str = ""
    type: MediaType = MediaType.FILE


class SharedEntry(WireModel):
    """Access-controlled public view of one entry."""

    id: str
    entry: Optional[Entry] = None
    allowed_users: List[str] = Field(default_factory=list)
    allow_anyone: bool = False


class User(WireModel):
    username: str
    email: str = ""
    profile_picture: Optional[str] = None
    streak: int = 0
    # Explicit: the generated alias would capitalize the letter after "2"
    enabled2fa: bool = Field(False, alias="enabled2fa")
    ai_allow_title_access: bool = False
    ai_allow_content_access: bool = False


__all__ = [
    "ENTRY_ID_FIELDS",
    "FOLDER_ID_FIELDS",
    "MEDIA_ID_FIELDS",
    "WireModel",
    "Entry",
    "CreatedEntry",
    "Folder",
    "MediaType",
    "Media",
    "SharedEntry",
    "User",
]
