from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx

from journal_client.codec import decode, encode, encode_path_segment, escape_path_segment
from journal_client.core.exceptions import (
    ApiError,
    AuthenticationError,
    NotFoundError,
    TransportError,
)
from journal_client.core.models import (
    ENTRY_ID_FIELDS,
    FOLDER_ID_FIELDS,
    MEDIA_ID_FIELDS,
    CreatedEntry,
    Entry,
    Folder,
    Media,
    MediaType,
    SharedEntry,
    User,
)
from journal_client.core.settings import Settings, get_settings
from journal_client.core.types import Id
from journal_client.storage.client_state import TOKEN_KEY, ClientStateStore, StateCorruptedError

logger = logging.getLogger(__name__)


def _path_id(value: Id) -> str:
    return encode_path_segment(value)


def _entry_items(data: Any) -> List[Any]:
    # List endpoints answer either with a bare list or a page object
    if isinstance(data, dict):
        for key in ("entries", "content", "items"):
            if isinstance(data.get(key), list):
                return data[key]
        return []
    return list(data or [])


class JournalApiClient:
    """Async HTTP client for the journal REST API.

    - Attaches ``Authorization: Bearer <token>`` when a session token is
      stored.
    - Encodes identifiers as decimal strings on the way out and decodes
      known identifier fields on the way in.
    - Maps HTTP failures onto the client exception hierarchy. An auth
      rejection discards the stored token and calls ``on_auth_failure``.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        state: ClientStateStore | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        on_auth_failure: Callable[[], None] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.state = state or ClientStateStore(self.settings.state_dir)
        self.on_auth_failure = on_auth_failure
        self._http = httpx.AsyncClient(
            base_url=self.settings.base_url,
            timeout=self.settings.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "JournalApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # session token
    @property
    def token(self) -> Optional[str]:
        try:
            return self.state.get(TOKEN_KEY)
        except StateCorruptedError:
            logger.warning("Stored session token unreadable; continuing signed out")
            return None

    def store_token(self, token: str) -> None:
        self.state.set(TOKEN_KEY, token)

    def clear_token(self) -> None:
        self.state.delete(TOKEN_KEY)

    # ------------------------------------------------------------------
    # transport
    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        authenticated: bool = True,
    ) -> httpx.Response:
        headers: Dict[str, str] = {}
        token = self.token if authenticated else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            response = await self._http.request(
                method,
                path,
                json=encode(json) if json is not None else None,
                params=encode(params) if params is not None else None,
                files=files,
                data=data,
                headers=headers,
            )
        except httpx.TimeoutException as exc:
            raise TransportError(f"{method} {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc

        status = response.status_code
        if status < 400:
            return response
        detail = self._detail(response)
        if status in (401, 403):
            if authenticated:
                logger.warning(
                    "Session rejected by API; discarding token",
                    extra={"path": path, "status": status},
                )
                self.clear_token()
                if self.on_auth_failure is not None:
                    self.on_auth_failure()
            raise AuthenticationError(status, detail)
        if status == 404:
            raise NotFoundError(status, detail)
        raise ApiError(status, detail)

    @staticmethod
    def _detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(body, dict):
            for key in ("message", "detail", "error"):
                if body.get(key):
                    return str(body[key])
        return str(body)[:200]

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    # ------------------------------------------------------------------
    # auth
    async def login(self, email: str, password: str) -> Optional[Dict[str, Any]]:
        """Return the login payload, or ``None`` when a 2FA code was sent (202)."""
        response = await self._request(
            "POST", "/auth/login", json={"email": email, "password": password}, authenticated=False
        )
        if response.status_code == 202:
            return None
        return self._json(response)

    async def signup(self, email: str, username: str, password: str) -> Any:
        response = await self._request(
            "POST",
            "/auth/signup",
            json={"email": email, "username": username, "password": password},
            authenticated=False,
        )
        return self._json(response)

    async def verify_email(self, email: str, verification_code: str) -> Any:
        response = await self._request(
            "POST",
            "/auth/verify",
            json={"email": email, "verificationCode": verification_code},
            authenticated=False,
        )
        return self._json(response)

    async def verify_2fa(self, email: str, verification_code: str) -> Dict[str, Any]:
        response = await self._request(
            "POST",
            "/auth/verify-2fa",
            json={"email": email, "verificationCode": verification_code},
            authenticated=False,
        )
        return self._json(response) or {}

    async def resend_verification(self, email: str) -> None:
        await self._request(
            "POST", "/auth/resend-verification", json={"email": email}, authenticated=False
        )

    async def forgot_password(self, email: str) -> None:
        await self._request(
            "POST", "/auth/forgot-password", json={"email": email}, authenticated=False
        )

    async def reset_password(self, email: str, verification_code: str, password: str) -> None:
        await self._request(
            "POST",
            "/auth/reset-password",
            json={"email": email, "verificationCode": verification_code, "password": password},
            authenticated=False,
        )

    async def get_user(self) -> User:
        response = await self._request("GET", "/user/me")
        return User.model_validate(self._json(response))

    async def update_user(self, fields: Dict[str, Any]) -> None:
        """Send only the account settings that changed, camelCase keyed."""
        await self._request("PUT", "/user/update", json=fields)

    # ------------------------------------------------------------------
    # entries
    def _entries(self, response: httpx.Response) -> List[Entry]:
        items = decode(_entry_items(self._json(response)), ENTRY_ID_FIELDS)
        return [Entry.model_validate(item) for item in items]

    def _entry(self, response: httpx.Response) -> Entry:
        return Entry.model_validate(decode(self._json(response), ENTRY_ID_FIELDS))

    async def list_entries(self, page: int = 0, size: int = 10) -> List[Entry]:
        response = await self._request("GET", "/entry", params={"page": page, "size": size})
        return self._entries(response)

    async def get_entry(self, entry_id: Id) -> Entry:
        response = await self._request("GET", f"/entry/{_path_id(entry_id)}")
        return self._entry(response)

    async def get_entry_by_public_id(self, public_id: str) -> Entry:
        response = await self._request("GET", f"/entry/uuid/{escape_path_segment(public_id)}")
        return self._entry(response)

    async def get_entries_by_date(self, day: date) -> List[Entry]:
        response = await self._request("GET", f"/entry/date/{day.isoformat()}")
        return self._entries(response)

    async def get_entries_by_time_range(self, start: datetime, end: datetime) -> List[Entry]:
        response = await self._request(
            "GET",
            "/entry/time-range",
            params={"startDate": start.isoformat(), "endDate": end.isoformat()},
        )
        return self._entries(response)

    async def get_entries_by_tags(self, tag_names: Iterable[str]) -> List[Entry]:
        response = await self._request("POST", "/entry/tag", json={"tagNames": list(tag_names)})
        return self._entries(response)

    async def search_entries(self, query: str) -> List[Entry]:
        response = await self._request("GET", "/entry/search", params={"query": query})
        return self._entries(response)

    async def create_entry(self, payload: Dict[str, Any]) -> CreatedEntry:
        response = await self._request("POST", "/entry", json=payload)
        return CreatedEntry.model_validate(decode(self._json(response), ENTRY_ID_FIELDS))

    async def update_entry(self, entry_id: Id, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """PUT a partial update; returns the decoded response body if any."""
        response = await self._request(
            "PUT", f"/entry/{_path_id(entry_id)}/update", json=fields
        )
        body = self._json(response)
        return decode(body, ENTRY_ID_FIELDS) if isinstance(body, dict) else None

    async def delete_entry(self, entry_id: Id) -> None:
        await self._request("DELETE", f"/entry/{_path_id(entry_id)}")

    async def add_tags(self, entry_id: Id, tag_names: Iterable[str]) -> None:
        await self._request(
            "POST", f"/entry/{_path_id(entry_id)}/tag/new", json={"tagNames": list(tag_names)}
        )

    async def remove_tag(self, entry_id: Id, tag_name: str) -> None:
        await self._request(
            "DELETE", f"/entry/{_path_id(entry_id)}/tag/{escape_path_segment(tag_name)}"
        )

    async def add_to_folder(self, entry_id: Id, folder_id: Id) -> None:
        await self._request(
            "POST", f"/entry/{_path_id(entry_id)}/add-to-folder/{_path_id(folder_id)}"
        )

    async def remove_from_folder(self, entry_id: Id) -> None:
        await self._request("DELETE", f"/entry/{_path_id(entry_id)}/remove-from-folder")

    async def get_folder_entries(self, folder_id: Id) -> List[Entry]:
        response = await self._request("GET", f"/entry/folder/{_path_id(folder_id)}")
        return self._entries(response)

    # ------------------------------------------------------------------
    # folders and tags
    async def list_folders(self) -> List[Folder]:
        response = await self._request("GET", "/folder")
        items = decode(self._json(response) or [], FOLDER_ID_FIELDS)
        return [Folder.model_validate(item) for item in items]

    async def get_folder(self, folder_id: Id) -> Folder:
        response = await self._request("GET", f"/folder/{_path_id(folder_id)}")
        return Folder.model_validate(decode(self._json(response), FOLDER_ID_FIELDS))

    async def create_folder(self, name: str) -> Folder:
        response = await self._request("POST", "/folder", json={"name": name})
        return Folder.model_validate(decode(self._json(response), FOLDER_ID_FIELDS))

    async def rename_folder(self, folder_id: Id, name: str) -> None:
        await self._request(
            "PUT", f"/folder/{_path_id(folder_id)}/update-name/{escape_path_segment(name)}"
        )

    async def delete_folder(self, folder_id: Id) -> None:
        await self._request("DELETE", f"/folder/{_path_id(folder_id)}")

    async def list_tags(self) -> List[str]:
        response = await self._request("GET", "/tags")
        return [str(tag) for tag in self._json(response) or []]

    # ------------------------------------------------------------------
    # sharing
    async def create_shared_entry(
        self, entry_id: Id, allowed_users: List[str], allow_anyone: bool
    ) -> str:
        """Create a shared view and return its opaque identifier."""
        response = await self._request(
            "POST",
            "/shared-entry/new",
            json={"entryId": entry_id, "allowedUsers": allowed_users, "allowAnyone": allow_anyone},
        )
        body = self._json(response)
        if isinstance(body, dict):
            return str(body.get("id", ""))
        return str(body)

    async def get_shared_entry(self, shared_id: str) -> SharedEntry:
        response = await self._request("GET", f"/shared-entry/{escape_path_segment(shared_id)}")
        body = dict(self._json(response) or {})
        # The shared view id is opaque text; only the nested entry carries numeric ids
        if isinstance(body.get("entry"), dict):
            body["entry"] = decode(body["entry"], ENTRY_ID_FIELDS)
        return SharedEntry.model_validate(body)

    async def add_shared_user(self, shared_id: str, email: str) -> None:
        await self._request(
            "POST", f"/shared-entry/{escape_path_segment(shared_id)}/add-user", json={"email": email}
        )

    async def remove_shared_user(self, shared_id: str, email: str) -> None:
        await self._request(
            "DELETE",
            f"/shared-entry/{escape_path_segment(shared_id)}/remove-user",
            json={"email": email},
        )

    # ------------------------------------------------------------------
    # media and misc
    async def list_media(self, entry_id: Id) -> List[Media]:
        response = await self._request("GET", f"/entry/{_path_id(entry_id)}/media")
        items = decode(self._json(response) or [], MEDIA_ID_FIELDS)
        return [Media.model_validate(item) for item in items]

    async def upload_media(
        self,
        entry_id: Id,
        media_type: MediaType,
        filename: str,
        content: bytes,
        mime_type: str,
    ) -> None:
        await self._request(
            "POST",
            f"/entry/{_path_id(entry_id)}/media/new",
            files={"file": (filename, content, mime_type)},
            data={"type": media_type.value},
        )

    async def daily_prompt(self) -> str:
        body = self._json(await self._request("GET", "/ai/daily-prompt"))
        if isinstance(body, dict):
            return str(body.get("prompt", ""))
        return "" if body is None else str(body)


__all__ = ["JournalApiClient"]
