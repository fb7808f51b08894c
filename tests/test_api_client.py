import asyncio
import json

import httpx
import pytest

from journal_client.api import JournalApiClient
from journal_client.core.exceptions import (
    ApiError,
    AuthenticationError,
    NotFoundError,
    TransportError,
)
from journal_client.core.types import Id
from journal_client.storage import TOKEN_KEY

BIG = 9_007_199_254_740_993


def _entry_body(entry_id=BIG, **fields):
    body = {"id": str(entry_id), "publicId": "p-1", "title": "t", "content": "a\\nb", "wordCount": 2}
    body.update(fields)
    return body


def test_bearer_token_attached(make_api, recorder, state):
    state.set(TOKEN_KEY, "secret")
    recorder.on("GET", "/api/v1/user/me", lambda r: {"username": "writer"})
    api = make_api()

    user = asyncio.run(api.get_user())

    assert user.username == "writer"
    assert recorder.requests[0].headers["Authorization"] == "Bearer secret"


def test_no_header_without_token(make_api, recorder):
    recorder.on("GET", "/api/v1/tags", lambda r: ["a"])
    assert asyncio.run(make_api().list_tags()) == ["a"]
    assert "Authorization" not in recorder.requests[0].headers


def test_auth_failure_clears_token_and_notifies(make_api, recorder, state):
    state.set(TOKEN_KEY, "expired")
    recorder.on("GET", "/api/v1/entry", lambda r: httpx.Response(401, json={"message": "expired"}))
    redirected = []
    api = make_api(on_auth_failure=lambda: redirected.append(True))

    with pytest.raises(AuthenticationError) as exc:
        asyncio.run(api.list_entries())

    assert exc.value.status_code == 401
    assert exc.value.detail == "expired"
    assert state.get(TOKEN_KEY) is None
    assert redirected == [True]


def test_login_rejection_keeps_callback_silent(make_api, recorder):
    recorder.on("POST", "/api/v1/auth/login", lambda r: httpx.Response(401, json={"message": "bad"}))
    called = []
    api = make_api(on_auth_failure=lambda: called.append(True))
    with pytest.raises(AuthenticationError):
        asyncio.run(api.login("writer@example.com", "Passw0rd!"))
    assert called == []


def test_login_202_means_second_factor(make_api, recorder):
    recorder.on("POST", "/api/v1/auth/login", lambda r: httpx.Response(202))
    assert asyncio.run(make_api().login("writer@example.com", "Passw0rd!")) is None


def test_entry_ids_decoded_exactly(make_api, recorder):
    recorder.on("GET", f"/api/v1/entry/{BIG}", lambda r: _entry_body(folderId="12"))
    entry = asyncio.run(make_api().get_entry(Id(BIG)))
    assert entry.id == Id(BIG)
    assert entry.folder_id == Id(12)
    assert entry.text == "a\nb"


def test_list_accepts_page_object(make_api, recorder):
    recorder.on("GET", "/api/v1/entry", lambda r: {"content": [_entry_body(1), _entry_body(2)]})
    entries = asyncio.run(make_api().list_entries(page=1, size=2))
    assert [e.id for e in entries] == [Id(1), Id(2)]
    assert recorder.requests[0].url.params["page"] == "1"


def test_create_entry_sends_string_ids(make_api, recorder):
    recorder.on("POST", "/api/v1/entry", lambda r: {"id": str(BIG), "publicId": "p"})
    created = asyncio.run(make_api().create_entry({"title": "t", "folderId": Id(BIG)}))
    assert created.id == Id(BIG)
    assert json.loads(recorder.requests[0].content)["folderId"] == str(BIG)


def test_tag_name_escaped_as_single_segment(make_api, recorder):
    recorder.on("DELETE", "/api/v1/entry/5/tag/a%20b%2Fc", lambda r: None)
    asyncio.run(make_api().remove_tag(Id(5), "a b/c"))
    assert recorder.paths() == ["DELETE /api/v1/entry/5/tag/a%20b%2Fc"]


def test_not_found_and_server_errors(make_api, recorder):
    recorder.on("GET", "/api/v1/folder/9", lambda r: httpx.Response(500, text="boom"))
    api = make_api()
    with pytest.raises(NotFoundError):
        asyncio.run(api.get_entry(Id(1)))
    with pytest.raises(ApiError) as exc:
        asyncio.run(api.get_folder(Id(9)))
    assert exc.value.status_code == 500
    assert not isinstance(exc.value, NotFoundError)


def test_transport_failure_is_wrapped(settings, state):
    def fail(request):
        raise httpx.ConnectError("refused", request=request)

    api = JournalApiClient(settings, state, transport=httpx.MockTransport(fail))
    with pytest.raises(TransportError):
        asyncio.run(api.list_tags())


def test_path_ids_must_be_typed(make_api):
    from journal_client.core.exceptions import IdentifierError

    with pytest.raises(IdentifierError):
        asyncio.run(make_api().get_entry(5))


def test_shared_entry_keeps_opaque_id(make_api, recorder):
    recorder.on(
        "GET",
        "/api/v1/shared-entry/abc-123",
        lambda r: {"id": "abc-123", "entry": _entry_body(7), "allowAnyone": True},
    )
    shared = asyncio.run(make_api().get_shared_entry("abc-123"))
    assert shared.id == "abc-123"
    assert shared.entry.id == Id(7)
    assert shared.allow_anyone is True
