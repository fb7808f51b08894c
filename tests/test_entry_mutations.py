import asyncio
import json

import httpx
import pytest

from journal_client.cache import keys
from journal_client.core.exceptions import ApiError, FolderNotFoundError, ValidationError
from journal_client.core.models import Entry
from journal_client.core.types import Id
from journal_client.usecases import EntryMutationCoordinator, FieldGroup, JournalQueries

ENTRY = Id(5)
UPDATE_PATH = "/api/v1/entry/5/update"


def _wire(**fields):
    body = {"id": "5", "publicId": "pub-5", "title": "t", "content": "old", "wordCount": 1, "isFavorite": False}
    body.update(fields)
    return body


@pytest.fixture()
def coordinator(make_api, cache, entry_state):
    entry_state.observe(
        Entry(id=ENTRY, public_id="pub-5", title="t", content="old", word_count=1, tags=["a"], folder_id=Id(1))
    )
    return EntryMutationCoordinator(make_api(), cache, entry_state)


def _invalidations(cache):
    seen = []
    cache.subscribe(lambda prefix, affected: seen.append(prefix))
    return seen


def test_field_groups_do_not_clobber_each_other(coordinator, recorder):
    gates = {}

    async def on_update(request):
        body = json.loads(request.content)
        if "content" in body:
            await gates["content"].wait()
            # Server snapshot taken before the favorite toggle landed
            return _wire(content=body["content"], wordCount=body["wordCount"], isFavorite=False)
        return _wire(isFavorite=body["isFavorite"])

    recorder.on("PUT", UPDATE_PATH, on_update)

    async def run():
        gates["content"] = asyncio.Event()
        content_task = asyncio.ensure_future(coordinator.update(ENTRY, {"content": "new words here"}))
        await asyncio.sleep(0.01)
        favorite = await coordinator.update(ENTRY, {"is_favorite": True})
        gates["content"].set()
        return favorite, await content_task

    favorite, content = asyncio.run(run())

    assert favorite.applied and content.applied
    confirmed = coordinator.confirmed(ENTRY)
    assert confirmed["is_favorite"] is True
    assert confirmed["content"] == "new words here"
    assert confirmed["word_count"] == 3


def test_superseded_writes_are_coalesced_and_discarded(coordinator, recorder):
    gates = {}
    sent = []

    async def on_update(request):
        content = json.loads(request.content)["content"]
        sent.append(content)
        if content == "v1":
            await gates["first"].wait()
        return _wire(content=content)

    recorder.on("PUT", UPDATE_PATH, on_update)

    async def run():
        gates["first"] = asyncio.Event()
        first = asyncio.ensure_future(coordinator.update(ENTRY, {"content": "v1"}))
        await asyncio.sleep(0.01)
        second = asyncio.ensure_future(coordinator.update(ENTRY, {"content": "v2"}))
        third = asyncio.ensure_future(coordinator.update(ENTRY, {"content": "v3"}))
        await asyncio.sleep(0.01)
        gates["first"].set()
        return await asyncio.gather(first, second, third)

    first, second, third = asyncio.run(run())

    assert sent == ["v1", "v3"]
    assert first.applied is False and first.superseded == (FieldGroup.CONTENT,)
    assert second.applied is False
    assert third.applied is True
    assert coordinator.confirmed(ENTRY)["content"] == "v3"


def test_read_started_before_confirmed_write_keeps_newer_fields(coordinator, recorder, cache, entry_state, make_api):
    gates = {}

    async def on_get(request):
        await gates["read"].wait()
        return _wire(isFavorite=False)

    recorder.on("GET", "/api/v1/entry/5", on_get)
    recorder.on("PUT", UPDATE_PATH, lambda r: _wire(isFavorite=True))
    queries = JournalQueries(make_api(), cache, entry_state)

    async def run():
        gates["read"] = asyncio.Event()
        reading = asyncio.ensure_future(queries.entry(ENTRY))
        await asyncio.sleep(0.01)
        await coordinator.update(ENTRY, {"is_favorite": True})
        gates["read"].set()
        return await reading

    read = asyncio.run(run())

    assert read.is_favorite is False
    assert coordinator.confirmed(ENTRY)["is_favorite"] is True
    assert cache.is_stale(keys.entry(ENTRY))


def test_read_after_write_replaces_snapshot(entry_state):
    since = entry_state.mark()
    entry_state.merge(ENTRY, {"title": "confirmed"})
    assert entry_state.observe(Entry(id=ENTRY, title="older"), since) is False
    assert entry_state.get(ENTRY)["title"] == "confirmed"

    assert entry_state.observe(Entry(id=ENTRY, title="newer"), entry_state.mark()) is True
    assert entry_state.get(ENTRY)["title"] == "newer"


def test_settled_lanes_are_released(coordinator, recorder):
    recorder.on("PUT", UPDATE_PATH, lambda r: _wire(**json.loads(r.content)))
    recorder.on("POST", "/api/v1/entry/5/tag/new", lambda r: None)

    async def run():
        await asyncio.gather(
            coordinator.update(ENTRY, {"content": "v1"}),
            coordinator.update(ENTRY, {"content": "v2", "title": "t2"}),
            coordinator.add_tags(ENTRY, ["b"]),
        )

    asyncio.run(run())
    assert coordinator._lanes == {}


def test_update_recomputes_word_count(coordinator, recorder):
    recorder.on("PUT", UPDATE_PATH, lambda r: _wire(**json.loads(r.content)))
    asyncio.run(coordinator.update(ENTRY, {"content": "# Title\\n\\nHello **world**", "word_count": 99}))
    body = json.loads(recorder.requests[0].content)
    assert body == {"content": "# Title\\n\\nHello **world**", "wordCount": 3}


def test_update_invalidates_entry_views_and_collections(coordinator, recorder, cache):
    recorder.on("PUT", UPDATE_PATH, lambda r: _wire(title="renamed"))
    seen = _invalidations(cache)
    outcome = asyncio.run(coordinator.update(ENTRY, {"title": "renamed"}))
    assert outcome.confirmed == {"title": "renamed"}
    assert keys.ENTRIES in seen
    assert keys.entry(ENTRY) in seen
    assert keys.entry_by_public_id("pub-5") in seen


def test_update_rejects_unknown_fields_before_sending(coordinator, recorder):
    with pytest.raises(ValidationError):
        asyncio.run(coordinator.update(ENTRY, {"colour": "red"}))
    with pytest.raises(ValidationError):
        asyncio.run(coordinator.update(ENTRY, {"word_count": 3}))
    with pytest.raises(ValidationError):
        asyncio.run(coordinator.update(ENTRY, {"tags": "abc"}))
    with pytest.raises(ValidationError):
        asyncio.run(coordinator.update(ENTRY, {"tags": ["ok", ""]}))
    assert recorder.requests == []


def test_failed_update_leaves_cache_and_state_alone(coordinator, recorder, cache):
    recorder.on("PUT", UPDATE_PATH, lambda r: httpx.Response(500, json={"message": "down"}))
    seen = _invalidations(cache)
    with pytest.raises(ApiError):
        asyncio.run(coordinator.update(ENTRY, {"content": "lost"}))
    assert seen == []
    assert coordinator.confirmed(ENTRY)["content"] == "old"


def test_create_escapes_content_and_invalidates(make_api, recorder, cache):
    recorder.on("POST", "/api/v1/entry", lambda r: {"id": "77", "publicId": "p-77"})
    coordinator = EntryMutationCoordinator(make_api(), cache)
    seen = _invalidations(cache)

    created = asyncio.run(
        coordinator.create(
            {"title": "Day", "content": "one two\nthree", "folder_id": Id(3), "tag_names": ["x"]}
        )
    )

    assert created.id == Id(77)
    body = json.loads(recorder.requests[0].content)
    assert body["content"] == "one two\\nthree"
    assert body["wordCount"] == 3
    assert body["folderId"] == "3"
    assert body["tagNames"] == ["x"]
    assert keys.ENTRIES in seen and keys.TAGS in seen
    assert keys.folder_entries(Id(3)) in seen


def test_create_validation_error_sends_nothing(make_api, recorder, cache):
    coordinator = EntryMutationCoordinator(make_api(), cache)
    with pytest.raises(ValidationError) as exc:
        asyncio.run(coordinator.create({"title": "", "content": "x"}))
    assert exc.value.field_errors == {"title": "Title is required"}
    assert recorder.requests == []


def test_delete_not_found_is_success(coordinator, recorder, cache):
    recorder.on("DELETE", "/api/v1/entry/5", lambda r: httpx.Response(404, json={"message": "gone"}))
    seen = _invalidations(cache)
    asyncio.run(coordinator.delete(ENTRY))
    assert coordinator.confirmed(ENTRY) is None
    assert keys.ENTRIES in seen and keys.TAGS in seen
    assert keys.entry(ENTRY) in seen


def test_move_to_folder_invalidates_old_and_new(coordinator, recorder, cache):
    recorder.on("POST", "/api/v1/entry/5/add-to-folder/2", lambda r: None)
    seen = _invalidations(cache)
    outcome = asyncio.run(coordinator.move_to_folder(ENTRY, Id(2)))
    assert outcome.applied
    assert coordinator.confirmed(ENTRY)["folder_id"] == Id(2)
    assert keys.folder_entries(Id(1)) in seen
    assert keys.folder_entries(Id(2)) in seen
    assert keys.entry(ENTRY) in seen


def test_unfile_uses_dedicated_endpoint(coordinator, recorder):
    recorder.on("DELETE", "/api/v1/entry/5/remove-from-folder", lambda r: None)
    asyncio.run(coordinator.update(ENTRY, {"folder_id": None}))
    assert recorder.paths() == ["DELETE /api/v1/entry/5/remove-from-folder"]
    assert coordinator.confirmed(ENTRY)["folder_id"] is None


def test_move_into_deleted_folder(coordinator, recorder, cache):
    recorder.on(
        "POST", "/api/v1/entry/5/add-to-folder/9", lambda r: httpx.Response(404, json={"message": "no folder"})
    )
    seen = _invalidations(cache)
    with pytest.raises(FolderNotFoundError):
        asyncio.run(coordinator.move_to_folder(ENTRY, Id(9)))
    assert seen == []
    assert coordinator.confirmed(ENTRY)["folder_id"] == Id(1)


def test_incremental_tag_writes_are_all_sent(coordinator, recorder):
    recorder.on("POST", "/api/v1/entry/5/tag/new", lambda r: None)
    recorder.on("DELETE", "/api/v1/entry/5/tag/a", lambda r: None)

    async def run():
        await asyncio.gather(
            coordinator.add_tags(ENTRY, ["b"]),
            coordinator.add_tags(ENTRY, ["c"]),
        )
        await coordinator.remove_tag(ENTRY, "a")

    asyncio.run(run())

    assert len(recorder.requests) == 3
    assert coordinator.confirmed(ENTRY)["tags"] == ["b", "c"]


def test_remove_tag_escapes_name(coordinator, recorder):
    recorder.on("DELETE", "/api/v1/entry/5/tag/a%20b%2Fc", lambda r: None)
    asyncio.run(coordinator.remove_tag(ENTRY, "a b/c"))
    assert recorder.paths() == ["DELETE /api/v1/entry/5/tag/a%20b%2Fc"]


def test_empty_tag_name_rejected(coordinator, recorder):
    with pytest.raises(ValidationError):
        asyncio.run(coordinator.add_tags(ENTRY, [""]))
    assert recorder.requests == []
