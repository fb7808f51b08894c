import sys
from pathlib import Path
from typing import Any, Callable, Dict, List

import httpx
import pytest

# Ensure project root on sys.path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from journal_client.api import JournalApiClient
from journal_client.cache import EntryStateStore, QueryCache
from journal_client.core.settings import Settings
from journal_client.storage import ClientStateStore


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        api_url="http://journal.test",
        api_version="v1",
        state_dir=tmp_path / "state",
        autosave_delay_ms=20,
        _env_file=None,
    )


@pytest.fixture()
def state(settings) -> ClientStateStore:
    return ClientStateStore(settings.state_dir)


def raw_path(request: httpx.Request) -> str:
    """Undecoded request path without the query string."""
    return request.url.raw_path.decode().split("?", 1)[0]


class Recorder:
    """Route table for ``httpx.MockTransport`` that records every request."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.routes: Dict[tuple, Callable[[httpx.Request], Any]] = {}

    def on(self, method: str, path: str, handler: Callable[[httpx.Request], Any]) -> None:
        self.routes[(method, path)] = handler

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, raw_path(request)))
        if handler is None:
            return httpx.Response(404, json={"message": "no route"})
        result = handler(request)
        if hasattr(result, "__await__"):
            result = await result
        if isinstance(result, httpx.Response):
            return result
        return httpx.Response(200, json=result)

    def paths(self) -> List[str]:
        return [f"{r.method} {raw_path(r)}" for r in self.requests]


@pytest.fixture()
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture()
def make_api(settings, state, recorder) -> Callable[..., JournalApiClient]:
    def _make(**kwargs: Any) -> JournalApiClient:
        return JournalApiClient(
            settings,
            state,
            transport=httpx.MockTransport(recorder),
            **kwargs,
        )

    return _make


@pytest.fixture()
def cache() -> QueryCache:
    return QueryCache()


@pytest.fixture()
def entry_state() -> EntryStateStore:
    return EntryStateStore()
