from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx
import pytest

from cf2mr.config import ConvertSettings
from cf2mr.models import FileRecord, ReleaseRecord, SearchHit, SourceReference
from cf2mr.modrinth import ModrinthClient


class ScriptedOperator:
    """Answers prompts from a fixed script and records what it was asked."""

    def __init__(self, choices: Sequence[int] = (), confirm: bool = True) -> None:
        self._choices = list(choices)
        self._confirm = confirm
        self.prompts: List[Dict[str, Any]] = []
        self.confirmations: List[str] = []

    def confirm(self, message: str, *, default: bool = False) -> bool:
        self.confirmations.append(message)
        return self._confirm

    def choose(self, title: str, options: Sequence[str], *, default: int = 0) -> int:
        self.prompts.append({"title": title, "options": list(options), "default": default})
        if not self._choices:
            raise AssertionError(f"Unexpected prompt: {title}")
        return self._choices.pop(0)


class FakeClient:
    """Stands in for ModrinthClient with canned search hits and releases."""

    def __init__(
        self,
        hits: Optional[Dict[str, List[SearchHit]]] = None,
        filtered: Optional[Dict[str, List[ReleaseRecord]]] = None,
        unfiltered: Optional[Dict[str, List[ReleaseRecord]]] = None,
    ) -> None:
        self.hits = hits or {}
        self.filtered = filtered or {}
        self.unfiltered = unfiltered or {}
        self.rate_limit_remaining: Optional[int] = None
        self.version_calls: List[Dict[str, Any]] = []
        self.searches: List[str] = []

    async def search(self, query: str) -> List[SearchHit]:
        self.searches.append(query)
        return list(self.hits.get(query, []))

    async def list_versions(self, project_id, *, loaders=None, game_versions=None):
        self.version_calls.append(
            {"project_id": project_id, "loaders": loaders, "game_versions": game_versions}
        )
        if loaders or game_versions:
            return list(self.filtered.get(project_id, []))
        return list(self.unfiltered.get(project_id, []))


def make_ref(position: int, name: str, author: str, url: Optional[str] = None) -> SourceReference:
    return SourceReference(position=position, name=name, author=author, source_url=url)


def make_hit(project_id: str, title: str, author: str, project_type: str = "mod") -> SearchHit:
    return SearchHit(
        project_id=project_id,
        title=title,
        author=author,
        project_type=project_type,
        slug=title.lower().replace(" ", "-"),
    )


def make_file(filename: str, primary: bool = False) -> FileRecord:
    return FileRecord(
        filename=filename,
        url=f"https://cdn.modrinth.com/data/x/{filename}",
        sha1=f"sha1-{filename}",
        sha512=f"sha512-{filename}",
        size_bytes=1024,
        is_primary=primary,
    )


def make_release(release_id: str, *files: FileRecord, versions=("1.20.1",), loaders=("forge",)) -> ReleaseRecord:
    return ReleaseRecord(
        release_id=release_id,
        game_versions=list(versions),
        loaders=list(loaders),
        files=list(files),
        version_number=f"v-{release_id}",
    )


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def settings(tmp_path) -> ConvertSettings:
    return ConvertSettings(output=tmp_path / "modrinth.index.json", chunk_size=2, cooldown_seconds=60)


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def mock_modrinth(settings) -> Callable[[Callable[[httpx.Request], httpx.Response]], ModrinthClient]:
    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> ModrinthClient:
        return ModrinthClient(settings, transport=httpx.MockTransport(handler))

    return factory


def json_response(payload: Any, status: int = 200, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
    return httpx.Response(status, content=json.dumps(payload).encode("utf-8"), headers=headers or {})
