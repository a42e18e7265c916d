from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from .config import ConvertSettings
from .models import FileRecord, ReleaseRecord, SearchHit

logger = logging.getLogger(__name__)

RATE_LIMIT_NOTICE = (
    "This will contact the Modrinth API, which limits queries to 300 a minute, per IP address."
)
RATE_LIMIT_DOCS = "https://docs.modrinth.com/api-spec/#section/Ratelimits"


class ModrinthError(RuntimeError):
    """Raised when the Modrinth API cannot be reached or returns an unusable payload."""


class ModrinthClient:
    """Thin async wrapper over the two Modrinth endpoints the converter needs."""

    def __init__(
        self,
        settings: ConvertSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        self.rate_limit_remaining: Optional[int] = None
        self._client = httpx.AsyncClient(
            base_url=settings.api_base,
            headers={
                "User-Agent": settings.api_user_agent,
                "Accept": "application/json",
            },
            timeout=httpx.Timeout(settings.request_timeout),
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> "ModrinthClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def search(self, query: str) -> List[SearchHit]:
        data = await self._get_json("/search", params={"query": query})
        if not isinstance(data, dict):
            raise ModrinthError(f"Unexpected search payload for '{query}'.")
        hits = [_hit_from_payload(item) for item in data.get("hits") or []]
        logger.debug("Search '%s' returned %d of %s hit(s)", query, len(hits), data.get("total_hits"))
        return hits

    async def list_versions(
        self,
        project_id: str,
        *,
        loaders: Optional[Sequence[str]] = None,
        game_versions: Optional[Sequence[str]] = None,
    ) -> List[ReleaseRecord]:
        params: Dict[str, str] = {}
        # Modrinth expects JSON arrays for list filters.
        if loaders:
            params["loaders"] = json.dumps(list(loaders))
        if game_versions:
            params["game_versions"] = json.dumps(list(game_versions))
        data = await self._get_json(f"/project/{project_id}/version", params=params or None)
        if not isinstance(data, list):
            raise ModrinthError(f"Unexpected version payload for project {project_id}.")
        return [_release_from_payload(item) for item in data]

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise ModrinthError(f"Network error fetching {path}: {exc}") from exc

        self._record_rate_limit(response)
        if response.status_code >= 400:
            message = response.text.strip() or response.reason_phrase
            raise ModrinthError(f"HTTP {response.status_code} error fetching {path}: {message}")

        try:
            return response.json()
        except ValueError as exc:
            raise ModrinthError(f"Invalid JSON payload from {path}: {exc}") from exc

    def _record_rate_limit(self, response: httpx.Response) -> None:
        remaining = response.headers.get("x-ratelimit-remaining")
        if remaining is None:
            return
        try:
            self.rate_limit_remaining = int(remaining)
        except ValueError:
            logger.debug("Ignoring malformed rate limit header %r", remaining)


def _hit_from_payload(item: Dict[str, Any]) -> SearchHit:
    return SearchHit(
        project_id=str(item.get("project_id") or ""),
        title=item.get("title") or "",
        author=item.get("author") or "",
        project_type=item.get("project_type") or "mod",
        slug=item.get("slug") or str(item.get("project_id") or ""),
    )


def _file_from_payload(item: Dict[str, Any]) -> FileRecord:
    hashes = item.get("hashes") or {}
    return FileRecord(
        filename=item.get("filename") or "",
        url=item.get("url") or "",
        sha1=hashes.get("sha1") or "",
        sha512=hashes.get("sha512") or "",
        size_bytes=int(item.get("size") or 0),
        is_primary=bool(item.get("primary")),
    )


def _release_from_payload(item: Dict[str, Any]) -> ReleaseRecord:
    return ReleaseRecord(
        release_id=str(item.get("id") or ""),
        game_versions=list(item.get("game_versions") or []),
        loaders=list(item.get("loaders") or []),
        files=[_file_from_payload(file) for file in item.get("files") or []],
        version_number=item.get("version_number"),
    )
