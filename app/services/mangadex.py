"""Utilities for communicating with the MangaDex catalog API."""

from __future__ import annotations

import logging
import random
from typing import Any

import httpx

from ..config import Settings
from ..models import CatalogManga, CoverResult

logger = logging.getLogger(__name__)


class CatalogRequestError(Exception):
    """Raised when a MangaDex request fails or returns a non-2xx status.

    ``status_code`` is ``None`` for transport failures (DNS, timeouts, resets).
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


class MangaDexClient:
    """Thin wrapper around the MangaDex HTTP API."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        *,
        rng: random.Random | None = None,
    ):
        self._settings = settings
        self._client = http_client
        self._rng = rng or random.Random()

    async def _get_json(
        self, path: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise CatalogRequestError(
                f"MangaDex request to {path} failed: {exc.__class__.__name__}"
            ) from exc

        if response.status_code >= 400:
            raise CatalogRequestError(
                f"MangaDex request to {path} returned {response.status_code}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise CatalogRequestError(
                f"MangaDex response from {path} was not valid JSON",
                status_code=response.status_code,
            ) from exc
        if not isinstance(payload, dict):
            raise CatalogRequestError(
                f"MangaDex response from {path} was not an object",
                status_code=response.status_code,
            )
        return payload

    def _popular_params(self, limit: int, offset: int) -> dict[str, Any]:
        return {
            "includes[]": "cover_art",
            "contentRating[]": list(self._settings.content_ratings),
            "order[followedCount]": "desc",
            "limit": limit,
            "offset": offset,
        }

    async def fetch_popular(
        self,
        limit: int,
        *,
        offset: int = 0,
        content_type: str | None = None,
    ) -> list[CatalogManga]:
        """Return up to ``limit`` titles ordered by follower count.

        Items keep the order MangaDex returned them in. With
        ``content_type="manga"`` titles tagged as manhwa or manhua are dropped
        before truncating.
        """

        if limit <= 0:
            raise ValueError("limit must be positive")

        payload = await self._get_json("/manga", self._popular_params(limit, offset))
        raw_items = payload.get("data") or []
        if not isinstance(raw_items, list):
            raise CatalogRequestError("MangaDex popular listing had no data array")

        items: list[CatalogManga] = []
        for entry in raw_items:
            if not isinstance(entry, dict) or not entry.get("id"):
                logger.warning("Skipping malformed MangaDex entry: %r", entry)
                continue
            items.append(CatalogManga.from_payload(entry))

        if content_type == "manga":
            items = [item for item in items if not item.is_manhwa_or_manhua()]
        return items[:limit]

    async def fetch_discover(
        self, limit: int, *, content_type: str | None = None
    ) -> list[CatalogManga]:
        """Return popular titles from a random offset to vary results."""

        offset = self._rng.randrange(self._settings.popular_offset_window)
        return await self.fetch_popular(
            limit, offset=offset, content_type=content_type
        )

    async def resolve_cover(self, manga_id: str) -> CoverResult:
        """Look up the first cover for ``manga_id``; failures are returned, not raised."""

        try:
            payload = await self._get_json(
                "/cover", {"manga[]": manga_id, "limit": 1}
            )
        except CatalogRequestError as exc:
            return CoverResult.failed(str(exc))
        except Exception as exc:
            logger.exception("Unexpected error looking up cover for %s", manga_id)
            return CoverResult.failed(f"{exc.__class__.__name__}: {exc}")

        records = payload.get("data")
        if not isinstance(records, list) or not records:
            return CoverResult.missing()
        first = records[0]
        attributes = first.get("attributes") if isinstance(first, dict) else None
        file_name = attributes.get("fileName") if isinstance(attributes, dict) else None
        if not isinstance(file_name, str) or not file_name:
            return CoverResult.failed("Cover record without a file name")
        return CoverResult.found(self.cover_url(manga_id, file_name))

    def cover_url(self, manga_id: str, file_name: str) -> str:
        return f"{self._settings.uploads_base_url}/covers/{manga_id}/{file_name}"

    async def search(self, title: str, *, limit: int | None = None) -> dict[str, Any]:
        """Search MangaDex by title and return the raw response payload."""

        resolved_limit = limit or self._settings.search_result_limit
        return await self._get_json("/manga", {"title": title, "limit": resolved_limit})

    async def get_manga(self, manga_id: str) -> dict[str, Any]:
        """Fetch a single manga by identifier and return the raw payload."""

        return await self._get_json(f"/manga/{manga_id}")
