"""One-time population of the local cache from the MangaDex popular listing."""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy.exc import SQLAlchemyError

from ..config import Settings
from ..models import BootstrapReport, CachedManga, CatalogManga
from .manga_store import MangaStore
from .mangadex import MangaDexClient

logger = logging.getLogger(__name__)

ALREADY_INITIALIZED_MESSAGE = "Popular manga already initialized"


class BootstrapService:
    """Fills an empty manga cache with the most followed MangaDex titles.

    The pipeline runs at most once while the cache holds records: a non-empty
    store short-circuits before any network call. Runs inside one process are
    serialised by a lock; across processes the unique ``manga_id`` constraint
    turns duplicate inserts into overwrites.
    """

    def __init__(
        self,
        settings: Settings,
        catalog: MangaDexClient,
        store: MangaStore,
    ):
        self._settings = settings
        self._catalog = catalog
        self._store = store
        self._lock = asyncio.Lock()

    async def should_populate(self) -> bool:
        return await self._store.count() == 0

    async def build_entry(self, item: CatalogManga) -> CachedManga:
        """Normalise ``item`` and attach its cover, tolerating cover failures."""

        cover = await self._catalog.resolve_cover(item.id)
        if not cover.ok:
            logger.warning("Could not get cover for %s: %s", item.id, cover.error)
        return CachedManga.from_catalog(item, cover_url=cover.cover_url)

    async def run(self) -> BootstrapReport:
        async with self._lock:
            if not await self.should_populate():
                existing = await self._store.count()
                return BootstrapReport(
                    message=ALREADY_INITIALIZED_MESSAGE,
                    count=existing,
                    initialized=False,
                )
            return await self._populate()

    async def _populate(self) -> BootstrapReport:
        batch_size = self._settings.bootstrap_batch_size
        logger.info("Initializing %s popular manga...", batch_size)

        # A failure here propagates before anything is written, so the next
        # invocation sees an empty store and retries.
        items = await self._catalog.fetch_popular(batch_size, offset=0)

        written = 0
        failed = 0
        for item in items[:batch_size]:
            entry = await self.build_entry(item)
            try:
                await self._store.upsert(entry)
            except SQLAlchemyError:
                failed += 1
                logger.exception("Failed to store manga %s", entry.manga_id)
                continue
            written += 1

        saved_count = await self._store.count()
        if failed:
            logger.warning(
                "Bootstrap stored %s of %s manga (%s failed)",
                written,
                len(items),
                failed,
            )
        logger.info("Successfully initialized %s popular manga", saved_count)
        return BootstrapReport(
            message=f"Successfully initialized {saved_count} popular manga",
            count=saved_count,
            initialized=True,
            written=written,
            failed=failed,
        )
