from __future__ import annotations

import asyncio

from app.database import Database
from app.models import CachedManga
from app.services.manga_store import MangaStore


def _entry(manga_id: str, **overrides) -> CachedManga:
    data = {"manga_id": manga_id, "title": f"Title {manga_id}"}
    data.update(overrides)
    return CachedManga(**data)


def test_upsert_keeps_one_record_per_manga_id(tmp_path) -> None:
    """Repeated upserts of the same key overwrite instead of duplicating."""

    async def runner() -> None:
        database = Database(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
        await database.create_all()
        store = MangaStore(database.session_factory)

        for manga_id in ("a", "b", "a", "c", "b", "a"):
            await store.upsert(_entry(manga_id))
        await asyncio.gather(
            *(store.upsert(_entry("c", title=f"Racing {index}")) for index in range(5))
        )

        assert await store.count() == 3
        entry = await store.get("c")
        assert entry is not None
        assert entry.title.startswith("Racing")

        await database.dispose()

    asyncio.run(runner())


def test_upsert_overwrites_fields_and_refreshes_timestamp(tmp_path) -> None:
    async def runner() -> None:
        database = Database(f"sqlite+aiosqlite:///{tmp_path / 'overwrite.db'}")
        await database.create_all()
        store = MangaStore(database.session_factory)

        await store.upsert(_entry("a", tags=["Action"], cover_url="https://x/1.jpg"))
        first = await store.get("a")
        await store.upsert(_entry("a", title="Renamed", year=2020))
        second = await store.get("a")

        assert first is not None and second is not None
        assert second.title == "Renamed"
        assert second.year == 2020
        assert second.tags == []
        assert second.cover_url == ""
        assert second.updated_at is not None and first.updated_at is not None
        assert second.updated_at >= first.updated_at

        await database.dispose()

    asyncio.run(runner())


def test_list_recent_and_missing_lookup(tmp_path) -> None:
    async def runner() -> None:
        database = Database(f"sqlite+aiosqlite:///{tmp_path / 'list.db'}")
        await database.create_all()
        store = MangaStore(database.session_factory)

        assert await store.count() == 0
        assert await store.get("nope") is None
        for manga_id in ("first", "second", "third"):
            await store.upsert(_entry(manga_id))

        recent = await store.list_recent(2)

        assert [entry.manga_id for entry in recent] == ["third", "second"]

        await database.dispose()

    asyncio.run(runner())
