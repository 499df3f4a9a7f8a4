"""Persistence helpers for the cached popular-manga collection."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..database import upsert_statement
from ..db_models import MangaRecord
from ..models import CachedManga

_UPDATE_COLUMNS = (
    "title",
    "description",
    "status",
    "year",
    "tags",
    "cover_url",
    "updated_at",
)


class MangaStore:
    """Read/write access to cached manga keyed by their MangaDex identifier."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def count(self) -> int:
        async with self._session_factory() as session:
            result = await session.scalar(
                select(func.count()).select_from(MangaRecord)
            )
            return int(result or 0)

    async def upsert(self, entry: CachedManga) -> None:
        """Insert or overwrite the entry identified by ``entry.manga_id``."""

        values = {
            "manga_id": entry.manga_id,
            "title": entry.title,
            "description": entry.description,
            "status": entry.status,
            "year": entry.year,
            "tags": list(entry.tags),
            "cover_url": entry.cover_url,
            "updated_at": datetime.utcnow(),
        }
        async with self._session_factory() as session:
            statement = upsert_statement(
                session,
                MangaRecord,
                values,
                conflict_columns=("manga_id",),
                update_columns=_UPDATE_COLUMNS,
            )
            await session.execute(statement)
            await session.commit()

    async def get(self, manga_id: str) -> CachedManga | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(MangaRecord).where(MangaRecord.manga_id == manga_id)
            )
            record = result.scalar_one_or_none()
            if record is None:
                return None
            return CachedManga.model_validate(record)

    async def list_recent(self, limit: int) -> list[CachedManga]:
        """Return cached entries, newest first."""

        async with self._session_factory() as session:
            result = await session.execute(
                select(MangaRecord)
                .order_by(MangaRecord.created_at.desc(), MangaRecord.id.desc())
                .limit(limit)
            )
            return [CachedManga.model_validate(record) for record in result.scalars()]
