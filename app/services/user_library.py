"""Favorites and reading history persisted per user."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..database import upsert_statement
from ..db_models import FavoriteRecord, MangaRecord, ReadingHistoryRecord
from ..models import CachedManga


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass(slots=True)
class FavoriteEntry:
    user_id: str
    manga_id: str
    added_at: datetime
    manga: CachedManga | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "mangaId": self.manga_id,
            "addedAt": _isoformat(self.added_at),
            "manga": self.manga.to_catalog_payload() if self.manga else None,
        }


@dataclass(slots=True)
class HistoryEntry:
    user_id: str
    manga_id: str
    chapter_id: str | None
    progress: int
    last_read_at: datetime
    manga: CachedManga | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "mangaId": self.manga_id,
            "chapterId": self.chapter_id,
            "progress": self.progress,
            "lastReadAt": _isoformat(self.last_read_at),
            "manga": self.manga.to_catalog_payload() if self.manga else None,
        }


def _cached(record: MangaRecord | None) -> CachedManga | None:
    if record is None:
        return None
    return CachedManga.model_validate(record)


class UserLibrary:
    """Stores which manga a user bookmarked and where they stopped reading."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_favorites(self, user_id: str) -> list[FavoriteEntry]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(FavoriteRecord, MangaRecord)
                .outerjoin(MangaRecord, MangaRecord.manga_id == FavoriteRecord.manga_id)
                .where(FavoriteRecord.user_id == user_id)
                .order_by(FavoriteRecord.added_at.desc(), FavoriteRecord.id.desc())
            )
            return [
                FavoriteEntry(
                    user_id=favorite.user_id,
                    manga_id=favorite.manga_id,
                    added_at=favorite.added_at,
                    manga=_cached(manga),
                )
                for favorite, manga in result.all()
            ]

    async def add_favorite(self, user_id: str, manga_id: str) -> FavoriteEntry:
        now = datetime.utcnow()
        async with self._session_factory() as session:
            statement = upsert_statement(
                session,
                FavoriteRecord,
                {"user_id": user_id, "manga_id": manga_id, "added_at": now},
                conflict_columns=("user_id", "manga_id"),
                update_columns=("added_at",),
            )
            await session.execute(statement)
            await session.commit()
        return FavoriteEntry(user_id=user_id, manga_id=manga_id, added_at=now)

    async def remove_favorite(self, user_id: str, manga_id: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(FavoriteRecord).where(
                    FavoriteRecord.user_id == user_id,
                    FavoriteRecord.manga_id == manga_id,
                )
            )
            await session.commit()
            return bool(result.rowcount)

    async def list_history(self, user_id: str, *, limit: int) -> list[HistoryEntry]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ReadingHistoryRecord, MangaRecord)
                .outerjoin(
                    MangaRecord, MangaRecord.manga_id == ReadingHistoryRecord.manga_id
                )
                .where(ReadingHistoryRecord.user_id == user_id)
                .order_by(
                    ReadingHistoryRecord.last_read_at.desc(),
                    ReadingHistoryRecord.id.desc(),
                )
                .limit(limit)
            )
            return [
                HistoryEntry(
                    user_id=entry.user_id,
                    manga_id=entry.manga_id,
                    chapter_id=entry.chapter_id,
                    progress=entry.progress,
                    last_read_at=entry.last_read_at,
                    manga=_cached(manga),
                )
                for entry, manga in result.all()
            ]

    async def record_progress(
        self,
        user_id: str,
        manga_id: str,
        chapter_id: str,
        *,
        progress: int = 0,
    ) -> HistoryEntry:
        """Upsert the reading position for a user/manga pair."""

        now = datetime.utcnow()
        async with self._session_factory() as session:
            statement = upsert_statement(
                session,
                ReadingHistoryRecord,
                {
                    "user_id": user_id,
                    "manga_id": manga_id,
                    "chapter_id": chapter_id,
                    "progress": progress,
                    "last_read_at": now,
                },
                conflict_columns=("user_id", "manga_id"),
                update_columns=("chapter_id", "progress", "last_read_at"),
            )
            await session.execute(statement)
            await session.commit()
        return HistoryEntry(
            user_id=user_id,
            manga_id=manga_id,
            chapter_id=chapter_id,
            progress=progress,
            last_read_at=now,
        )
