"""Pydantic models describing catalog payloads."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .normalization import (
    is_manhwa_or_manhua,
    normalize_description,
    normalize_tags,
    normalize_title,
)


def _clean_localized(value: object) -> dict[str, str]:
    """Coerce a MangaDex localized map into ``{language: text}``.

    MangaDex serialises empty maps as ``[]`` and occasionally nests ``null``.
    """

    if not isinstance(value, dict):
        return {}
    return {
        str(language): text
        for language, text in value.items()
        if isinstance(text, str)
    }


class CatalogTag(BaseModel):
    """A MangaDex tag reduced to its localized names."""

    id: str | None = None
    name: dict[str, str] = Field(default_factory=dict)

    @field_validator("name", mode="before")
    @classmethod
    def _normalise_name(cls, value: object) -> dict[str, str]:
        return _clean_localized(value)

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "CatalogTag":
        attributes = data.get("attributes") or {}
        if not isinstance(attributes, dict):
            attributes = {}
        return cls(id=data.get("id"), name=attributes.get("name"))


class CatalogManga(BaseModel):
    """Read-only view of a manga as returned by the MangaDex ``/manga`` API."""

    id: str
    title: dict[str, str] = Field(default_factory=dict)
    description: dict[str, str] = Field(default_factory=dict)
    status: str | None = None
    year: int | None = None
    tags: list[CatalogTag] = Field(default_factory=list)
    cover_file_name: str | None = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def _normalise_localized(cls, value: object) -> dict[str, str]:
        return _clean_localized(value)

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "CatalogManga":
        attributes = data.get("attributes") or {}
        if not isinstance(attributes, dict):
            attributes = {}
        raw_tags = attributes.get("tags") or []
        tags = [
            CatalogTag.from_payload(entry)
            for entry in raw_tags
            if isinstance(entry, dict)
        ]

        cover_file_name: str | None = None
        for relationship in data.get("relationships") or []:
            if not isinstance(relationship, dict):
                continue
            if relationship.get("type") != "cover_art":
                continue
            cover_attributes = relationship.get("attributes") or {}
            if isinstance(cover_attributes, dict):
                cover_file_name = cover_attributes.get("fileName") or None
            break

        year = attributes.get("year")
        return cls(
            id=str(data["id"]),
            title=attributes.get("title"),
            description=attributes.get("description"),
            status=attributes.get("status") or None,
            year=year if isinstance(year, int) else None,
            tags=tags,
            cover_file_name=cover_file_name,
        )

    def tag_names(self) -> list[dict[str, str]]:
        return [tag.name for tag in self.tags]

    def is_manhwa_or_manhua(self) -> bool:
        return is_manhwa_or_manhua(self.tag_names())


class CachedManga(BaseModel):
    """Normalized manga entry as persisted in the local cache."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    manga_id: str = Field(validation_alias=AliasChoices("manga_id", "mangaId"))
    title: str
    description: str = ""
    status: str = "unknown"
    year: int = 0
    tags: list[str] = Field(default_factory=list)
    cover_url: str = Field(
        default="", validation_alias=AliasChoices("cover_url", "coverUrl")
    )
    updated_at: datetime | None = None

    @classmethod
    def from_catalog(cls, item: CatalogManga, *, cover_url: str = "") -> "CachedManga":
        """Flatten a catalog item into its cached representation."""

        return cls(
            manga_id=item.id,
            title=normalize_title(item.title),
            description=normalize_description(item.description),
            status=item.status or "unknown",
            year=item.year or 0,
            tags=normalize_tags(item.tag_names()),
            cover_url=cover_url,
        )

    def to_catalog_payload(self) -> dict[str, Any]:
        """Return the MangaDex-like listing shape consumed by the front-end."""

        return {
            "id": self.manga_id,
            "attributes": {
                "title": {"en": self.title},
                "description": {"en": self.description or ""},
                "status": self.status,
                "year": self.year,
                "tags": list(self.tags),
                "coverUrl": self.cover_url,
            },
        }


@dataclass(slots=True, frozen=True)
class CoverResult:
    """Outcome of a cover lookup: a URL, nothing, or a tolerated failure."""

    url: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def cover_url(self) -> str:
        return self.url or ""

    @classmethod
    def found(cls, url: str) -> "CoverResult":
        return cls(url=url)

    @classmethod
    def missing(cls) -> "CoverResult":
        return cls()

    @classmethod
    def failed(cls, reason: str) -> "CoverResult":
        return cls(error=reason)


@dataclass(slots=True)
class BootstrapReport:
    """Summary returned once the popular-manga bootstrap has finished."""

    message: str
    count: int
    initialized: bool
    written: int = 0
    failed: int = 0

    def to_payload(self) -> dict[str, Any]:
        return {"message": self.message, "count": self.count}


class FavoriteCreate(BaseModel):
    """Request body for bookmarking a manga."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(
        default=None, validation_alias=AliasChoices("userId", "user_id")
    )
    manga_id: str | None = Field(
        default=None, validation_alias=AliasChoices("mangaId", "manga_id")
    )


class HistoryUpdate(BaseModel):
    """Request body for recording reading progress."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(
        default=None, validation_alias=AliasChoices("userId", "user_id")
    )
    manga_id: str | None = Field(
        default=None, validation_alias=AliasChoices("mangaId", "manga_id")
    )
    chapter_id: str | None = Field(
        default=None, validation_alias=AliasChoices("chapterId", "chapter_id")
    )
    page: int | None = Field(
        default=None, validation_alias=AliasChoices("page", "progress")
    )
