"""Application configuration models."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Annotated, Iterable, Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_CONTENT_RATINGS: tuple[str, ...] = ("safe", "suggestive")
KNOWN_CONTENT_RATINGS: frozenset[str] = frozenset(
    {"safe", "suggestive", "erotica", "pornographic"}
)


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="MangaShelf", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    mangadex_api_url: HttpUrl = Field(
        default="https://api.mangadex.org", alias="MANGADEX_API_URL"
    )
    mangadex_uploads_url: HttpUrl = Field(
        default="https://uploads.mangadex.org", alias="MANGADEX_UPLOADS_URL"
    )
    http_timeout_seconds: float = Field(
        default=20.0, alias="HTTP_TIMEOUT", gt=0, le=300
    )
    http_connect_timeout_seconds: float = Field(
        default=10.0, alias="HTTP_CONNECT_TIMEOUT", gt=0, le=120
    )

    bootstrap_batch_size: int = Field(
        default=50, alias="BOOTSTRAP_BATCH_SIZE", ge=1, le=100
    )
    popular_offset_window: int = Field(
        default=100, alias="POPULAR_OFFSET_WINDOW", ge=1, le=10_000
    )
    content_ratings: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_CONTENT_RATINGS, alias="CONTENT_RATINGS"
    )
    search_result_limit: int = Field(
        default=10, alias="SEARCH_RESULT_LIMIT", ge=1, le=100
    )
    popular_list_max: int = Field(default=100, alias="POPULAR_LIST_MAX", ge=1)
    history_list_limit: int = Field(
        default=20, alias="HISTORY_LIST_LIMIT", ge=1, le=500
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./mangashelf.db", alias="DATABASE_URL"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("content_ratings", mode="before")
    @classmethod
    def _parse_content_ratings(cls, value: object) -> tuple[str, ...]:
        """Normalise content rating selections from environment values."""

        if value is None:
            return DEFAULT_CONTENT_RATINGS
        if isinstance(value, str):
            raw_values = [part.strip() for part in value.split(",")]
        elif isinstance(value, Iterable):
            raw_values = [str(part).strip() for part in value]
        else:
            raise TypeError("CONTENT_RATINGS must be a string or iterable of strings")

        cleaned: list[str] = []
        for entry in raw_values:
            rating = entry.lower()
            if not rating:
                continue
            if rating not in KNOWN_CONTENT_RATINGS:
                raise ValueError("Unknown content ratings configured")
            if rating not in cleaned:
                cleaned.append(rating)
        if not cleaned:
            return DEFAULT_CONTENT_RATINGS
        return tuple(cleaned)

    @field_validator("log_level", mode="before")
    @classmethod
    def _parse_log_level(cls, value: object) -> str:
        level = str(value or "INFO").strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError("Unknown log level configured")
        return level

    @property
    def uploads_base_url(self) -> str:
        """Return the cover upload host without a trailing slash."""

        return str(self.mangadex_uploads_url).rstrip("/")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
