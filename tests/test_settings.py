"""Configuration settings behaviour tests."""

from __future__ import annotations

import pytest

from app.config import DEFAULT_CONTENT_RATINGS, Settings


def test_defaults_match_mangadex() -> None:
    settings = Settings(_env_file=None)

    assert settings.bootstrap_batch_size == 50
    assert settings.popular_offset_window == 100
    assert settings.content_ratings == DEFAULT_CONTENT_RATINGS
    assert settings.uploads_base_url == "https://uploads.mangadex.org"


def test_content_ratings_parsed_from_comma_separated_values() -> None:
    settings = Settings(_env_file=None, CONTENT_RATINGS="Safe, suggestive ,safe")

    assert settings.content_ratings == ("safe", "suggestive")


def test_content_ratings_blank_defaults() -> None:
    settings = Settings(_env_file=None, CONTENT_RATINGS="")

    assert settings.content_ratings == DEFAULT_CONTENT_RATINGS


def test_content_ratings_invalid_raises() -> None:
    with pytest.raises(ValueError, match="Unknown content ratings configured"):
        Settings(_env_file=None, CONTENT_RATINGS="spicy")


def test_batch_size_bounds_enforced() -> None:
    with pytest.raises(ValueError):
        Settings(_env_file=None, BOOTSTRAP_BATCH_SIZE=0)


def test_log_level_is_normalised() -> None:
    assert Settings(_env_file=None, LOG_LEVEL="debug").log_level == "DEBUG"
    with pytest.raises(ValueError, match="Unknown log level configured"):
        Settings(_env_file=None, LOG_LEVEL="chatty")


def test_content_ratings_read_from_comma_separated_environment(monkeypatch) -> None:
    monkeypatch.setenv("CONTENT_RATINGS", "safe,suggestive,erotica")

    settings = Settings(_env_file=None)

    assert settings.content_ratings == ("safe", "suggestive", "erotica")


def test_content_ratings_environment_blank_defaults(monkeypatch) -> None:
    monkeypatch.setenv("CONTENT_RATINGS", "")

    assert Settings(_env_file=None).content_ratings == DEFAULT_CONTENT_RATINGS
