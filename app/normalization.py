"""Pure helpers that flatten MangaDex localized fields into plain values."""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

UNTITLED = "Untitled"
TITLE_LANGUAGES: tuple[str, ...] = ("en", "ja-ro")
DESCRIPTION_LANGUAGES: tuple[str, ...] = ("en",)
MAX_TAGS = 5
NON_MANGA_MARKERS: tuple[str, ...] = ("manhwa", "manhua")


def resolve_localized(
    mapping: Mapping[str, str] | None,
    preferred: Sequence[str],
    fallback: str,
) -> str:
    """Return the first non-empty value following ``preferred`` language order.

    When none of the preferred languages carries a value, the first non-empty
    value of ``mapping`` in iteration order is used, then ``fallback``.
    """

    if not mapping:
        return fallback
    for language in preferred:
        value = mapping.get(language)
        if value:
            return value
    for value in mapping.values():
        if value:
            return value
    return fallback


def normalize_title(titles: Mapping[str, str] | None) -> str:
    return resolve_localized(titles, TITLE_LANGUAGES, UNTITLED)


def normalize_description(descriptions: Mapping[str, str] | None) -> str:
    return resolve_localized(descriptions, DESCRIPTION_LANGUAGES, "")


def normalize_tags(tag_names: Sequence[Mapping[str, str]]) -> list[str]:
    """Return English names of the first five tags, skipping unnamed ones."""

    tags: list[str] = []
    for names in tag_names[:MAX_TAGS]:
        english = (names or {}).get("en")
        if english:
            tags.append(english)
    return tags


def is_manhwa_or_manhua(tag_names: Iterable[Mapping[str, str]]) -> bool:
    """Guess whether a title is Korean or Chinese from its English tag names.

    Tag language coverage is uneven upstream, so a ``False`` result only means
    no marker was found.
    """

    for names in tag_names:
        english = ((names or {}).get("en") or "").lower()
        if any(marker in english for marker in NON_MANGA_MARKERS):
            return True
    return False
