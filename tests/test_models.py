from app.models import BootstrapReport, CachedManga, CatalogManga, CoverResult


def _payload() -> dict:
    return {
        "id": "manga-1",
        "type": "manga",
        "attributes": {
            "title": {"ja-ro": "Shingeki no Kyojin"},
            "description": [],
            "status": "completed",
            "year": 2009,
            "tags": [
                {"id": "t1", "attributes": {"name": {"en": "Action"}}},
                {"id": "t2", "attributes": {"name": []}},
                {"id": "t3", "attributes": {"name": {"en": "Drama"}}},
            ],
        },
        "relationships": [
            {"id": "author-1", "type": "author"},
            {
                "id": "cover-1",
                "type": "cover_art",
                "attributes": {"fileName": "cover.jpg"},
            },
        ],
    }


def test_catalog_manga_from_payload_tolerates_list_maps():
    item = CatalogManga.from_payload(_payload())

    assert item.id == "manga-1"
    assert item.title == {"ja-ro": "Shingeki no Kyojin"}
    assert item.description == {}
    assert item.year == 2009
    assert [tag.name for tag in item.tags] == [{"en": "Action"}, {}, {"en": "Drama"}]
    assert item.cover_file_name == "cover.jpg"


def test_cached_manga_from_catalog_applies_defaults():
    item = CatalogManga.from_payload({"id": "bare", "attributes": {"title": {}}})
    entry = CachedManga.from_catalog(item)

    assert entry.manga_id == "bare"
    assert entry.title == "Untitled"
    assert entry.description == ""
    assert entry.status == "unknown"
    assert entry.year == 0
    assert entry.tags == []
    assert entry.cover_url == ""


def test_cached_manga_catalog_payload_shape():
    entry = CachedManga.from_catalog(
        CatalogManga.from_payload(_payload()), cover_url="https://covers/x.jpg"
    )

    assert entry.to_catalog_payload() == {
        "id": "manga-1",
        "attributes": {
            "title": {"en": "Shingeki no Kyojin"},
            "description": {"en": ""},
            "status": "completed",
            "year": 2009,
            "tags": ["Action", "Drama"],
            "coverUrl": "https://covers/x.jpg",
        },
    }


def test_cover_result_variants():
    assert CoverResult.found("https://x").cover_url == "https://x"
    assert CoverResult.missing().ok
    assert CoverResult.missing().cover_url == ""
    failed = CoverResult.failed("boom")
    assert not failed.ok
    assert failed.cover_url == ""


def test_bootstrap_report_payload():
    report = BootstrapReport(message="done", count=3, initialized=True, written=3)

    assert report.to_payload() == {"message": "done", "count": 3}
