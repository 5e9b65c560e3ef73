from datetime import datetime, timedelta, timezone

import pytest

from proxy_api.domain.enrichment import (
    NEW,
    OFFICIAL,
    POPULAR,
    TOP_RATED,
    WELL_REVIEWED,
    as_utc,
    compute_badges,
    decode_document,
    enrich_row,
    quality_score,
)
from proxy_api.errors import DecodeError

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _make_row(**overrides):
    row = {
        "server_name": "io.example/alpha",
        "value": '{"name": "io.example/alpha", "description": "Alpha", "packages": []}',
        "published_at": datetime(2026, 1, 1, 8, 30),
        "updated_at": datetime(2026, 2, 1, 8, 30),
        "rating": 4.5,
        "rating_count": 10,
        "installation_count": 100,
    }
    row.update(overrides)
    return row


def test_quality_score_blends_rating_reviews_and_installs() -> None:
    assert quality_score(4.5, 10, 100) == 66.5
    assert quality_score(0, 0, 0) == 0.0
    assert quality_score(5, 10**6, 10**6) == 100.0


def test_badges_are_emitted_in_fixed_order() -> None:
    document = {"packages": [{"identifier": "@modelcontextprotocol/server-git"}]}

    badges = compute_badges(
        document,
        rating=5.0,
        rating_count=60,
        installation_count=250,
        published_at=NOW - timedelta(days=1),
        now=NOW,
    )

    assert badges == (TOP_RATED, POPULAR, WELL_REVIEWED, OFFICIAL, NEW)


@pytest.mark.parametrize(
    ("rating", "rating_count", "installation_count", "expected"),
    [
        (4.9, 9, 0, ()),
        (4.5, 10, 0, (TOP_RATED,)),
        (4.4, 100, 0, (WELL_REVIEWED,)),
        (0.0, 0, 99, ()),
        (0.0, 0, 100, (POPULAR,)),
    ],
)
def test_badge_thresholds(rating, rating_count, installation_count, expected) -> None:
    badges = compute_badges(
        {},
        rating=rating,
        rating_count=rating_count,
        installation_count=installation_count,
        published_at=NOW - timedelta(days=30),
        now=NOW,
    )

    assert badges == expected


def test_new_badge_window() -> None:
    recent = compute_badges({}, rating=0, rating_count=0, installation_count=0, published_at=NOW - timedelta(days=6), now=NOW)
    old = compute_badges({}, rating=0, rating_count=0, installation_count=0, published_at=NOW - timedelta(days=8), now=NOW)

    assert recent == (NEW,)
    assert old == ()


def test_official_badge_ignores_malformed_packages() -> None:
    document = {"packages": ["@modelcontextprotocol/x", {"identifier": 7}, {"identifier": "other"}]}

    badges = compute_badges(document, rating=0, rating_count=0, installation_count=0, published_at=NOW - timedelta(days=30), now=NOW)

    assert OFFICIAL not in badges


def test_decode_document_accepts_text_bytes_and_mappings() -> None:
    assert decode_document("a", '{"x": 1}') == {"x": 1}
    assert decode_document("a", b'{"x": 1}') == {"x": 1}
    assert decode_document("a", {"x": 1}) == {"x": 1}


@pytest.mark.parametrize("raw", ["{not json", "[1, 2]", b"\xff\xfe", None, 42])
def test_decode_document_hard_fails(raw) -> None:
    with pytest.raises(DecodeError) as excinfo:
        decode_document("io.example/broken", raw)

    assert excinfo.value.document_id == "io.example/broken"


def test_enrich_row_treats_naive_timestamps_as_utc() -> None:
    record = enrich_row(_make_row(), now=NOW)

    assert record.published_at == datetime(2026, 1, 1, 8, 30, tzinfo=timezone.utc)
    assert record.updated_at.tzinfo is timezone.utc
    assert record.quality_score == 66.5
    assert record.badges == (TOP_RATED, POPULAR)
    assert record.trending_score is None


def test_enrich_row_defaults_missing_aggregate_to_zero() -> None:
    record = enrich_row(_make_row(rating=None, rating_count=None, installation_count=None), now=NOW)

    assert (record.rating, record.rating_count, record.installation_count) == (0.0, 0, 0)
    assert record.quality_score == 0.0


def test_to_dict_overlays_enrichment_on_document() -> None:
    record = enrich_row(_make_row(trending_score=53.25), now=NOW)
    payload = record.to_dict()

    assert payload["id"] == payload["name"] == "io.example/alpha"
    assert payload["description"] == "Alpha"
    assert payload["published_at"] == "2026-01-01T08:30:00+00:00"
    assert payload["stats"] == {"rating": 4.5, "rating_count": 10, "install_count": 100}
    assert payload["badges"][0] == {"type": "top_rated", "label": "Top Rated", "icon": "⭐"}
    assert payload["trending_score"] == 53.25
    # The stored document is left untouched.
    assert "stats" not in record.document


def test_as_utc_converts_offsets() -> None:
    value = datetime(2026, 1, 1, 10, 0, tzinfo=timezone(timedelta(hours=2)))

    assert as_utc(value) == datetime(2026, 1, 1, 8, 0, tzinfo=timezone.utc)
    assert as_utc(value).tzinfo is timezone.utc
