"""Tests for time-window classification."""

from datetime import datetime, timedelta, timezone

import pytest

from kivaw_feed.core.classifier import (
    Bucket,
    TimeWindows,
    classify,
    effective_timestamp,
    is_trending_eligible,
    parse_timestamp,
)
from kivaw_feed.core.models import RawContentItem

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def _iso(dt: datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


def _item(hours_ago=None, **kwargs) -> RawContentItem:
    published = _iso(NOW - timedelta(hours=hours_ago)) if hours_ago is not None else None
    return RawContentItem(id=kwargs.pop("id", "x"), published_at=published, **kwargs)


@pytest.fixture
def windows() -> TimeWindows:
    return TimeWindows.from_now(NOW)


@pytest.mark.parametrize(
    "hours_ago, expected",
    [
        (0, Bucket.FRESH),
        (5.9, Bucket.FRESH),
        (6, Bucket.FRESH),
        (6.1, Bucket.TODAY),
        (24, Bucket.TODAY),
        (24.5, Bucket.TRENDING_ELIGIBLE),
        (48, Bucket.TRENDING_ELIGIBLE),
        (48.1, Bucket.EXCLUDED),
        (200, Bucket.EXCLUDED),
    ],
)
def test_classify_by_age(windows, hours_ago, expected):
    assert classify(_item(hours_ago), windows) is expected


def test_fresh_item_is_reported_as_fresh_not_today(windows):
    item = _item(1)
    assert classify(item, windows) is Bucket.FRESH
    assert not is_trending_eligible(item, windows)


def test_ingested_at_used_when_published_at_missing(windows):
    item = RawContentItem(
        id="x",
        metadata={"ingested_at": _iso(NOW - timedelta(hours=30))},
    )
    assert effective_timestamp(item) == NOW - timedelta(hours=30)
    assert is_trending_eligible(item, windows)


def test_published_at_wins_over_ingested_at(windows):
    item = RawContentItem(
        id="x",
        published_at=_iso(NOW - timedelta(hours=1)),
        metadata={"ingested_at": _iso(NOW - timedelta(hours=30))},
    )
    assert classify(item, windows) is Bucket.FRESH


def test_missing_or_unparseable_timestamp_is_excluded(windows):
    assert classify(RawContentItem(id="x"), windows) is Bucket.EXCLUDED
    assert classify(RawContentItem(id="y", published_at="yesterday"), windows) is Bucket.EXCLUDED
    assert (
        classify(RawContentItem(id="z", metadata={"ingested_at": 12345}), windows)
        is Bucket.EXCLUDED
    )


def test_parse_timestamp_normalizes_to_utc():
    assert parse_timestamp("2025-06-15T10:00:00Z") == datetime(2025, 6, 15, 10, tzinfo=timezone.utc)
    assert parse_timestamp("2025-06-15T12:00:00+02:00") == datetime(
        2025, 6, 15, 10, tzinfo=timezone.utc
    )
    # naive values are taken as UTC
    assert parse_timestamp("2025-06-15T10:00:00") == datetime(2025, 6, 15, 10, tzinfo=timezone.utc)
    assert parse_timestamp("") is None
    assert parse_timestamp(None) is None


@pytest.mark.parametrize(
    "value",
    ["2025-01-17T02:55:42.12+00:00", "2025-01-17T02:55:42.12Z", "2025-01-17 02:55:42.12+00:00"],
)
def test_parse_timestamp_short_fraction(value):
    assert parse_timestamp(value) == datetime(2025, 1, 17, 2, 55, 42, 120000, tzinfo=timezone.utc)


def test_parse_timestamp_rejects_garbage():
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp("2025-13-45T99:00:00") is None


def test_short_fraction_timestamp_is_classified(windows):
    item = RawContentItem(id="x", published_at="2025-06-15T11:00:00.5+00:00")

    assert classify(item, windows) is Bucket.FRESH


def test_windows_from_custom_durations():
    w = TimeWindows.from_now(NOW, fresh=timedelta(hours=2), today=timedelta(hours=12))
    assert w.fresh_cutoff == NOW - timedelta(hours=2)
    assert w.today_cutoff == NOW - timedelta(hours=12)
    assert w.trending_floor == NOW - timedelta(hours=48)
