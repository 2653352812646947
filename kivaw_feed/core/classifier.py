"""Timestamp classification of pool items into time windows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from kivaw_feed.core.models import RawContentItem

DEFAULT_FRESH_WINDOW = timedelta(hours=6)
DEFAULT_TODAY_WINDOW = timedelta(hours=24)
DEFAULT_TRENDING_WINDOW = timedelta(hours=48)

_DATETIME = TypeAdapter(datetime)


class Bucket(str, Enum):
    """Time window an item falls into."""

    FRESH = "fresh"
    TODAY = "today"
    TRENDING_ELIGIBLE = "trending_eligible"
    EXCLUDED = "excluded"


@dataclass(frozen=True)
class TimeWindows:
    fresh_cutoff: datetime
    today_cutoff: datetime
    trending_floor: datetime

    @classmethod
    def from_now(
        cls,
        now: datetime,
        fresh: timedelta = DEFAULT_FRESH_WINDOW,
        today: timedelta = DEFAULT_TODAY_WINDOW,
        trending: timedelta = DEFAULT_TRENDING_WINDOW,
    ) -> "TimeWindows":
        now = _as_utc(now)
        return cls(
            fresh_cutoff=now - fresh,
            today_cutoff=now - today,
            trending_floor=now - trending,
        )


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 string. Returns None for anything unparseable.

    Fractional seconds of any precision are accepted, e.g. the two-digit
    ``2025-01-17T02:55:42.12+00:00`` Postgres emits.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    raw = value.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        return _as_utc(datetime.fromisoformat(raw))
    except ValueError:
        pass
    try:
        return _as_utc(_DATETIME.validate_python(raw))
    except ValidationError:
        return None


def effective_timestamp(item: RawContentItem) -> Optional[datetime]:
    """``published_at`` if present, else ``metadata.ingested_at``."""
    published = parse_timestamp(item.published_at)
    if published is not None:
        return published
    if item.metadata:
        return parse_timestamp(item.metadata.get("ingested_at"))
    return None


def classify(item: RawContentItem, windows: TimeWindows) -> Bucket:
    """Place an item in the first matching window.

    Order matters: an item recent enough for Fresh also satisfies the Today
    predicate, and is reported as Fresh.
    """
    ts = effective_timestamp(item)
    if ts is None:
        return Bucket.EXCLUDED
    if ts >= windows.fresh_cutoff:
        return Bucket.FRESH
    if ts >= windows.today_cutoff:
        return Bucket.TODAY
    if windows.trending_floor <= ts < windows.today_cutoff:
        return Bucket.TRENDING_ELIGIBLE
    return Bucket.EXCLUDED


def is_trending_eligible(item: RawContentItem, windows: TimeWindows) -> bool:
    return classify(item, windows) is Bucket.TRENDING_ELIGIBLE
