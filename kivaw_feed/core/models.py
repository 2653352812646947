"""Data model for the feed composition engine.

Upstream payloads are parsed into pydantic models (unknown keys ignored);
identifiers and cache entries are small frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RawContentItem(BaseModel):
    """A single item of the upstream pool, read-only."""

    model_config = ConfigDict(extra="ignore")

    id: str
    source: Optional[str] = None
    external_id: Optional[str] = None
    url: Optional[str] = None
    title: Optional[str] = None
    summary: Optional[str] = None
    author: Optional[str] = None
    image_url: Optional[str] = None
    published_at: Optional[str] = None
    tags: Optional[list[str]] = None
    topics: Optional[list[str]] = None
    metadata: Optional[dict[str, Any]] = None
    score: Optional[float] = None


class FeedItem(BaseModel):
    """Display-ready item. Recomputed on every composition pass."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = "Untitled"
    description: Optional[str] = None
    image_url: Optional[str] = None
    url: Optional[str] = None
    source: str = "unknown"
    author: Optional[str] = None
    published_at: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    score: Optional[float] = None
    is_saved: bool = False

    @classmethod
    def from_raw(cls, item: RawContentItem, is_saved: bool = False) -> "FeedItem":
        return cls(
            id=item.id,
            title=item.title or "Untitled",
            description=item.summary or None,
            image_url=item.image_url or None,
            url=item.url or None,
            source=item.source or "unknown",
            author=item.author or None,
            published_at=item.published_at or None,
            tags=list(item.tags or []),
            score=item.score,
            is_saved=is_saved,
        )


class FeedSection(BaseModel):
    """One display section (Fresh, Today, Trending)."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    subtitle: str
    items: list[FeedItem]


class FeedPool(BaseModel):
    """Response of the aggregator's feed function."""

    model_config = ConfigDict(extra="ignore")

    feed: list[RawContentItem]
    fresh: list[RawContentItem] = Field(default_factory=list)
    today: list[RawContentItem] = Field(default_factory=list)
    error: Optional[str] = None


class ExploreItem(BaseModel):
    """Unified explore card as returned by the aggregator's explore function."""

    model_config = ConfigDict(extra="ignore")

    id: str
    kind: Optional[str] = None
    title: Optional[str] = None
    byline: Optional[str] = None
    image_url: Optional[str] = None
    url: Optional[str] = None
    provider: Optional[str] = None
    external_id: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    created_at: Optional[str] = None
    score: Optional[float] = None
    is_saved: bool = False

    @field_validator("tags", mode="before")
    @classmethod
    def _null_tags(cls, value: Any) -> Any:
        return [] if value is None else value


class ExplorePage(BaseModel):
    """One page of the explore stream."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    items: list[ExploreItem]
    next_cursor: Optional[str] = Field(default=None, alias="nextCursor")
    has_more: bool = Field(default=False, alias="hasMore")
    error: Optional[str] = None


def split_csv(values: Optional[list[str]]) -> list[str]:
    """Accept both ``["a", "b"]`` and ``["a,b"]``."""
    out: list[str] = []
    for value in values or []:
        out.extend(v.strip() for v in value.split(",") if v.strip())
    return out


@dataclass(frozen=True)
class ExploreFilters:
    """Active content filter of the explore view. Part of the cache key."""

    kinds: tuple[str, ...] = ()
    providers: tuple[str, ...] = ()

    @classmethod
    def of(
        cls,
        kinds: Optional[list[str]] = None,
        providers: Optional[list[str]] = None,
    ) -> "ExploreFilters":
        return cls(
            kinds=tuple(sorted(set(kinds or []))),
            providers=tuple(sorted(set(providers or []))),
        )

    @classmethod
    def parse(
        cls,
        kinds: Optional[list[str]] = None,
        providers: Optional[list[str]] = None,
    ) -> "ExploreFilters":
        """Build filters from repeated and/or comma-separated values."""
        return cls.of(split_csv(kinds), split_csv(providers))

    def as_params(self) -> dict[str, list[str]]:
        params: dict[str, list[str]] = {}
        if self.kinds:
            params["kinds"] = list(self.kinds)
        if self.providers:
            params["providers"] = list(self.providers)
        return params


@dataclass(frozen=True)
class CacheEntry:
    """First page of the explore stream. Replaced wholesale, never mutated."""

    items: tuple[ExploreItem, ...]
    cursor: Optional[str]
    timestamp: datetime
    has_more: bool
    filters: ExploreFilters
