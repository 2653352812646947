"""Pydantic models for feed, explore and save API payloads."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from kivaw_feed.core.models import ExploreItem, FeedSection


class FeedResponse(BaseModel):
    """Composed feed sections for one request."""

    sections: list[FeedSection]
    generated_at: datetime
    stale: bool = False  # True = previous pool served after an upstream failure
    error: Optional[str] = None
    retryable: bool = False


class ExploreResponse(BaseModel):
    """Current state of the user's explore stream."""

    state: str
    items: list[ExploreItem]
    next_cursor: Optional[str] = None
    has_more: bool = False
    from_cache: bool = False
    kinds: list[str] = Field(default_factory=list)
    providers: list[str] = Field(default_factory=list)
    load_more_error: Optional[str] = None


class SaveToggleRequest(BaseModel):
    """Toggle the saved state of one displayed item."""

    id: str = Field(min_length=1)
    is_saved: bool  # state the client currently shows
    title: Optional[str] = None
    url: Optional[str] = None
    image_url: Optional[str] = None
    kind: Optional[str] = None
    provider: Optional[str] = None


class SaveStateResponse(BaseModel):
    id: str
    content_id: Optional[str] = None
    saved: bool
    server_status: str  # confirmed | pending | failed
    error: Optional[str] = None
    retryable: bool = False


class SavedIdsResponse(BaseModel):
    content_ids: list[str]
    total: int
