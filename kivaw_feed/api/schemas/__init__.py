"""API Schemas."""

from kivaw_feed.api.schemas.feed import (
    ExploreResponse,
    FeedResponse,
    SavedIdsResponse,
    SaveStateResponse,
    SaveToggleRequest,
)

__all__ = [
    "ExploreResponse",
    "FeedResponse",
    "SavedIdsResponse",
    "SaveStateResponse",
    "SaveToggleRequest",
]
