"""API Services.

Process-wide singletons are created lazily on first use.
"""

from typing import Optional

from kivaw_feed.api.services.aggregator import AggregatorClient
from kivaw_feed.api.services.db import (
    SqlContentStore,
    SqlSavedItemStore,
    close_database,
    init_database,
)
from kivaw_feed.api.services.explore_service import ExploreService
from kivaw_feed.api.services.feed_service import FeedService
from kivaw_feed.api.services.save_service import SaveService

_aggregator: Optional[AggregatorClient] = None
_feed_service: Optional[FeedService] = None
_explore_service: Optional[ExploreService] = None
_save_service: Optional[SaveService] = None


def get_aggregator_client() -> AggregatorClient:
    """Get the aggregator client singleton."""
    global _aggregator
    if _aggregator is None:
        _aggregator = AggregatorClient()
    return _aggregator


def get_feed_service() -> FeedService:
    """Get the feed service singleton."""
    global _feed_service
    if _feed_service is None:
        _feed_service = FeedService(get_aggregator_client())
    return _feed_service


def get_explore_service() -> ExploreService:
    """Get the explore service singleton."""
    global _explore_service
    if _explore_service is None:
        _explore_service = ExploreService(get_aggregator_client())
    return _explore_service


def get_save_service() -> SaveService:
    """Get the save service singleton."""
    global _save_service
    if _save_service is None:
        _save_service = SaveService(SqlContentStore(), SqlSavedItemStore())
    return _save_service


async def shutdown_services() -> None:
    """Close the aggregator client and drop all singletons."""
    global _aggregator, _feed_service, _explore_service, _save_service
    if _aggregator is not None:
        await _aggregator.aclose()
    _aggregator = None
    _feed_service = None
    _explore_service = None
    _save_service = None


__all__ = [
    "AggregatorClient",
    "ExploreService",
    "FeedService",
    "SaveService",
    "SqlContentStore",
    "SqlSavedItemStore",
    "close_database",
    "get_aggregator_client",
    "get_explore_service",
    "get_feed_service",
    "get_save_service",
    "init_database",
    "shutdown_services",
]
