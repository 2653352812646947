"""API Routes."""

from kivaw_feed.api.routes.explore import router as explore_router
from kivaw_feed.api.routes.feed import router as feed_router
from kivaw_feed.api.routes.saves import router as saves_router

__all__ = ["explore_router", "feed_router", "saves_router"]
