"""API middleware."""

from kivaw_feed.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
