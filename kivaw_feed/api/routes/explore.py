"""Explore stream API routes."""

from __future__ import annotations

import time
from collections import defaultdict, deque
from threading import Lock
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from kivaw_feed.api.auth import current_user_id
from kivaw_feed.api.errors import to_http_exception
from kivaw_feed.api.schemas.feed import ExploreResponse
from kivaw_feed.api.services import get_explore_service, get_save_service
from kivaw_feed.api.services.explore_service import ExploreService, to_response
from kivaw_feed.api.services.save_service import SaveService
from kivaw_feed.config.settings import resolve_refresh_security_settings
from kivaw_feed.core.errors import FeedError
from kivaw_feed.core.models import ExploreFilters
from kivaw_feed.utils.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/explore", tags=["explore"])


class _SlidingWindowLimiter:
    """Simple in-memory sliding-window rate limiter."""

    def __init__(self) -> None:
        self._events: dict[str, deque[float]] = defaultdict(deque)
        self._lock = Lock()

    def allow(self, key: str, limit: int, window_seconds: int) -> bool:
        now = time.monotonic()
        threshold = now - window_seconds

        with self._lock:
            bucket = self._events[key]
            while bucket and bucket[0] <= threshold:
                bucket.popleft()

            if len(bucket) >= limit:
                return False

            bucket.append(now)
            return True

    def reset(self) -> None:
        with self._lock:
            self._events.clear()


_refresh_limiter = _SlidingWindowLimiter()


def reset_refresh_rate_limiter() -> None:
    """Reset in-memory refresh rate limit state (for tests)."""
    _refresh_limiter.reset()


def _authorize_refresh(user_id: str) -> None:
    security_settings = resolve_refresh_security_settings()
    allowed = _refresh_limiter.allow(
        key=user_id,
        limit=security_settings.refresh_rate_limit,
        window_seconds=security_settings.refresh_window_seconds,
    )
    if not allowed:
        logger.warning("Explore refresh rate limited", user_id=user_id)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="refresh rate limit exceeded. Please retry later.",
        )


@router.get("", response_model=ExploreResponse)
async def explore(
    kinds: Optional[list[str]] = Query(None, description="Content kinds to include"),
    providers: Optional[list[str]] = Query(None, description="Providers to include"),
    refresh: bool = Query(False, description="Discard the cached first page"),
    user_id: str = Depends(current_user_id),
    explore_service: ExploreService = Depends(get_explore_service),
    save_service: SaveService = Depends(get_save_service),
) -> ExploreResponse:
    """First page of the explore stream.

    A first page fetched less than the cache TTL ago with the same filters
    is served from memory (``from_cache=true``).
    """
    if refresh:
        _authorize_refresh(user_id)

    filters = ExploreFilters.parse(kinds, providers)
    try:
        view = await explore_service.load(user_id, filters, refresh=refresh)
        saved_ids, aliases = await save_service.saved_view(user_id)
    except FeedError as exc:
        raise to_http_exception(exc) from exc

    return to_response(view, saved_ids, aliases)


@router.post("/more", response_model=ExploreResponse)
async def explore_more(
    user_id: str = Depends(current_user_id),
    explore_service: ExploreService = Depends(get_explore_service),
    save_service: SaveService = Depends(get_save_service),
) -> ExploreResponse:
    """Append the next page.

    A failed page leaves the loaded items in place and is reported in
    ``load_more_error``.
    """
    try:
        view = await explore_service.load_more(user_id)
    except FeedError:
        view = explore_service.paginator_for(user_id).snapshot()

    try:
        saved_ids, aliases = await save_service.saved_view(user_id)
    except FeedError as exc:
        raise to_http_exception(exc) from exc

    return to_response(view, saved_ids, aliases)
