"""Cursor pagination of the explore stream with a first-page TTL cache.

State machine::

    IDLE -> LOADING -> LOADED -> LOADING_MORE -> LOADED
    any  -> ERROR (first-page failure) -> LOADING (retry)

The first page is cached for ``ttl`` and reused on the next cold load when
the requested filters match the ones it was fetched with. ``refresh``
always discards the cache.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional

from kivaw_feed.core.errors import FeedError, UpstreamLogicalError
from kivaw_feed.core.models import CacheEntry, ExploreFilters, ExploreItem, ExplorePage
from kivaw_feed.core.streams import StreamGeneration
from kivaw_feed.utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CACHE_TTL = timedelta(minutes=5)

FetchPage = Callable[[Optional[str], ExploreFilters], Awaitable[ExplorePage]]
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _has_next_page(page: ExplorePage) -> bool:
    # A null cursor ends the stream whatever hasMore says
    return bool(page.has_more) and page.next_cursor is not None


class PaginatorState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    LOADING_MORE = "loading_more"
    ERROR = "error"


@dataclass(frozen=True)
class ExploreView:
    """Immutable snapshot of the paginator for rendering."""

    state: PaginatorState
    items: tuple[ExploreItem, ...]
    cursor: Optional[str]
    has_more: bool
    filters: ExploreFilters
    error: Optional[FeedError] = None
    load_more_error: Optional[FeedError] = None
    from_cache: bool = False


class ExplorePaginator:
    def __init__(
        self,
        fetch_page: FetchPage,
        *,
        ttl: timedelta = DEFAULT_CACHE_TTL,
        clock: Clock = utcnow,
    ) -> None:
        self._fetch_page = fetch_page
        self._ttl = ttl
        self._clock = clock
        self._generation = StreamGeneration("explore")

        self._state = PaginatorState.IDLE
        self._items: tuple[ExploreItem, ...] = ()
        self._cursor: Optional[str] = None
        self._has_more = False
        self._filters = ExploreFilters()
        self._error: Optional[FeedError] = None
        self._load_more_error: Optional[FeedError] = None
        self._from_cache = False
        self._cache: Optional[CacheEntry] = None

    @property
    def state(self) -> PaginatorState:
        return self._state

    @property
    def cache_entry(self) -> Optional[CacheEntry]:
        return self._cache

    def snapshot(self) -> ExploreView:
        return ExploreView(
            state=self._state,
            items=self._items,
            cursor=self._cursor,
            has_more=self._has_more,
            filters=self._filters,
            error=self._error,
            load_more_error=self._load_more_error,
            from_cache=self._from_cache,
        )

    def _usable_cache(self, filters: ExploreFilters) -> Optional[CacheEntry]:
        """The cached first page if it matches ``filters`` and is younger than the TTL."""
        entry = self._cache
        if entry is None or entry.filters != filters:
            return None
        if self._clock() - entry.timestamp >= self._ttl:
            return None
        return entry

    async def load(self, filters: Optional[ExploreFilters] = None) -> ExploreView:
        """Cold load: serve the cached first page or fetch one."""
        filters = self._filters if filters is None else filters
        token = self._generation.advance()

        entry = self._usable_cache(filters)
        if entry is not None:
            self._items = entry.items
            self._cursor = entry.cursor
            self._has_more = entry.has_more
            self._filters = filters
            self._state = PaginatorState.LOADED
            self._error = None
            self._load_more_error = None
            self._from_cache = True
            logger.debug("Explore cache hit", items=len(entry.items), filters=filters)
            return self.snapshot()

        return await self._fetch_first(token, filters)

    async def refresh(self, filters: Optional[ExploreFilters] = None) -> ExploreView:
        """Drop the cache and replace the list with a fresh first page."""
        filters = self._filters if filters is None else filters
        self._cache = None
        token = self._generation.advance()
        return await self._fetch_first(token, filters)

    async def _fetch(self, cursor: Optional[str], filters: ExploreFilters) -> ExplorePage:
        page = await self._fetch_page(cursor, filters)
        if page.error:
            raise UpstreamLogicalError(page.error)
        return page

    async def _fetch_first(self, token: int, filters: ExploreFilters) -> ExploreView:
        self._state = PaginatorState.LOADING
        self._filters = filters
        self._error = None
        self._load_more_error = None
        self._from_cache = False

        try:
            page = await self._fetch(None, filters)
        except FeedError as exc:
            if not self._generation.is_current(token):
                logger.debug("Discarding superseded explore failure", generation=token)
                return self.snapshot()
            self._state = PaginatorState.ERROR
            self._items = ()
            self._cursor = None
            self._has_more = False
            self._error = exc
            raise

        if not self._generation.is_current(token):
            logger.debug("Discarding superseded explore page", generation=token)
            return self.snapshot()

        self._items = tuple(page.items)
        self._cursor = page.next_cursor
        self._has_more = _has_next_page(page)
        self._state = PaginatorState.LOADED
        self._cache = CacheEntry(
            items=self._items,
            cursor=self._cursor,
            timestamp=self._clock(),
            has_more=self._has_more,
            filters=filters,
        )
        return self.snapshot()

    async def load_more(self) -> ExploreView:
        """Append the next page. A no-op unless loaded with more pages."""
        if self._state is not PaginatorState.LOADED or not self._has_more:
            return self.snapshot()

        token = self._generation.current
        self._state = PaginatorState.LOADING_MORE
        self._load_more_error = None

        try:
            page = await self._fetch(self._cursor, self._filters)
        except FeedError as exc:
            if not self._generation.is_current(token):
                return self.snapshot()
            self._state = PaginatorState.LOADED
            self._load_more_error = exc
            raise

        if not self._generation.is_current(token):
            logger.debug("Discarding superseded explore page", generation=token)
            return self.snapshot()

        self._items = self._items + tuple(page.items)
        self._cursor = page.next_cursor
        self._has_more = _has_next_page(page)
        self._state = PaginatorState.LOADED
        return self.snapshot()
