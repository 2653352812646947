"""Explore stream service: one cursor paginator per user."""

from __future__ import annotations

from collections import OrderedDict
from datetime import datetime
from typing import AbstractSet, Callable, Mapping, Optional

from kivaw_feed.api.schemas.feed import ExploreResponse
from kivaw_feed.api.services.aggregator import AggregatorClient
from kivaw_feed.config.settings import ExploreSettings, resolve_explore_settings
from kivaw_feed.core.models import ExploreFilters, ExploreItem, ExplorePage
from kivaw_feed.core.pagination import ExplorePaginator, ExploreView, utcnow
from kivaw_feed.core.saved_state import is_saved
from kivaw_feed.utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_USERS = 1_000


def _annotate(
    items: tuple[ExploreItem, ...],
    saved_ids: AbstractSet[str],
    aliases: Optional[Mapping[str, str]],
) -> list[ExploreItem]:
    return [
        item.model_copy(update={"is_saved": is_saved(item.id, saved_ids, aliases)})
        for item in items
    ]


def to_response(
    view: ExploreView,
    saved_ids: AbstractSet[str] = frozenset(),
    aliases: Optional[Mapping[str, str]] = None,
) -> ExploreResponse:
    return ExploreResponse(
        state=view.state.value,
        items=_annotate(view.items, saved_ids, aliases),
        next_cursor=view.cursor,
        has_more=view.has_more,
        from_cache=view.from_cache,
        kinds=list(view.filters.kinds),
        providers=list(view.filters.providers),
        load_more_error=view.load_more_error.message if view.load_more_error else None,
    )


class ExploreService:
    """Explore paginators for the ``max_users`` most recently active users.

    An evicted user starts from an empty stream on their next request.
    """

    def __init__(
        self,
        aggregator: AggregatorClient,
        settings: Optional[ExploreSettings] = None,
        clock: Callable[[], datetime] = utcnow,
        max_users: int = DEFAULT_MAX_USERS,
    ) -> None:
        self._aggregator = aggregator
        self.settings = settings or resolve_explore_settings()
        self._clock = clock
        self._max_users = max_users
        self._paginators: OrderedDict[str, ExplorePaginator] = OrderedDict()

    async def _fetch_page(self, cursor: Optional[str], filters: ExploreFilters) -> ExplorePage:
        return await self._aggregator.fetch_explore_page(
            self.settings.page_limit, cursor=cursor, filters=filters
        )

    def paginator_for(self, user_id: str) -> ExplorePaginator:
        paginator = self._paginators.get(user_id)
        if paginator is not None:
            self._paginators.move_to_end(user_id)
            return paginator

        paginator = self._paginators[user_id] = ExplorePaginator(
            self._fetch_page,
            ttl=self.settings.cache_ttl,
            clock=self._clock,
        )
        while len(self._paginators) > self._max_users:
            evicted, _ = self._paginators.popitem(last=False)
            logger.debug("Explore paginator evicted", user_id=evicted)
        return paginator

    async def load(
        self,
        user_id: str,
        filters: ExploreFilters,
        *,
        refresh: bool = False,
    ) -> ExploreView:
        paginator = self.paginator_for(user_id)
        if refresh:
            logger.info("Explore manual refresh", user_id=user_id)
            return await paginator.refresh(filters)
        return await paginator.load(filters)

    async def load_more(self, user_id: str) -> ExploreView:
        return await self.paginator_for(user_id).load_more()
