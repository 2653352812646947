"""Feed composition service.

Fetches the scored pool from the aggregator, composes the Fresh / Today /
Trending sections and annotates saved state for the requesting user.

The last successfully fetched pool is kept in process memory. It is not a
read cache: every request fetches. It is only served, flagged ``stale``
with the error attached, when a fetch fails and the pool is younger than
``stale_ttl``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import AbstractSet, Callable, Mapping, Optional

from kivaw_feed.api.schemas.feed import FeedResponse
from kivaw_feed.api.services.aggregator import AggregatorClient
from kivaw_feed.config.settings import FeedSettings, resolve_feed_settings
from kivaw_feed.core.classifier import TimeWindows
from kivaw_feed.core.errors import FeedError
from kivaw_feed.core.models import FeedPool
from kivaw_feed.core.sections import (
    FRESH,
    TODAY,
    TRENDING,
    Composition,
    SectionTemplate,
    build_sections,
)
from kivaw_feed.core.streams import StreamGeneration
from kivaw_feed.utils.logging_config import get_logger

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class _PoolSnapshot:
    pool: FeedPool
    fetched_at: datetime


def _hours(td: timedelta) -> int:
    return int(td.total_seconds() // 3600)


class FeedService:
    def __init__(
        self,
        aggregator: AggregatorClient,
        settings: Optional[FeedSettings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._aggregator = aggregator
        self.settings = settings or resolve_feed_settings()
        self._clock = clock
        self._generation = StreamGeneration("feed")
        self._last_good: Optional[_PoolSnapshot] = None

    def _templates(self) -> tuple[SectionTemplate, SectionTemplate, SectionTemplate]:
        s = self.settings
        return (
            SectionTemplate(FRESH.id, FRESH.title, f"Last {_hours(s.fresh_window)} hours"),
            SectionTemplate(TODAY.id, TODAY.title, f"Last {_hours(s.today_window)} hours"),
            SectionTemplate(TRENDING.id, TRENDING.title, f"Last {_hours(s.trending_window)} hours"),
        )

    def _fallback(self, now: datetime) -> Optional[_PoolSnapshot]:
        snapshot = self._last_good
        if snapshot is None:
            return None
        if now - snapshot.fetched_at >= self.settings.stale_ttl:
            return None
        return snapshot

    def _compose(
        self,
        pool: FeedPool,
        now: datetime,
        saved_ids: AbstractSet[str],
        aliases: Optional[Mapping[str, str]],
    ) -> Composition:
        s = self.settings
        windows = TimeWindows.from_now(
            now,
            fresh=s.fresh_window,
            today=s.today_window,
            trending=s.trending_window,
        )
        return build_sections(
            pool,
            now,
            saved_ids=saved_ids,
            aliases=aliases,
            cap=s.section_cap,
            windows=windows,
            templates=self._templates(),
        )

    async def get_feed(
        self,
        saved_ids: AbstractSet[str] = frozenset(),
        aliases: Optional[Mapping[str, str]] = None,
    ) -> FeedResponse:
        """Compose the feed for one request.

        Raises the upstream error when there is nothing recent to fall
        back on; no partial section list is ever returned.
        """
        token = self._generation.advance()

        try:
            pool = await self._aggregator.fetch_feed(self.settings.pool_limit)
        except FeedError as exc:
            now = self._clock()
            snapshot = self._fallback(now)
            if snapshot is None:
                logger.warning("Feed composition aborted", error=exc.message)
                raise
            logger.warning(
                "Serving previous feed after upstream failure",
                error=exc.message,
                age_seconds=round((now - snapshot.fetched_at).total_seconds()),
            )
            composition = self._compose(snapshot.pool, now, saved_ids, aliases)
            return FeedResponse(
                sections=composition.sections,
                generated_at=snapshot.fetched_at,
                stale=True,
                error=exc.message,
                retryable=exc.retryable,
            )

        now = self._clock()
        if self._generation.is_current(token):
            self._last_good = _PoolSnapshot(pool=pool, fetched_at=now)
        else:
            logger.debug("Superseded feed fetch, not recorded", generation=token)

        composition = self._compose(pool, now, saved_ids, aliases)
        logger.info(
            "Feed composed",
            sections={s.id: len(s.items) for s in composition.sections},
            pool_size=len(pool.feed),
        )
        return FeedResponse(sections=composition.sections, generated_at=now)

    def reset(self) -> None:
        """Forget the fallback pool (for testing)."""
        self._last_good = None
