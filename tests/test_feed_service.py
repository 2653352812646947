"""Tests for the feed service and its stale fallback."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from kivaw_feed.api.services.feed_service import FeedService
from kivaw_feed.config.settings import resolve_feed_settings
from kivaw_feed.core.errors import UpstreamUnavailable
from kivaw_feed.core.models import FeedPool, RawContentItem

T0 = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self) -> None:
        self.now = T0

    def __call__(self) -> datetime:
        return self.now


def _pool() -> FeedPool:
    a = RawContentItem(id="a", title="A", published_at=(T0 - timedelta(hours=1)).isoformat())
    c = RawContentItem(
        id="c", title="C", score=7, published_at=(T0 - timedelta(hours=30)).isoformat()
    )
    return FeedPool(feed=[a, c], fresh=[a], today=[a])


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def aggregator() -> AsyncMock:
    aggregator = AsyncMock()
    aggregator.fetch_feed = AsyncMock(return_value=_pool())
    return aggregator


@pytest.fixture
def service(aggregator, clock) -> FeedService:
    return FeedService(aggregator, resolve_feed_settings(env={}), clock=clock)


async def test_get_feed_composes_sections(service, aggregator):
    response = await service.get_feed(saved_ids=frozenset({"c"}))

    aggregator.fetch_feed.assert_awaited_once_with(200)
    assert [s.id for s in response.sections] == ["fresh", "trending"]
    assert response.stale is False
    assert response.error is None
    assert response.generated_at == T0
    assert response.sections[1].items[0].is_saved is True


async def test_subtitles_follow_configured_windows(aggregator, clock):
    settings = resolve_feed_settings(env={"FEED_FRESH_HOURS": "3"})
    response = await FeedService(aggregator, settings, clock=clock).get_feed()

    assert response.sections[0].subtitle == "Last 3 hours"


async def test_failure_without_previous_pool_raises(service, aggregator):
    aggregator.fetch_feed.side_effect = UpstreamUnavailable("social_feed is not deployed.")

    with pytest.raises(UpstreamUnavailable):
        await service.get_feed()


async def test_failure_serves_recent_pool_as_stale(service, aggregator, clock):
    await service.get_feed()
    aggregator.fetch_feed.side_effect = UpstreamUnavailable("social_feed timed out.")
    clock.now = T0 + timedelta(minutes=2)

    response = await service.get_feed()

    assert response.stale is True
    assert response.error == "social_feed timed out."
    assert response.retryable is True
    assert response.generated_at == T0
    assert [s.id for s in response.sections] == ["fresh", "trending"]


async def test_failure_after_stale_ttl_raises(service, aggregator, clock):
    await service.get_feed()
    aggregator.fetch_feed.side_effect = UpstreamUnavailable("down")
    clock.now = T0 + timedelta(minutes=6)

    with pytest.raises(UpstreamUnavailable):
        await service.get_feed()


async def test_every_request_fetches(service, aggregator):
    await service.get_feed()
    await service.get_feed()

    assert aggregator.fetch_feed.await_count == 2


async def test_reset_forgets_fallback(service, aggregator):
    await service.get_feed()
    service.reset()
    aggregator.fetch_feed.side_effect = UpstreamUnavailable("down")

    with pytest.raises(UpstreamUnavailable):
        await service.get_feed()


def _pool_of(item_id: str) -> FeedPool:
    item = RawContentItem(
        id=item_id, title=item_id, published_at=(T0 - timedelta(hours=1)).isoformat()
    )
    return FeedPool(feed=[item], fresh=[item], today=[item])


async def test_superseded_fetch_does_not_replace_fallback(service, aggregator, clock):
    older_pool, newer_pool = _pool_of("older"), _pool_of("newer")
    gate = asyncio.Event()

    async def fetch_older(limit):
        await gate.wait()
        return older_pool

    async def fetch_newer(limit):
        return newer_pool

    calls = iter([fetch_older, fetch_newer])

    async def fetch_feed(limit):
        return await next(calls)(limit)

    aggregator.fetch_feed = fetch_feed

    older = asyncio.create_task(service.get_feed())
    await asyncio.sleep(0)
    newer = await service.get_feed()
    gate.set()
    late = await older

    assert newer.sections[0].items[0].id == "newer"
    # The late response is still rendered for its own caller
    assert late.sections[0].items[0].id == "older"
    assert service._last_good.pool is newer_pool

    aggregator.fetch_feed = AsyncMock(side_effect=UpstreamUnavailable("social_feed timed out."))
    clock.now = T0 + timedelta(minutes=1)

    fallback = await service.get_feed()

    assert fallback.stale is True
    assert [item.id for item in fallback.sections[0].items] == ["newer"]
