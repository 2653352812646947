"""Tests for the per-user explore service."""

from unittest.mock import AsyncMock

import pytest

from kivaw_feed.api.services.explore_service import ExploreService, to_response
from kivaw_feed.config.settings import resolve_explore_settings
from kivaw_feed.core.models import ExploreFilters, ExploreItem, ExplorePage


@pytest.fixture
def aggregator() -> AsyncMock:
    aggregator = AsyncMock()
    aggregator.fetch_explore_page = AsyncMock(
        return_value=ExplorePage(
            items=[ExploreItem(id="external_content_cache:1", title="One")],
            nextCursor="1",
            hasMore=True,
        )
    )
    return aggregator


def _service(aggregator, max_users=2) -> ExploreService:
    return ExploreService(aggregator, resolve_explore_settings(env={}), max_users=max_users)


def test_paginator_reused_per_user(aggregator):
    service = _service(aggregator)

    assert service.paginator_for("user_1") is service.paginator_for("user_1")
    assert service.paginator_for("user_1") is not service.paginator_for("user_2")


def test_least_recently_used_paginator_evicted(aggregator):
    service = _service(aggregator)
    first = service.paginator_for("user_1")
    service.paginator_for("user_2")
    service.paginator_for("user_1")

    service.paginator_for("user_3")

    assert list(service._paginators) == ["user_1", "user_3"]
    assert service.paginator_for("user_1") is first


async def test_evicted_user_starts_from_empty_stream(aggregator):
    service = _service(aggregator, max_users=1)
    await service.load("user_1", ExploreFilters())

    service.paginator_for("user_2")
    view = await service.load("user_1", ExploreFilters())

    assert view.from_cache is False
    assert aggregator.fetch_explore_page.await_count == 2


async def test_response_marks_aliased_items_saved(aggregator):
    service = _service(aggregator)
    view = await service.load("user_1", ExploreFilters())

    response = to_response(
        view,
        saved_ids=frozenset({"durable-1"}),
        aliases={"external_content_cache:1": "durable-1"},
    )

    assert [item.is_saved for item in response.items] == [True]
    assert response.has_more is True
    assert response.next_cursor == "1"
