"""Tests for the aggregator HTTP client, using httpx.MockTransport."""

import json

import httpx
import pytest

from kivaw_feed.api.services.aggregator import AggregatorClient
from kivaw_feed.config.settings import resolve_aggregator_settings
from kivaw_feed.core.errors import (
    InvalidResponseShape,
    UpstreamLogicalError,
    UpstreamUnavailable,
)
from kivaw_feed.core.models import ExploreFilters

BASE = "https://proj.example.co"


def _client(handler, **env) -> AggregatorClient:
    settings = resolve_aggregator_settings(
        env={"AGGREGATOR_BASE_URL": BASE, "AGGREGATOR_API_KEY": "anon-key", **env}
    )
    return AggregatorClient(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


async def test_fetch_feed_posts_limit_and_parses_pool():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers.get("authorization")
        seen["apikey"] = request.headers.get("apikey")
        return httpx.Response(
            200,
            json={
                "feed": [{"id": "a", "title": "A", "score": 3, "unexpected": 1}],
                "fresh": [{"id": "a", "title": "A"}],
                "today": [],
            },
        )

    pool = await _client(handler).fetch_feed(200)

    assert seen["url"] == f"{BASE}/functions/v1/social_feed"
    assert seen["body"] == {"limit": 200}
    assert seen["auth"] == "Bearer anon-key"
    assert seen["apikey"] == "anon-key"
    assert [i.id for i in pool.feed] == ["a"]
    assert [i.id for i in pool.fresh] == ["a"]


async def test_fetch_explore_page_sends_cursor_and_filters():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "items": [{"id": "x", "kind": "video", "tags": None}],
                "nextCursor": "NTA=",
                "hasMore": True,
            },
        )

    page = await _client(handler).fetch_explore_page(
        50, cursor="MjA=", filters=ExploreFilters.of(kinds=["video"])
    )

    assert seen["body"] == {"limit": 50, "cursor": "MjA=", "kinds": ["video"]}
    assert page.next_cursor == "NTA="
    assert page.has_more is True
    assert page.items[0].tags == []


async def test_missing_base_url_is_unavailable():
    client = AggregatorClient(resolve_aggregator_settings(env={}))
    with pytest.raises(UpstreamUnavailable, match="not configured"):
        await client.fetch_feed(10)
    await client.aclose()


async def test_not_deployed_function():
    def handler(request):
        return httpx.Response(404, text="Not Found")

    with pytest.raises(UpstreamUnavailable, match="explore_feed_v2 is not deployed") as exc_info:
        await _client(handler).fetch_explore_page(10)
    assert exc_info.value.status_code == 404
    assert exc_info.value.retryable is True


async def test_server_error_carries_detail():
    def handler(request):
        return httpx.Response(500, json={"error": "boom"})

    with pytest.raises(UpstreamUnavailable, match=r"social_feed failed \(500\): boom"):
        await _client(handler).fetch_feed(10)


async def test_transport_error_is_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamUnavailable, match="Couldn't reach social_feed"):
        await _client(handler).fetch_feed(10)


async def test_timeout_is_unavailable():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(UpstreamUnavailable, match="timed out"):
        await _client(handler).fetch_feed(10)


async def test_error_field_in_2xx_is_logical_error():
    def handler(request):
        return httpx.Response(200, json={"feed": [], "error": "rate limited"})

    with pytest.raises(UpstreamLogicalError, match="rate limited"):
        await _client(handler).fetch_feed(10)


@pytest.mark.parametrize(
    "payload",
    [
        {"fresh": []},
        {"feed": "nope"},
        [1, 2, 3],
        {"feed": [{"title": "no id"}]},
    ],
)
async def test_malformed_feed_payload(payload):
    def handler(request):
        return httpx.Response(200, json=payload)

    with pytest.raises(InvalidResponseShape):
        await _client(handler).fetch_feed(10)


async def test_non_json_body():
    def handler(request):
        return httpx.Response(200, text="<html>")

    with pytest.raises(InvalidResponseShape, match="not JSON"):
        await _client(handler).fetch_explore_page(10)


async def test_custom_function_names():
    urls = []

    def handler(request):
        urls.append(str(request.url))
        return httpx.Response(200, json={"feed": []})

    await _client(handler, AGGREGATOR_FEED_FUNCTION="feed_v3").fetch_feed(10)

    assert urls == [f"{BASE}/functions/v1/feed_v3"]
