"""HTTP client for the upstream content aggregator.

The aggregator exposes two functions under ``{base}/functions/v1/``:

- ``social_feed``: ``{limit}`` -> ``{feed, fresh, today, error?}``
- ``explore_feed_v2``: ``{limit, cursor?, kinds?, providers?}`` ->
  ``{items, nextCursor, hasMore, error?}``

A non-2xx status and a populated ``error`` field are both failures.
"""

from __future__ import annotations

from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from kivaw_feed.config.settings import AggregatorSettings, resolve_aggregator_settings
from kivaw_feed.core.errors import (
    InvalidResponseShape,
    UpstreamLogicalError,
    UpstreamUnavailable,
)
from kivaw_feed.core.models import ExploreFilters, ExplorePage, FeedPool
from kivaw_feed.utils.logging_config import get_logger

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


class AggregatorClient:
    """Async client for the aggregator's feed and explore functions."""

    def __init__(
        self,
        settings: Optional[AggregatorSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or resolve_aggregator_settings()
        self._client = client or httpx.AsyncClient(timeout=self.settings.timeout_seconds)
        self._owns_client = client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.settings.api_key:
            headers["Authorization"] = f"Bearer {self.settings.api_key}"
            headers["apikey"] = self.settings.api_key
        return headers

    async def _invoke(self, function: str, body: dict[str, Any]) -> dict[str, Any]:
        if not self.settings.base_url:
            raise UpstreamUnavailable(
                "Content service is not configured. Set AGGREGATOR_BASE_URL."
            )

        url = f"{self.settings.base_url}/functions/v1/{function}"
        try:
            response = await self._client.post(url, json=body, headers=self._headers())
        except httpx.TimeoutException as exc:
            logger.warning("Aggregator request timed out", function=function, error=str(exc))
            raise UpstreamUnavailable(f"{function} timed out. Please try again.") from exc
        except httpx.HTTPError as exc:
            logger.warning("Aggregator request failed", function=function, error=str(exc))
            raise UpstreamUnavailable(f"Couldn't reach {function}: {exc}") from exc

        if response.status_code == 404:
            raise UpstreamUnavailable(
                f"{function} is not deployed.", status_code=response.status_code
            )
        if response.is_error:
            detail = _error_detail(response)
            logger.warning(
                "Aggregator returned error status",
                function=function,
                status_code=response.status_code,
                detail=detail,
            )
            raise UpstreamUnavailable(
                f"{function} failed ({response.status_code}): {detail}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise InvalidResponseShape(f"Invalid response from {function} (not JSON).") from exc

        if not isinstance(payload, dict):
            raise InvalidResponseShape(f"Invalid response from {function}.")
        if payload.get("error"):
            raise UpstreamLogicalError(str(payload["error"]))
        return payload

    @staticmethod
    def _parse(model: type[M], payload: dict[str, Any], function: str) -> M:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            logger.warning(
                "Aggregator response failed validation",
                function=function,
                errors=exc.error_count(),
            )
            raise InvalidResponseShape(f"Invalid response from {function}.") from exc

    async def fetch_feed(self, limit: int) -> FeedPool:
        function = self.settings.feed_function
        payload = await self._invoke(function, {"limit": limit})
        if not isinstance(payload.get("feed"), list):
            raise InvalidResponseShape(f"Invalid response from {function} (missing feed array).")
        return self._parse(FeedPool, payload, function)

    async def fetch_explore_page(
        self,
        limit: int,
        cursor: Optional[str] = None,
        filters: Optional[ExploreFilters] = None,
    ) -> ExplorePage:
        function = self.settings.explore_function
        body: dict[str, Any] = {"limit": limit}
        if cursor:
            body["cursor"] = cursor
        if filters is not None:
            body.update(filters.as_params())

        payload = await self._invoke(function, body)
        if not isinstance(payload.get("items"), list):
            raise InvalidResponseShape(f"Invalid response from {function} (missing items array).")
        return self._parse(ExplorePage, payload, function)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict):
        for key in ("error", "message", "msg"):
            if body.get(key):
                return str(body[key])
    return response.reason_phrase
