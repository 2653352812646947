"""Feed API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from kivaw_feed.api.auth import current_user_id
from kivaw_feed.api.errors import to_http_exception
from kivaw_feed.api.schemas.feed import FeedResponse
from kivaw_feed.api.services import get_feed_service, get_save_service
from kivaw_feed.api.services.feed_service import FeedService
from kivaw_feed.api.services.save_service import SaveService
from kivaw_feed.core.errors import FeedError

router = APIRouter(tags=["feed"])


@router.get("/feed", response_model=FeedResponse)
async def get_feed(
    user_id: str = Depends(current_user_id),
    feed_service: FeedService = Depends(get_feed_service),
    save_service: SaveService = Depends(get_save_service),
) -> FeedResponse:
    """Fresh, Today and Trending sections for the signed-in user.

    When the aggregator fails right after a successful fetch, the previous
    pool is served with ``stale=true`` and the error attached.
    """
    try:
        saved_ids, aliases = await save_service.saved_view(user_id)
        return await feed_service.get_feed(saved_ids=saved_ids, aliases=aliases)
    except FeedError as exc:
        raise to_http_exception(exc) from exc
