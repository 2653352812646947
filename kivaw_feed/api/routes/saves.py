"""Saved items API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from kivaw_feed.api.auth import current_user_id
from kivaw_feed.api.errors import to_http_exception
from kivaw_feed.api.schemas.feed import SavedIdsResponse, SaveStateResponse, SaveToggleRequest
from kivaw_feed.api.services import get_save_service
from kivaw_feed.api.services.save_service import SaveService
from kivaw_feed.core.errors import FeedError
from kivaw_feed.core.ids import ContentFields

router = APIRouter(prefix="/saves", tags=["saves"])


@router.get("", response_model=SavedIdsResponse)
async def list_saves(
    user_id: str = Depends(current_user_id),
    save_service: SaveService = Depends(get_save_service),
) -> SavedIdsResponse:
    try:
        saved_ids = await save_service.load_saved_ids(user_id)
    except FeedError as exc:
        raise to_http_exception(exc) from exc
    return SavedIdsResponse(content_ids=sorted(saved_ids), total=len(saved_ids))


@router.post("/toggle", response_model=SaveStateResponse)
async def toggle_save(
    body: SaveToggleRequest,
    user_id: str = Depends(current_user_id),
    save_service: SaveService = Depends(get_save_service),
) -> SaveStateResponse:
    """Save or unsave one item.

    A failed persist is not rolled back: the response reports
    ``server_status="failed"`` with the local state the client should keep
    showing alongside a retry affordance.
    """
    fields = ContentFields(
        title=body.title,
        url=body.url,
        image_url=body.image_url,
        kind=body.kind,
        provider=body.provider,
    )
    try:
        state = await save_service.toggle(user_id, body.id, body.is_saved, fields)
    except FeedError as exc:
        raise to_http_exception(exc) from exc

    if state is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A save for this item is already in progress.",
        )

    return SaveStateResponse(
        id=body.id,
        content_id=state.content_id,
        saved=state.local,
        server_status=state.server.value,
        error=state.error,
        retryable=state.failed,
    )
