"""Translate core errors into HTTP responses."""

from fastapi import HTTPException, status

from kivaw_feed.core.errors import (
    FeedError,
    PersistFailure,
    ReconciliationFailure,
    UpstreamLogicalError,
    UpstreamUnavailable,
)


def status_for(exc: FeedError) -> int:
    if isinstance(exc, ReconciliationFailure):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, (UpstreamUnavailable, UpstreamLogicalError, PersistFailure)):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def to_http_exception(exc: FeedError) -> HTTPException:
    return HTTPException(
        status_code=status_for(exc),
        detail={"message": exc.message, "retryable": exc.retryable},
    )
