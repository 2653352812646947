"""Error taxonomy for feed composition, pagination and saving."""

from __future__ import annotations


class FeedError(Exception):
    """Base class for all caller-facing errors.

    Every error carries a human-readable ``message`` and tells the caller
    whether offering a retry makes sense.
    """

    retryable: bool = True

    def __init__(self, message: str, *, retryable: bool | None = None) -> None:
        super().__init__(message)
        self.message = message
        if retryable is not None:
            self.retryable = retryable


class UpstreamUnavailable(FeedError):
    """Transport or deployment failure talking to the aggregator."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamLogicalError(FeedError):
    """The aggregator answered 2xx but reported an ``error``."""


class InvalidResponseShape(UpstreamLogicalError):
    """The aggregator answered with missing or malformed fields."""


class PersistFailure(FeedError):
    """A save or unsave round-trip to the saved-items store failed."""


class ReconciliationFailure(FeedError):
    """An ephemeral id could not be resolved to a durable content record."""

    retryable = False
