"""Feed composition engine: sections, ranking, saved state, ids, pagination."""

from kivaw_feed.core.classifier import Bucket, TimeWindows, classify, effective_timestamp
from kivaw_feed.core.errors import (
    FeedError,
    InvalidResponseShape,
    PersistFailure,
    ReconciliationFailure,
    UpstreamLogicalError,
    UpstreamUnavailable,
)
from kivaw_feed.core.ids import (
    ContentFields,
    DurableId,
    EphemeralId,
    IdReconciler,
    parse_content_id,
)
from kivaw_feed.core.models import (
    ExploreFilters,
    ExploreItem,
    ExplorePage,
    FeedItem,
    FeedPool,
    FeedSection,
    RawContentItem,
)
from kivaw_feed.core.pagination import ExplorePaginator, ExploreView, PaginatorState
from kivaw_feed.core.ranking import rank_by_score
from kivaw_feed.core.saved_state import (
    SaveState,
    SaveToggler,
    ServerStatus,
    apply_saved_state,
    is_saved,
)
from kivaw_feed.core.sections import Composition, SeenIds, build_sections

__all__ = [
    "Bucket",
    "Composition",
    "ContentFields",
    "DurableId",
    "EphemeralId",
    "ExploreFilters",
    "ExploreItem",
    "ExplorePage",
    "ExplorePaginator",
    "ExploreView",
    "FeedError",
    "FeedItem",
    "FeedPool",
    "FeedSection",
    "IdReconciler",
    "InvalidResponseShape",
    "PaginatorState",
    "PersistFailure",
    "RawContentItem",
    "ReconciliationFailure",
    "SaveState",
    "SaveToggler",
    "SeenIds",
    "ServerStatus",
    "TimeWindows",
    "UpstreamLogicalError",
    "UpstreamUnavailable",
    "apply_saved_state",
    "build_sections",
    "classify",
    "effective_timestamp",
    "is_saved",
    "parse_content_id",
    "rank_by_score",
]
