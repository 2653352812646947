"""Section composition: Fresh, Today and Trending.

Sections are built by a pure fold over a fixed sequence. The set of ids
already placed is threaded through the fold as an explicit accumulator
(``SeenIds``) and returned with the result, so no section can re-include an
item an earlier section took.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import AbstractSet, Iterable, Mapping, Optional, Sequence

from kivaw_feed.core.classifier import TimeWindows, is_trending_eligible
from kivaw_feed.core.models import FeedItem, FeedPool, FeedSection, RawContentItem
from kivaw_feed.core.ranking import rank_by_score
from kivaw_feed.core.saved_state import is_saved
from kivaw_feed.utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_SECTION_CAP = 20


@dataclass(frozen=True)
class SectionTemplate:
    id: str
    title: str
    subtitle: str


FRESH = SectionTemplate("fresh", "Fresh", "Last 6 hours")
TODAY = SectionTemplate("today", "Today", "Last 24 hours")
TRENDING = SectionTemplate("trending", "Trending", "Last 48 hours")


@dataclass(frozen=True)
class SeenIds:
    """Immutable accumulator of ids already placed in a section."""

    ids: frozenset[str] = field(default_factory=frozenset)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self.ids

    def __len__(self) -> int:
        return len(self.ids)

    def admit(
        self, candidates: Iterable[RawContentItem], cap: int
    ) -> tuple[list[RawContentItem], "SeenIds"]:
        """Take up to ``cap`` not-yet-seen candidates, in order.

        The cap applies after the seen filter. Duplicates inside
        ``candidates`` are admitted once.
        """
        admitted: list[RawContentItem] = []
        taken: set[str] = set()
        for item in candidates:
            if len(admitted) >= cap:
                break
            if item.id in self.ids or item.id in taken:
                continue
            admitted.append(item)
            taken.add(item.id)
        return admitted, SeenIds(self.ids | taken)


@dataclass(frozen=True)
class Composition:
    sections: list[FeedSection]
    seen: SeenIds

    def section(self, section_id: str) -> Optional[FeedSection]:
        for section in self.sections:
            if section.id == section_id:
                return section
        return None


def trending_candidates(
    pool: Sequence[RawContentItem], windows: TimeWindows
) -> list[RawContentItem]:
    """Pool items in the 24-48h window, ranked by score."""
    return rank_by_score(item for item in pool if is_trending_eligible(item, windows))


def build_sections(
    pool: FeedPool,
    now: datetime,
    *,
    saved_ids: AbstractSet[str] = frozenset(),
    aliases: Optional[Mapping[str, str]] = None,
    cap: int = DEFAULT_SECTION_CAP,
    windows: Optional[TimeWindows] = None,
    templates: tuple[SectionTemplate, SectionTemplate, SectionTemplate] = (FRESH, TODAY, TRENDING),
) -> Composition:
    """Compose the display sections for one pass.

    ``fresh`` and ``today`` come pre-windowed from upstream and keep their
    upstream order. Trending is derived from the whole pool. Sections left
    empty after deduplication are omitted.
    """
    windows = windows or TimeWindows.from_now(now)
    fresh_t, today_t, trending_t = templates

    plan: list[tuple[SectionTemplate, list[RawContentItem]]] = [
        (fresh_t, list(pool.fresh)),
        (today_t, list(pool.today)),
        (trending_t, trending_candidates(pool.feed, windows)),
    ]

    seen = SeenIds()
    sections: list[FeedSection] = []
    for template, candidates in plan:
        admitted, seen = seen.admit(candidates, cap)
        if not admitted:
            continue
        sections.append(
            FeedSection(
                id=template.id,
                title=template.title,
                subtitle=template.subtitle,
                items=[
                    FeedItem.from_raw(item, is_saved=is_saved(item.id, saved_ids, aliases))
                    for item in admitted
                ],
            )
        )

    logger.debug(
        "Sections composed",
        sections=[s.id for s in sections],
        placed=len(seen),
        pool_size=len(pool.feed),
    )
    return Composition(sections=sections, seen=seen)
