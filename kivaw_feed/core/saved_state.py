"""Saved-state annotation and optimistic save toggling.

A toggle has two phases. ``local`` flips immediately and is what renderers
show; ``server`` follows the persist round-trip. A failed round-trip is
kept as ``ServerStatus.FAILED`` (no automatic rollback) so the caller can
offer a retry.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import (
    AbstractSet,
    Awaitable,
    Callable,
    Iterable,
    Mapping,
    Optional,
    Protocol,
    Sequence,
)

from kivaw_feed.core.errors import PersistFailure
from kivaw_feed.core.models import FeedSection
from kivaw_feed.utils.logging_config import get_logger

logger = get_logger(__name__)


class SavedItemStore(Protocol):
    async def upsert(self, user_id: str, content_id: str) -> None: ...

    async def delete(self, user_id: str, content_id: str) -> None: ...

    async def list(self, user_id: str) -> list[str]: ...


class ServerStatus(str, Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    FAILED = "failed"


@dataclass(frozen=True)
class SaveState:
    local: bool
    server: ServerStatus = ServerStatus.CONFIRMED
    error: Optional[str] = None
    content_id: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.server is ServerStatus.FAILED


def is_saved(
    item_id: str,
    saved_ids: AbstractSet[str],
    aliases: Optional[Mapping[str, str]] = None,
) -> bool:
    """Membership test in the durable id space.

    Ephemeral ids are looked up through ``aliases`` (ephemeral -> durable)
    once they have been reconciled.
    """
    if item_id in saved_ids:
        return True
    if aliases:
        durable = aliases.get(item_id)
        return durable is not None and durable in saved_ids
    return False


def apply_saved_state(
    sections: Sequence[FeedSection],
    saved_ids: AbstractSet[str],
    aliases: Optional[Mapping[str, str]] = None,
) -> list[FeedSection]:
    """Return copies of ``sections`` with ``is_saved`` recomputed."""
    return [
        section.model_copy(
            update={
                "items": [
                    item.model_copy(update={"is_saved": is_saved(item.id, saved_ids, aliases)})
                    for item in section.items
                ]
            }
        )
        for section in sections
    ]


Resolver = Callable[[str], Awaitable[str]]
ChangeListener = Callable[[str, SaveState], None]


class SaveToggler:
    """Optimistic save/unsave for one user.

    At most one toggle per item id is in flight; a second request for the
    same id while the first is pending is a no-op.
    """

    def __init__(
        self,
        store: SavedItemStore,
        user_id: str,
        saved_ids: Iterable[str] = (),
    ) -> None:
        self._store = store
        self._user_id = user_id
        self._saved: set[str] = set(saved_ids)
        self._states: dict[str, SaveState] = {}
        self._busy: set[str] = set()
        self._listeners: list[ChangeListener] = []

    @property
    def saved_ids(self) -> frozenset[str]:
        return frozenset(self._saved)

    def replace_saved_ids(self, saved_ids: Iterable[str]) -> None:
        self._saved = set(saved_ids)

    def is_busy(self, item_id: str) -> bool:
        return item_id in self._busy

    @property
    def has_pending(self) -> bool:
        return bool(self._busy)

    def state_for(self, item_id: str) -> Optional[SaveState]:
        return self._states.get(item_id)

    def on_change(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def _publish(self, item_id: str, state: SaveState) -> None:
        self._states[item_id] = state
        for listener in self._listeners:
            listener(item_id, state)

    async def toggle(
        self,
        item_id: str,
        currently_saved: bool,
        resolve: Optional[Resolver] = None,
    ) -> Optional[SaveState]:
        """Flip the saved state of ``item_id``.

        ``resolve`` maps the display id to the durable content id before
        anything changes; a resolution error propagates and nothing is
        flipped or persisted. Returns None when the item is busy.
        """
        if item_id in self._busy:
            logger.debug("Toggle ignored, item busy", item_id=item_id)
            return None

        self._busy.add(item_id)
        try:
            content_id = await resolve(item_id) if resolve is not None else item_id
            target = not currently_saved

            if target:
                self._saved.add(content_id)
            else:
                self._saved.discard(content_id)
            self._publish(
                item_id,
                SaveState(local=target, server=ServerStatus.PENDING, content_id=content_id),
            )

            try:
                if target:
                    await self._store.upsert(self._user_id, content_id)
                else:
                    await self._store.delete(self._user_id, content_id)
            except PersistFailure as exc:
                logger.warning(
                    "Save round-trip failed",
                    item_id=item_id,
                    content_id=content_id,
                    saved=target,
                    error=exc.message,
                )
                state = SaveState(
                    local=target,
                    server=ServerStatus.FAILED,
                    error=exc.message,
                    content_id=content_id,
                )
            else:
                state = SaveState(
                    local=target, server=ServerStatus.CONFIRMED, content_id=content_id
                )

            self._publish(item_id, state)
            return state
        finally:
            self._busy.discard(item_id)
