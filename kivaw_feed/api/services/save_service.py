"""Save toggling on top of id reconciliation and the saved-items store."""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from typing import Optional

from kivaw_feed.core.ids import ContentFields, DurableContentStore, IdReconciler
from kivaw_feed.core.saved_state import SavedItemStore, SaveState, SaveToggler
from kivaw_feed.utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_USERS = 1_000


class SaveService:
    """Per-user save togglers sharing one id reconciler.

    Togglers for the ``max_users`` most recently active users stay in
    memory. An evicted user's saved ids are re-read from the store on their
    next request.
    """

    def __init__(
        self,
        content_store: DurableContentStore,
        saved_store: SavedItemStore,
        max_users: int = DEFAULT_MAX_USERS,
    ) -> None:
        self._saved_store = saved_store
        self.reconciler = IdReconciler(content_store)
        self._max_users = max_users
        self._togglers: OrderedDict[str, SaveToggler] = OrderedDict()
        self._load_lock: Optional[asyncio.Lock] = None

    def _get_load_lock(self) -> asyncio.Lock:
        if self._load_lock is None:
            self._load_lock = asyncio.Lock()
        return self._load_lock

    async def toggler_for(self, user_id: str) -> SaveToggler:
        """Return the user's toggler, loading saved ids on first use."""
        toggler = self._togglers.get(user_id)
        if toggler is not None:
            self._togglers.move_to_end(user_id)
            return toggler

        async with self._get_load_lock():
            toggler = self._togglers.get(user_id)
            if toggler is None:
                saved_ids = await self._saved_store.list(user_id)
                toggler = self._togglers[user_id] = SaveToggler(
                    self._saved_store, user_id, saved_ids
                )
                logger.debug("Saved ids loaded", user_id=user_id, count=len(saved_ids))
                self._evict()
        return toggler

    def _evict(self) -> None:
        # Togglers with a toggle in flight are skipped, the newest is kept
        for user_id in list(self._togglers)[:-1]:
            if len(self._togglers) <= self._max_users:
                return
            if not self._togglers[user_id].has_pending:
                del self._togglers[user_id]
                logger.debug("Save toggler evicted", user_id=user_id)

    async def load_saved_ids(self, user_id: str) -> frozenset[str]:
        """Re-read the user's saved ids from the store."""
        saved_ids = await self._saved_store.list(user_id)
        toggler = await self.toggler_for(user_id)
        toggler.replace_saved_ids(saved_ids)
        return toggler.saved_ids

    async def saved_view(self, user_id: str) -> tuple[frozenset[str], dict[str, str]]:
        """Saved durable ids plus the ephemeral -> durable aliases known so far."""
        toggler = await self.toggler_for(user_id)
        return toggler.saved_ids, self.reconciler.aliases

    async def toggle(
        self,
        user_id: str,
        item_id: str,
        currently_saved: bool,
        fields: ContentFields,
    ) -> Optional[SaveState]:
        """Resolve ``item_id`` to a durable id and flip its saved state.

        Returns None if a toggle for the same item is already in flight.
        """
        toggler = await self.toggler_for(user_id)

        async def resolve(raw: str) -> str:
            return await self.reconciler.resolve_raw(raw, fields)

        return await toggler.toggle(item_id, currently_saved, resolve=resolve)

    async def save(
        self, user_id: str, item_id: str, fields: ContentFields
    ) -> Optional[SaveState]:
        return await self.toggle(user_id, item_id, False, fields)

    async def unsave(self, user_id: str, item_id: str) -> Optional[SaveState]:
        # Unsaving never creates a record, an unknown id fails reconciliation
        return await self.toggle(user_id, item_id, True, ContentFields())
