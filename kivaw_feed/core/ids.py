"""Ephemeral vs. durable content identifiers and their reconciliation.

Upstream ids such as ``feed_items:<uuid>`` or
``external_content_cache:<cacheId>`` are not safe as foreign keys. Before
an item can be saved its id is resolved to a durable content record, which
is created on first use.
"""

from __future__ import annotations

import asyncio
import re
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Protocol, Union

from kivaw_feed.core.errors import ReconciliationFailure
from kivaw_feed.utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_ALIASES = 10_000

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)


@dataclass(frozen=True)
class EphemeralId:
    namespace: Optional[str]
    external_id: str

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.namespace}:{self.external_id}"
        return self.external_id


@dataclass(frozen=True)
class DurableId:
    value: str

    def __str__(self) -> str:
        return self.value


ContentId = Union[EphemeralId, DurableId]


def is_durable_format(raw: str) -> bool:
    return bool(_UUID_RE.match(raw))


def parse_content_id(raw: str) -> ContentId:
    """Tag a raw upstream id as durable or ephemeral.

    Only the first ``:`` separates the namespace, external ids may contain
    colons themselves.
    """
    raw = raw.strip()
    if not raw:
        raise ValueError("content id must not be empty")
    if is_durable_format(raw):
        return DurableId(raw)
    namespace, sep, rest = raw.partition(":")
    if sep and namespace and rest:
        return EphemeralId(namespace=namespace, external_id=rest)
    return EphemeralId(namespace=None, external_id=raw)


@dataclass(frozen=True)
class ContentFields:
    """Denormalized fields copied into a new durable record."""

    title: Optional[str] = None
    url: Optional[str] = None
    image_url: Optional[str] = None
    kind: Optional[str] = None
    provider: Optional[str] = None


class DurableContentStore(Protocol):
    async def find_by_external_id(self, external_id: str) -> Optional[str]: ...

    async def create(
        self, external_id: str, source_table: Optional[str], fields: ContentFields
    ) -> str: ...


class IdReconciler:
    """Lookup-or-create of durable ids.

    Resolution of the same external id is serialized within the process.
    Across processes the store's uniqueness constraint on ``external_id`` is
    what prevents duplicates.

    The alias map keeps the ``max_aliases`` most recently used entries.
    Per-id locks only live while someone holds or waits on them.
    """

    def __init__(
        self, store: DurableContentStore, max_aliases: int = DEFAULT_MAX_ALIASES
    ) -> None:
        self._store = store
        self._max_aliases = max_aliases
        self._aliases: OrderedDict[str, str] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @property
    def aliases(self) -> dict[str, str]:
        """Raw ephemeral id -> durable id, for every id resolved so far."""
        return dict(self._aliases)

    @asynccontextmanager
    async def _serialized(self, external_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(external_id)
        if lock is None:
            lock = self._locks[external_id] = asyncio.Lock()
        self._lock_users[external_id] = self._lock_users.get(external_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._lock_users[external_id] - 1
            if remaining:
                self._lock_users[external_id] = remaining
            else:
                del self._lock_users[external_id]
                del self._locks[external_id]

    def _cached(self, raw: str) -> Optional[str]:
        durable = self._aliases.get(raw)
        if durable is not None:
            self._aliases.move_to_end(raw)
        return durable

    def _remember(self, raw: str, durable: str) -> None:
        self._aliases[raw] = durable
        self._aliases.move_to_end(raw)
        while len(self._aliases) > self._max_aliases:
            self._aliases.popitem(last=False)

    async def resolve(self, content_id: ContentId, fields: ContentFields) -> DurableId:
        if isinstance(content_id, DurableId):
            return content_id

        raw = str(content_id)
        cached = self._cached(raw)
        if cached is not None:
            return DurableId(cached)

        async with self._serialized(content_id.external_id):
            cached = self._cached(raw)
            if cached is not None:
                return DurableId(cached)

            durable = await self._find(content_id)
            if durable is None:
                durable = await self._create(content_id, fields)
                logger.info(
                    "Durable content record created",
                    external_id=content_id.external_id,
                    namespace=content_id.namespace,
                    content_id=durable,
                )

            self._remember(raw, durable)
            return DurableId(durable)

    async def resolve_raw(self, raw: str, fields: ContentFields) -> str:
        return (await self.resolve(parse_content_id(raw), fields)).value

    async def _find(self, content_id: EphemeralId) -> Optional[str]:
        try:
            return await self._store.find_by_external_id(content_id.external_id)
        except ReconciliationFailure:
            raise
        except Exception as exc:
            logger.warning(
                "Durable content lookup failed",
                external_id=content_id.external_id,
                error=str(exc),
            )
            raise ReconciliationFailure(
                "Couldn't look up this item right now. Please try again.",
                retryable=True,
            ) from exc

    async def _create(self, content_id: EphemeralId, fields: ContentFields) -> str:
        if not (fields.title and fields.title.strip()):
            raise ReconciliationFailure(
                f"Can't save '{content_id}': the item has no title."
            )
        try:
            return await self._store.create(
                content_id.external_id, content_id.namespace, fields
            )
        except ReconciliationFailure:
            raise
        except Exception as exc:
            logger.warning(
                "Durable content create failed",
                external_id=content_id.external_id,
                error=str(exc),
            )
            raise ReconciliationFailure(
                "Couldn't save this item right now. Please try again.",
                retryable=True,
            ) from exc
