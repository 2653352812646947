"""SQLite persistence for durable content records and saved items."""

import os
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, String, Text, UniqueConstraint, delete, func
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.future import select
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from kivaw_feed.core.errors import PersistFailure, ReconciliationFailure
from kivaw_feed.core.ids import ContentFields
from kivaw_feed.utils.logging_config import get_logger

logger = get_logger(__name__)

Base = declarative_base()


class ContentItemModel(Base):
    """Durable content record. One row per external id."""

    __tablename__ = "content_items"
    __table_args__ = (UniqueConstraint("external_id", name="uix_content_items_external_id"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    external_id = Column(String(255), nullable=False)
    source_table = Column(String(64), nullable=True)
    kind = Column(String(32), nullable=True)
    title = Column(Text, nullable=False)
    url = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    provider = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=datetime.now)


class SavedItemModel(Base):
    """A user's saved content item."""

    __tablename__ = "saved_items"
    __table_args__ = (
        UniqueConstraint("user_id", "content_item_id", name="uix_saved_items_user_content"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(255), nullable=False, index=True)
    content_item_id = Column(String(36), nullable=False)
    created_at = Column(DateTime, default=datetime.now)


# Global engine and session factory
_engine = None
_async_session_factory = None


async def init_database(db_path: str = "data/kivaw_feed.db") -> None:
    """Initialize the database and create tables.

    ``":memory:"`` creates a single shared in-memory database (tests).
    """
    global _engine, _async_session_factory

    if db_path == ":memory:":
        _engine = create_async_engine(
            "sqlite+aiosqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        os.makedirs(os.path.dirname(db_path) if os.path.dirname(db_path) else ".", exist_ok=True)
        _engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", echo=False)

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    _async_session_factory = sessionmaker(_engine, class_=AsyncSession, expire_on_commit=False)


async def close_database() -> None:
    global _engine, _async_session_factory

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _async_session_factory = None


def get_session() -> AsyncSession:
    """Get a new database session."""
    if _async_session_factory is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _async_session_factory()


class SqlContentStore:
    """Durable content store used by the id reconciler."""

    async def find_by_external_id(self, external_id: str) -> Optional[str]:
        async with get_session() as session:
            result = await session.execute(
                select(ContentItemModel.id).where(ContentItemModel.external_id == external_id)
            )
            return result.scalar_one_or_none()

    async def create(
        self, external_id: str, source_table: Optional[str], fields: ContentFields
    ) -> str:
        """Insert a record and return its id.

        If another writer inserted the same external id first, the unique
        constraint fires and the existing id is returned instead.
        """
        if not fields.title:
            raise ReconciliationFailure("A title is required to create a content record.")

        async with get_session() as session:
            record = ContentItemModel(
                id=str(uuid.uuid4()),
                external_id=external_id,
                source_table=source_table,
                kind=fields.kind,
                title=fields.title,
                url=fields.url,
                image_url=fields.image_url,
                provider=fields.provider,
            )
            session.add(record)
            try:
                await session.commit()
                return record.id
            except IntegrityError:
                await session.rollback()
                logger.info("Content record created concurrently", external_id=external_id)

        existing = await self.find_by_external_id(external_id)
        if existing is None:
            raise ReconciliationFailure("Content record could not be created.")
        return existing

    async def get(self, content_id: str) -> Optional[ContentItemModel]:
        async with get_session() as session:
            result = await session.execute(
                select(ContentItemModel).where(ContentItemModel.id == content_id)
            )
            return result.scalar_one_or_none()

    async def count(self) -> int:
        async with get_session() as session:
            result = await session.execute(select(func.count(ContentItemModel.id)))
            return result.scalar_one()


class SqlSavedItemStore:
    """Saved-items store keyed by ``(user_id, content_id)``."""

    async def upsert(self, user_id: str, content_id: str) -> None:
        try:
            async with get_session() as session:
                await session.execute(
                    sqlite_insert(SavedItemModel)
                    .values(
                        id=str(uuid.uuid4()),
                        user_id=user_id,
                        content_item_id=content_id,
                        created_at=datetime.now(),
                    )
                    .on_conflict_do_nothing(index_elements=["user_id", "content_item_id"])
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise PersistFailure("Couldn't update saved right now.") from exc

    async def delete(self, user_id: str, content_id: str) -> None:
        try:
            async with get_session() as session:
                await session.execute(
                    delete(SavedItemModel).where(
                        SavedItemModel.user_id == user_id,
                        SavedItemModel.content_item_id == content_id,
                    )
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise PersistFailure("Couldn't update saved right now.") from exc

    async def list(self, user_id: str) -> list[str]:
        try:
            async with get_session() as session:
                result = await session.execute(
                    select(SavedItemModel.content_item_id)
                    .where(SavedItemModel.user_id == user_id)
                    .order_by(SavedItemModel.created_at.desc())
                )
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise PersistFailure("Couldn't load saved items.") from exc
