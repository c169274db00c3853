"""
saferoute_client.storage.sql

Async SQLAlchemy key-value backend for runtimes without an OS keystore (web-like targets).

Responsibilities:
- Define the `storage_items` table (one row per logical key).
- Create the async engine + session factory from a database URL.
- Implement the storage backend protocol with atomic upsert/delete semantics.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Text, delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    # Naive UTC; the column is informational only (no expiry logic reads it).
    return datetime.utcnow()


class Base(DeclarativeBase):
    pass


class StorageItem(Base):
    __tablename__ = "storage_items"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)


def create_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(database_url, pool_pre_ping=True)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False avoids surprising lazy loads after commits.
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False,
    )


# Dialects with INSERT .. ON CONFLICT DO UPDATE.
_UPSERT_INSERTS = {"sqlite": sqlite.insert, "postgresql": postgresql.insert}


class SqlStorageBackend:
    """
    Plain key-value persistence. Values are stored as-is; there is no listing query.
    """

    name = "sql"

    def __init__(self, *, database_url: str, engine: AsyncEngine | None = None) -> None:
        self._engine = engine or create_engine(database_url)
        dialect = self._engine.dialect.name
        if dialect not in _UPSERT_INSERTS:
            raise ValueError(f"unsupported storage database dialect: {dialect}")
        self._insert = _UPSERT_INSERTS[dialect]
        self._sessions = create_sessionmaker(self._engine)

    async def init(self) -> None:
        # Create the table if it does not exist yet.
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def aclose(self) -> None:
        await self._engine.dispose()

    async def get_item(self, key: str) -> str | None:
        async with self._sessions() as session:
            stmt = select(StorageItem.value).where(StorageItem.key == key)
            return (await session.execute(stmt)).scalar_one_or_none()

    async def set_item(self, key: str, value: str) -> None:
        now = _utcnow()
        stmt = self._insert(StorageItem).values(key=key, value=value, updated_at=now)
        stmt = stmt.on_conflict_do_update(
            index_elements=[StorageItem.key],
            set_={"value": value, "updated_at": now},
        )
        async with self._sessions() as session:
            await session.execute(stmt)
            await session.commit()

    async def remove_item(self, key: str) -> None:
        async with self._sessions() as session:
            await session.execute(delete(StorageItem).where(StorageItem.key == key))
            await session.commit()


# --- Module Notes -----------------------------------------------------------
# SQLite is the expected target (aiosqlite driver); PostgreSQL also works. Writes are a
# single upsert statement, so concurrent first writes of one key cannot collide.
