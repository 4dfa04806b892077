"""Async SQLAlchemy engine and transaction scoping.

The store handle is an explicit object: the app lifespan builds one from
settings and keeps it on ``app.state.store``; tests build their own against
a throwaway database. Engine components receive it at construction.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from questmap.db.base import Base
from questmap.errors import TransactionFailure

logger = logging.getLogger(__name__)


class LedgerStore:
    """Owns the engine and hands out sessions and transaction scopes."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_url(cls, url: str, *, echo: bool = False) -> LedgerStore:
        """Build a store for ``url``. Pool sizing only applies to server databases."""
        kwargs: dict[str, object] = {"echo": echo, "pool_pre_ping": True}
        if url.startswith("postgresql"):
            kwargs.update(pool_size=20, max_overflow=10)
        return cls(create_async_engine(url, **kwargs))

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Plain session for read paths."""
        async with self._session_factory() as session:
            yield session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Run the block as one atomic unit.

        Any exception leaving the block rolls the transaction back before the
        scope exits. Store-level errors surface as ``TransactionFailure``;
        engine rejections propagate unchanged.
        """
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    yield session
            except SQLAlchemyError as exc:
                logger.warning("Transaction rolled back: %s", exc.__class__.__name__, exc_info=True)
                raise TransactionFailure() from exc

    async def create_all(self) -> None:
        """Create all tables (tests and local development)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        """Dispose of the database engine."""
        await self.engine.dispose()


def get_store(request: Request) -> LedgerStore:
    """FastAPI dependency: the store attached to the running app."""
    store: LedgerStore | None = getattr(request.app.state, "store", None)
    if store is None:
        msg = "Database not initialized. Attach a LedgerStore to app.state.store first."
        raise RuntimeError(msg)
    return store


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session (FastAPI dependency)."""
    async with get_store(request).session() as session:
        yield session
