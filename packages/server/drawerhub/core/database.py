"""
Database connection, session management and the transaction coordinator.

An ``AsyncSession`` is the only query executor the services see. Outside
``session.begin()`` it is an unscoped pooled executor for reads; inside it is
a transaction handle. Services take it as an argument and never reach for a
process-wide pool.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from drawerhub.core.errors import DrawerHubError

log = structlog.get_logger()


class Database:
    """Owns the engine (and so the bounded connection pool) for one app."""

    def __init__(
        self,
        url: str,
        *,
        echo: bool = False,
        pool_size: int | None = None,
        max_overflow: int | None = None,
    ):
        engine_kwargs: dict = {"echo": echo, "future": True}
        if not url.startswith("sqlite"):
            engine_kwargs["pool_pre_ping"] = True
            if pool_size is not None:
                engine_kwargs["pool_size"] = pool_size
            if max_overflow is not None:
                engine_kwargs["max_overflow"] = max_overflow

        self.engine = create_async_engine(url, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def create_all(self) -> None:
        """Create all tables (development and tests; production uses migrations)."""
        import drawerhub.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


class TransactionCoordinator:
    """
    Runs a sequence of writes as one atomic unit.

    ``transaction()`` checks a session out of the pool, issues BEGIN, yields
    the session, and commits when the block exits cleanly. Any exception
    rolls the whole unit back before it propagates. The session (and its
    connection) is released on every exit path.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def transaction(self, name: str) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    yield session
            except DrawerHubError as exc:
                log.info(
                    "transaction.rolled_back",
                    operation=name,
                    reason=type(exc).__name__,
                    detail=exc.message,
                )
                raise
            except Exception:
                log.error("transaction.failed", operation=name, exc_info=True)
                raise


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------

def get_database(request: Request) -> Database:
    return request.app.state.db


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session. The dependency itself never commits."""
    async with get_database(request).session() as session:
        yield session


def get_coordinator(request: Request) -> TransactionCoordinator:
    return TransactionCoordinator(get_database(request).session_factory)
