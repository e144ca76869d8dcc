"""Async SQLAlchemy engine and session management."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from paws.config import PawsSettings, get_settings
from paws.db.base import Base
from paws.logging import logger


class Database:
    """Lazy SQLAlchemy engine/session factory wrapper."""

    def __init__(self, settings: PawsSettings | None = None) -> None:
        self.settings = settings or get_settings()
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    def _engine_options(self) -> dict[str, Any]:
        db_cfg = self.settings.database
        if db_cfg.is_sqlite_memory:
            # one shared connection keeps the in-memory database alive
            return {
                "echo": db_cfg.echo,
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            }
        if db_cfg.is_sqlite:
            return {"echo": db_cfg.echo}
        return {
            "echo": db_cfg.echo,
            "pool_size": db_cfg.pool_size,
            "max_overflow": db_cfg.max_overflow,
            "pool_recycle": db_cfg.pool_recycle,
            "pool_pre_ping": db_cfg.pool_pre_ping,
        }

    def _ensure_engine(self) -> None:
        if self._engine is None:
            db_cfg = self.settings.database
            self._engine = create_async_engine(db_cfg.dsn, **self._engine_options())
            self._session_factory = async_sessionmaker(
                bind=self._engine,
                expire_on_commit=False,
                autoflush=False,
            )
            logger.info("db_engine_initialized", dsn=db_cfg.dsn)

    @property
    def engine(self) -> AsyncEngine:
        self._ensure_engine()
        assert self._engine is not None
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        self._ensure_engine()
        assert self._session_factory is not None
        return self._session_factory

    async def create_all(self) -> None:
        # registers every mapped table on Base.metadata
        import paws.db.models.core  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        factory = self.session_factory
        async with factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise


__all__ = ["Database"]
