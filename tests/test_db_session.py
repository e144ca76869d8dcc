"""Tests for engine pooling and session isolation."""

from __future__ import annotations

import pytest
from pydantic import SecretStr
from sqlalchemy import func, select
from sqlalchemy.pool import StaticPool

from paws.config import DatabaseSettings, PawsSettings
from paws.db.models.core import User
from paws.db.session import Database
from paws.utils.datetime import unix_now


def _database(dsn: str) -> Database:
    settings = PawsSettings(
        jwt_secret=SecretStr("test-secret"),
        database=DatabaseSettings(dsn=dsn),
    )
    return Database(settings=settings)


@pytest.mark.parametrize(
    ("dsn", "expected"),
    [
        ("sqlite+aiosqlite://", True),
        ("sqlite+aiosqlite:///:memory:", True),
        ("sqlite+aiosqlite:///./paws.db", False),
        ("mysql+asyncmy://paws:pw@db/paws", False),
    ],
)
def test_only_in_memory_sqlite_shares_a_connection(dsn, expected):
    assert DatabaseSettings(dsn=dsn).is_sqlite_memory is expected


@pytest.mark.asyncio
async def test_in_memory_database_uses_static_pool():
    database = _database("sqlite+aiosqlite://")
    try:
        assert isinstance(database.engine.pool, StaticPool)
    finally:
        await database.dispose()


@pytest.mark.asyncio
async def test_file_database_sessions_are_isolated(tmp_path):
    database = _database(f"sqlite+aiosqlite:///{tmp_path / 'paws.db'}")
    await database.create_all()
    try:
        assert not isinstance(database.engine.pool, StaticPool)

        async with database.session() as writer:
            writer.add(User(email="a@example.com", password_hash="x", created_at=unix_now()))
            await writer.flush()

            async with database.session() as reader:
                seen = await reader.scalar(select(func.count()).select_from(User))
                await reader.rollback()

            await writer.commit()

        async with database.session() as check:
            persisted = await check.scalar(select(func.count()).select_from(User))

        assert seen == 0
        assert persisted == 1
    finally:
        await database.dispose()
