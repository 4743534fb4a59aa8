"""Async SQLAlchemy wiring for the settings store.

``DATABASE_URL`` picks the backend: SQLite through aiosqlite by default,
PostgreSQL through asyncpg when a ``postgres://`` URL is given.
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Tuple

import sqlalchemy
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

_ASYNC_SCHEMES = {
    "postgres://": "postgresql+asyncpg://",
    "postgresql://": "postgresql+asyncpg://",
}


def normalize_url(url: str) -> str:
    """Rewrite sync driver URLs to their async equivalents."""
    for prefix, replacement in _ASYNC_SCHEMES.items():
        if url.startswith(prefix):
            return replacement + url[len(prefix):]
    return url


def build_engine(url: str) -> AsyncEngine:
    pool_args = {} if url.startswith("sqlite") else {"pool_size": 5, "max_overflow": 10}
    return create_async_engine(
        url,
        echo=os.getenv("DB_ECHO", "false").lower() == "true",
        **pool_args,
    )


DATABASE_URL = normalize_url(os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./reviewer.db"))

engine: AsyncEngine = build_engine(DATABASE_URL)
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    """Declarative base for the ORM models."""


def use_engine(new_engine: AsyncEngine) -> Tuple[AsyncEngine, async_sessionmaker]:
    """Rebind the module engine and session factory; returns the previous pair."""
    global engine, async_session_factory
    previous = (engine, async_session_factory)
    engine = new_engine
    async_session_factory = async_sessionmaker(
        new_engine, class_=AsyncSession, expire_on_commit=False,
    )
    return previous


@asynccontextmanager
async def get_session_ctx() -> AsyncGenerator[AsyncSession, None]:
    """Session that commits on success and rolls back on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency wrapping get_session_ctx."""
    async with get_session_ctx() as session:
        yield session


async def init_db() -> None:
    if engine.url.get_backend_name() == "sqlite":
        async with engine.begin() as conn:
            await conn.execute(sqlalchemy.text("PRAGMA journal_mode=WAL"))
            await conn.execute(sqlalchemy.text("PRAGMA busy_timeout=5000"))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
