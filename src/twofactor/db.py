"""Async Postgres pool for the secret store.

Writes go through :func:`transaction`, which commits only when its block
exits cleanly. An exception or task cancellation anywhere inside the block
rolls back every statement in it.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator
from typing import Any

import psycopg
import psycopg.rows
import psycopg_pool

from twofactor.config import settings

logger = logging.getLogger(__name__)

Cursor = psycopg.AsyncCursor[dict[str, Any]]

_pool: psycopg_pool.AsyncConnectionPool | None = None


async def init_pool(min_size: int = 1, max_size: int = 5) -> psycopg_pool.AsyncConnectionPool:
    global _pool
    if _pool is None:
        _pool = psycopg_pool.AsyncConnectionPool(
            conninfo=settings.database_url,
            min_size=min_size,
            max_size=max_size,
            kwargs={"row_factory": psycopg.rows.dict_row},
            open=False,
        )
        await _pool.open()
        logger.info("Connection pool open (%d-%d)", min_size, max_size)
    return _pool


async def close_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


@contextlib.asynccontextmanager
async def transaction() -> AsyncIterator[Cursor]:
    """Cursor bound to an explicit transaction on a pooled connection."""
    if _pool is None:
        raise RuntimeError("Database pool not initialized. Call init_pool() first.")
    async with _pool.connection() as conn:
        async with conn.transaction():
            async with conn.cursor() as cur:
                yield cur


async def fetch_one(query: str, params: tuple[Any, ...] | None = None) -> dict[str, Any] | None:
    """Single-row read; ``None`` when nothing matches."""
    async with transaction() as cur:
        await cur.execute(query, params)
        return await cur.fetchone()


async def ping() -> bool:
    row = await fetch_one("SELECT 1 AS ok")
    return bool(row and row["ok"] == 1)
