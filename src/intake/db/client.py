"""Database connection helpers."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

import psycopg
from psycopg.rows import DictRow, dict_row


async def get_connection(
    database_url: str,
    timeout_seconds: int = 30,
    autocommit: bool = False,
) -> psycopg.AsyncConnection[DictRow]:
    """Create a new async database connection returning dict rows."""
    return await psycopg.AsyncConnection.connect(
        database_url,
        connect_timeout=timeout_seconds,
        autocommit=autocommit,
        row_factory=dict_row,
    )


@asynccontextmanager
async def db_cursor(
    conn: psycopg.AsyncConnection[DictRow],
) -> AsyncIterator[psycopg.AsyncCursor[DictRow]]:
    """Yield a cursor with automatic commit/rollback."""
    try:
        async with conn.cursor() as cursor:
            yield cursor
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
