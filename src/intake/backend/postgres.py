"""PostgreSQL backend using psycopg async connections and LISTEN/NOTIFY."""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

import orjson
import psycopg
from psycopg import errors as pg_errors
from psycopg import sql
from psycopg.rows import DictRow

from intake.backend.base import ChangeHandler
from intake.config.registry import AppConfig
from intake.db.client import db_cursor, get_connection
from intake.errors import BackendError, ErrorKind
from intake.models import ChangeEvent
from intake.utils.logging import get_logger


logger = get_logger(__name__)


def notify_channel(table: str) -> str:
    """NOTIFY channel written by the change trigger in sql/schema.sql."""
    return f"{table}_changes"


def classify_psycopg_error(exc: psycopg.Error) -> BackendError:
    """Translate a psycopg error into a BackendError with a kind."""
    message = str(exc).strip() or exc.__class__.__name__
    if isinstance(exc, pg_errors.UndefinedTable):
        return BackendError(message, ErrorKind.SCHEMA_MISSING)
    if isinstance(exc, (pg_errors.InvalidAuthorizationSpecification, pg_errors.InvalidPassword)):
        return BackendError(message, ErrorKind.AUTH_EXPIRED)
    if isinstance(exc, psycopg.OperationalError):
        return BackendError(message, ErrorKind.CONNECTIVITY)
    return BackendError(message, ErrorKind.UNKNOWN)


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    return value


def _row(record: DictRow) -> dict[str, Any]:
    return {key: _jsonable(value) for key, value in record.items()}


def parse_notification(payload: str) -> ChangeEvent:
    """Parse a NOTIFY payload produced by the change trigger."""
    data = orjson.loads(payload)
    if not isinstance(data, dict):
        raise ValueError("notification payload must be a JSON object")
    return ChangeEvent.from_payload(data)


@dataclass
class ListenChannel:
    """Dedicated LISTEN connection and the task draining it."""

    name: str
    conn: psycopg.AsyncConnection
    task: Optional[asyncio.Task] = None


class PostgresBackend:
    """Backend adapter over a psycopg ``AsyncConnection``."""

    def __init__(
        self,
        conn: psycopg.AsyncConnection[DictRow],
        database_url: str,
        timeout_seconds: int = 30,
    ) -> None:
        self.conn = conn
        self.database_url = database_url
        self.timeout_seconds = timeout_seconds

    async def _fetch(self, query: sql.Composable, params: Optional[list[Any]] = None) -> list[dict[str, Any]]:
        try:
            async with db_cursor(self.conn) as cursor:
                await cursor.execute(query, params)
                records = await cursor.fetchall()
        except psycopg.Error as exc:
            raise classify_psycopg_error(exc) from exc
        return [_row(record) for record in records]

    async def probe(self, table: str) -> None:
        await self._fetch(sql.SQL("select id from {} limit 1").format(sql.Identifier(table)))

    async def select(
        self,
        table: str,
        columns: str = "*",
        order_by: Optional[str] = None,
        ascending: bool = True,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        if columns.strip() == "*":
            fields: sql.Composable = sql.SQL("*")
        else:
            fields = sql.SQL(", ").join(
                sql.Identifier(column.strip()) for column in columns.split(",") if column.strip()
            )

        query = sql.SQL("select {} from {}").format(fields, sql.Identifier(table))
        params: list[Any] = []
        if order_by:
            direction = sql.SQL("asc") if ascending else sql.SQL("desc")
            query = sql.SQL("{} order by {} {}").format(query, sql.Identifier(order_by), direction)
        if limit is not None:
            query = sql.SQL("{} limit %s").format(query)
            params.append(limit)
        return await self._fetch(query, params)

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        columns = list(row)
        query = sql.SQL("insert into {} ({}) values ({}) returning *").format(
            sql.Identifier(table),
            sql.SQL(", ").join(sql.Identifier(column) for column in columns),
            sql.SQL(", ").join(sql.Placeholder() for _ in columns),
        )
        rows = await self._fetch(query, [row[column] for column in columns])
        if not rows:
            raise BackendError(f"insert into {table} returned no row")
        return rows[0]

    async def update(
        self,
        table: str,
        values: dict[str, Any],
        match: dict[str, Any],
    ) -> list[dict[str, Any]]:
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in values
        )
        conditions = sql.SQL(" and ").join(
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in match
        )
        query = sql.SQL("update {} set {} where {} returning *").format(
            sql.Identifier(table), assignments, conditions
        )
        return await self._fetch(query, [*values.values(), *match.values()])

    async def subscribe(
        self,
        name: str,
        table: str,
        schema: str,
        on_change: ChangeHandler,
    ) -> ListenChannel:
        try:
            conn = await get_connection(self.database_url, self.timeout_seconds, autocommit=True)
            await conn.execute(sql.SQL("listen {}").format(sql.Identifier(notify_channel(table))))
        except psycopg.Error as exc:
            raise classify_psycopg_error(exc) from exc

        channel = ListenChannel(name=name, conn=conn)
        channel.task = asyncio.create_task(self._drain(channel, on_change), name=name)
        logger.info("postgres.listen.start channel=%s table=%s.%s", name, schema, table)
        return channel

    async def _drain(self, channel: ListenChannel, on_change: ChangeHandler) -> None:
        try:
            async for notify in channel.conn.notifies():
                try:
                    event = parse_notification(notify.payload)
                except ValueError as exc:
                    logger.warning("postgres.listen.bad_payload channel=%s error=%s", channel.name, exc)
                    continue
                logger.debug("postgres.listen.update channel=%s type=%s", channel.name, event.event_type)
                on_change(event)
        except psycopg.OperationalError as exc:
            logger.error("postgres.listen.lost channel=%s error=%s", channel.name, exc)

    async def unsubscribe(self, channel: ListenChannel) -> None:
        if channel.task is not None:
            channel.task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await channel.task
        await channel.conn.close()

    async def close(self) -> None:
        await self.conn.close()


async def create_postgres_backend(config: AppConfig) -> PostgresBackend:
    """Open the primary connection from the postgres section of the config."""
    timeout_seconds = max(1, config.database.timeout_ms // 1000)
    try:
        conn = await get_connection(config.postgres.database_url, timeout_seconds)
    except psycopg.Error as exc:
        raise classify_psycopg_error(exc) from exc
    return PostgresBackend(conn, config.postgres.database_url, timeout_seconds)
