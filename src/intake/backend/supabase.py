"""Supabase backend built on the async supabase client."""

from __future__ import annotations

from typing import Any, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient, AsyncClientOptions, acreate_client

from intake.backend.base import ChangeHandler
from intake.config.registry import AppConfig
from intake.errors import BackendError, ConfigurationError, ErrorKind
from intake.models import ChangeEvent
from intake.utils.logging import get_logger


logger = get_logger(__name__)

# PostgreSQL / PostgREST error codes.
SCHEMA_MISSING_CODES = {"42P01", "PGRST205", "PGRST106"}
AUTH_EXPIRED_CODES = {"PGRST301", "PGRST302", "PGRST303"}


def classify_api_error(exc: APIError) -> BackendError:
    """Translate a PostgREST error into a BackendError with a kind."""
    code = str(exc.code or "")
    message = exc.message or str(exc)
    if code in SCHEMA_MISSING_CODES:
        return BackendError(message, ErrorKind.SCHEMA_MISSING)
    if code in AUTH_EXPIRED_CODES:
        return BackendError(message, ErrorKind.AUTH_EXPIRED)
    return BackendError(message, ErrorKind.UNKNOWN)


def classify_transport_error(exc: httpx.TransportError) -> BackendError:
    return BackendError(f"connection error: {exc}", ErrorKind.CONNECTIVITY)


class SupabaseBackend:
    """Backend adapter over a supabase ``AsyncClient``."""

    def __init__(self, client: AsyncClient) -> None:
        self.client = client

    async def _execute(self, query: Any) -> list[dict[str, Any]]:
        try:
            response = await query.execute()
        except APIError as exc:
            raise classify_api_error(exc) from exc
        except httpx.TransportError as exc:
            raise classify_transport_error(exc) from exc
        return list(response.data or [])

    async def probe(self, table: str) -> None:
        await self._execute(self.client.table(table).select("id").limit(1))

    async def select(
        self,
        table: str,
        columns: str = "*",
        order_by: Optional[str] = None,
        ascending: bool = True,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        query = self.client.table(table).select(columns)
        if order_by:
            query = query.order(order_by, desc=not ascending)
        if limit is not None:
            query = query.limit(limit)
        return await self._execute(query)

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        rows = await self._execute(self.client.table(table).insert(row))
        if not rows:
            raise BackendError(f"insert into {table} returned no row")
        return rows[0]

    async def update(
        self,
        table: str,
        values: dict[str, Any],
        match: dict[str, Any],
    ) -> list[dict[str, Any]]:
        query = self.client.table(table).update(values)
        for column, value in match.items():
            query = query.eq(column, value)
        return await self._execute(query)

    async def subscribe(
        self,
        name: str,
        table: str,
        schema: str,
        on_change: ChangeHandler,
    ) -> Any:
        def _forward(payload: dict[str, Any]) -> None:
            logger.debug("supabase.realtime.update channel=%s", name)
            on_change(ChangeEvent.from_payload(payload))

        def _status(status: Any, error: Optional[Exception] = None) -> None:
            if error is not None:
                logger.warning("supabase.realtime.status channel=%s status=%s error=%s", name, status, error)
            else:
                logger.info("supabase.realtime.status channel=%s status=%s", name, status)

        channel = self.client.channel(name)
        channel.on_postgres_changes("*", callback=_forward, table=table, schema=schema)
        try:
            await channel.subscribe(_status)
        except httpx.TransportError as exc:
            raise classify_transport_error(exc) from exc
        except OSError as exc:
            raise BackendError(f"realtime connection failed: {exc}", ErrorKind.CONNECTIVITY) from exc
        return channel

    async def unsubscribe(self, channel: Any) -> None:
        await self.client.remove_channel(channel)

    async def close(self) -> None:
        await self.client.remove_all_channels()


def realtime_options(config: AppConfig) -> dict[str, Any]:
    """Keyword options handed to the realtime client."""
    return {"params": {"eventsPerSecond": config.supabase.options.realtime.events_per_second}}


async def create_supabase_backend(config: AppConfig) -> SupabaseBackend:
    """Create the supabase client from the connection section of the config."""
    section = config.supabase
    options = AsyncClientOptions(
        headers=dict(section.options.headers),
        auto_refresh_token=section.options.auth.auto_refresh_token,
        persist_session=section.options.auth.persist_session,
        postgrest_client_timeout=config.database.timeout_ms / 1000,
        realtime=realtime_options(config),
    )
    try:
        client = await acreate_client(section.url, section.anon_key, options=options)
    except Exception as exc:
        raise ConfigurationError(f"Supabase client could not be created: {exc}") from exc
    return SupabaseBackend(client)
