"""Complaint service: connection lifecycle, validation and data access."""

from __future__ import annotations

import asyncio
import inspect
import uuid
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping, Optional, TypeVar

from intake.backend import Backend, BackendFactory, create_backend
from intake.config.registry import ConfigRegistry, connection_errors
from intake.errors import (
    CONNECTION_FAILED_MESSAGE,
    BackendError,
    ConfigurationError,
    ErrorKind,
    error_kind,
    user_message,
)
from intake.models import (
    ChangeEvent,
    Complaint,
    ComplaintStatus,
    ConnectionEvent,
    ConnectionState,
    OperationResult,
    StatusUpdate,
)
from intake.service.events import ConnectionEvents
from intake.service.rate_limit import RateLimiter
from intake.service.retry import DEFAULT_MAX_RETRIES, execute_with_retry
from intake.service.validation import ComplaintValidator, DraftInput, coerce_draft
from intake.utils.logging import get_logger
from intake.utils.time import now_ms, utc_now_iso


logger = get_logger(__name__)

T = TypeVar("T")

CREATE_LIMIT = 5
CREATE_WINDOW_MS = 60_000
REALTIME_SCHEMA = "public"

ChangeCallback = Callable[[ChangeEvent], Any]


@dataclass(eq=False)
class Subscription:
    """Handle for an open complaint change feed."""

    name: str
    channel: Any


class ComplaintService:
    """Data-access facade for complaint records.

    Every public data operation returns an ``OperationResult`` and never raises.
    """

    def __init__(
        self,
        registry: Optional[ConfigRegistry],
        backend_factory: Optional[BackendFactory] = create_backend,
        events: Optional[ConnectionEvents] = None,
        rate_limiter: Optional[RateLimiter] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        self.registry = registry
        self.backend_factory = backend_factory
        self.events = events or ConnectionEvents()
        self.rate_limiter = rate_limiter or RateLimiter()
        self.sleep = sleep
        self.max_retries = max_retries
        self.validator = ComplaintValidator(registry) if registry is not None else None

        self.backend: Optional[Backend] = None
        self.initialized = False
        self.state = ConnectionState.DISCONNECTED
        self.retry_count = 0
        self.last_error_kind: Optional[ErrorKind] = None
        self._subscriptions: dict[str, Subscription] = {}
        self._callback_tasks: set[asyncio.Task] = set()

    async def __aenter__(self) -> "ComplaintService":
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # Lifecycle

    @property
    def table(self) -> str:
        if self.registry is None:
            return "complaints"
        return self.registry.config.database.table

    @property
    def debug(self) -> bool:
        return self.registry.debug if self.registry is not None else False

    @property
    def subscriptions(self) -> Mapping[str, Subscription]:
        return MappingProxyType(self._subscriptions)

    def _set_state(self, state: ConnectionState, error: Optional[BaseException] = None) -> None:
        self.state = state
        self.events.publish(
            ConnectionEvent(
                status=state,
                error=str(error) if error is not None else None,
                timestamp=now_ms(),
            )
        )

    def _check_ready(self) -> tuple[ConfigRegistry, BackendFactory]:
        if self.registry is None:
            raise ConfigurationError("Konfigurasi aplikasi tidak tersedia")
        errors = connection_errors(self.registry.config)
        if errors:
            raise ConfigurationError("; ".join(errors))
        if self.backend_factory is None:
            raise ConfigurationError("Backend client tidak tersedia")
        return self.registry, self.backend_factory

    async def _probe(self, backend: Backend) -> None:
        try:
            await backend.probe(self.table)
        except BackendError as exc:
            tolerate = self.registry is not None and self.registry.config.database.tolerate_missing_table
            if exc.kind is ErrorKind.SCHEMA_MISSING and tolerate:
                logger.warning("service.probe.table_missing table=%s", self.table)
                return
            raise

    async def open(self) -> bool:
        """Connect and probe the complaint table. Returns False on failure."""
        if self.backend is not None:
            await self._release_backend()
        self._set_state(ConnectionState.CONNECTING)
        backend: Optional[Backend] = None
        try:
            registry, factory = self._check_ready()
            backend = await factory(registry.config)
            await self._probe(backend)
        except Exception as exc:
            self.initialized = False
            self.backend = None
            self.last_error_kind = error_kind(exc)
            if backend is not None:
                await self._close_backend(backend)
            logger.error("service.open.failed kind=%s error=%s", self.last_error_kind.value, exc)
            self._set_state(ConnectionState.ERROR, exc)
            return False

        self.backend = backend
        self.initialized = True
        self.retry_count = 0
        self.last_error_kind = None
        logger.info("service.open.connected backend=%s", registry.config.backend)
        self._set_state(ConnectionState.CONNECTED)
        return True

    init = open

    async def reconnect(self) -> bool:
        """Re-open after a connection loss; no-op when already connected."""
        if self.initialized:
            return True
        logger.info("service.reconnect.start")
        return await self.open()

    async def close(self) -> None:
        """Release subscriptions and the backend, then reset to disconnected."""
        await self._release_backend()
        self.rate_limiter.clear()
        self._set_state(ConnectionState.DISCONNECTED)
        logger.info("service.closed")

    destroy = close

    async def _release_backend(self) -> None:
        for subscription in list(self._subscriptions.values()):
            await self.unsubscribe(subscription)
        self._subscriptions.clear()

        if self.backend is not None:
            await self._close_backend(self.backend)
            self.backend = None
        self.initialized = False

    async def _close_backend(self, backend: Backend) -> None:
        try:
            await backend.close()
        except Exception as exc:
            logger.warning("service.backend_close.failed error=%s", exc)

    async def _ensure_open(self) -> bool:
        if self.initialized and self.backend is not None:
            return True
        return await self.open()

    def _require_backend(self) -> Backend:
        if self.backend is None:
            raise ConfigurationError(CONNECTION_FAILED_MESSAGE)
        return self.backend

    def connection_status(self) -> dict[str, Any]:
        """Snapshot of the connection state and retry counter."""
        return {
            "status": self.state.value,
            "initialized": self.initialized,
            "retry_count": self.retry_count,
            "timestamp": now_ms(),
        }

    async def health_check(self) -> dict[str, Any]:
        """Re-probe the complaint table and report whether it answers."""
        if not self.initialized or self.backend is None:
            return {"healthy": False, "error": "Not initialized", "status": self.state.value, "timestamp": now_ms()}

        try:
            await self._probe(self.backend)
        except Exception as exc:
            logger.warning("service.health_check.failed error=%s", exc)
            return {"healthy": False, "error": str(exc), "status": self.state.value, "timestamp": now_ms()}
        return {"healthy": True, "status": self.state.value, "timestamp": now_ms()}

    # Retry and rate limiting

    def _count_retry(self, attempt: int, exc: Exception) -> None:
        self.retry_count += 1

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        max_retries: Optional[int] = None,
    ) -> T:
        """Run ``operation`` with backoff, counting each retry."""
        return await execute_with_retry(
            operation,
            max_retries=self.max_retries if max_retries is None else max_retries,
            sleep=self.sleep,
            on_retry=self._count_retry,
        )

    def check_rate_limit(self, operation: str, limit: int = 10, window_ms: int = 60_000) -> None:
        """Raise RateLimitError once ``operation`` exceeds ``limit`` calls in the window."""
        self.rate_limiter.check(operation, limit=limit, window_ms=window_ms)

    def _failure(self, exc: Exception, operation: str, data: Any = None) -> OperationResult:
        kind = error_kind(exc)
        logger.error("service.%s.failed kind=%s error=%s", operation, kind.value, exc)
        return OperationResult.fail(user_message(exc, debug=self.debug), kind, data=data)

    def _not_connected(self, data: Any = None) -> OperationResult:
        return OperationResult.fail(
            CONNECTION_FAILED_MESSAGE,
            self.last_error_kind or ErrorKind.CONNECTIVITY,
            data=data,
        )

    # Complaints

    async def create_complaint(self, fields: DraftInput) -> OperationResult:
        """Validate and store a new complaint with status ``pending``."""
        if not await self._ensure_open():
            return self._not_connected()

        try:
            self.check_rate_limit("create_complaint", limit=CREATE_LIMIT, window_ms=CREATE_WINDOW_MS)
            draft = coerce_draft(fields).normalized()
            self.validator.validate_draft(draft)

            row = Complaint.from_draft(draft, created_at=utc_now_iso()).to_insert_row()
            backend = self._require_backend()
            stored = await self.execute_with_retry(lambda: backend.insert(self.table, row))
            complaint = Complaint.model_validate(stored)
        except Exception as exc:
            return self._failure(exc, "create_complaint")

        logger.info("service.create_complaint.ok id=%s", complaint.id)
        return OperationResult.ok(complaint)

    async def get_all_complaints(
        self,
        limit: int = 100,
        order_by: str = "created_at",
        ascending: bool = False,
    ) -> OperationResult:
        """List complaints; on failure ``data`` is an empty list."""
        if not await self._ensure_open():
            return self._not_connected(data=[])

        try:
            backend = self._require_backend()
            limit = min(limit, self.registry.config.database.max_rows)
            rows = await self.execute_with_retry(
                lambda: backend.select(
                    self.table,
                    columns="*",
                    order_by=order_by,
                    ascending=ascending,
                    limit=limit,
                )
            )
            complaints = [Complaint.model_validate(row) for row in rows]
        except Exception as exc:
            return self._failure(exc, "get_all_complaints", data=[])

        return OperationResult.ok(complaints)

    async def update_complaint_status(
        self,
        complaint_id: Any,
        status: str,
        notes: Optional[str] = None,
    ) -> OperationResult:
        """Change a complaint's status; ``completed`` stamps ``actual_completion``."""
        if not await self._ensure_open():
            return self._not_connected()

        try:
            new_status = ComplaintValidator.validate_status(status)
            now = utc_now_iso()
            update = StatusUpdate(
                status=new_status,
                updated_at=now,
                resolution_notes=notes.strip() if notes and notes.strip() else None,
                actual_completion=now if new_status is ComplaintStatus.COMPLETED else None,
            )
            values = update.to_row()
            backend = self._require_backend()
            rows = await self.execute_with_retry(
                lambda: backend.update(self.table, values, match={"id": complaint_id})
            )
            if not rows:
                raise BackendError(f"Aduan {complaint_id} tidak ditemukan")
            complaint = Complaint.model_validate(rows[0])
        except Exception as exc:
            return self._failure(exc, "update_complaint_status")

        logger.info("service.update_complaint_status.ok id=%s status=%s", complaint_id, new_status.value)
        return OperationResult.ok(complaint)

    # Realtime

    def _realtime_enabled(self) -> bool:
        config = self.registry.config
        return config.realtime.enabled and config.features.enable_realtime

    async def subscribe_to_complaints(self, callback: ChangeCallback) -> Optional[Subscription]:
        """Forward every complaint row change to ``callback``; None when unavailable."""
        if not self.initialized or self.backend is None or not self._realtime_enabled():
            logger.warning("service.subscribe.unavailable")
            return None

        name = f"complaints-{now_ms()}-{uuid.uuid4().hex[:8]}"

        def _forward(event: ChangeEvent) -> None:
            try:
                result = callback(event)
            except Exception:
                logger.exception("service.subscribe.callback_failed channel=%s", name)
                return
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._callback_tasks.add(task)
                task.add_done_callback(self._callback_tasks.discard)

        try:
            channel = await self.backend.subscribe(name, self.table, REALTIME_SCHEMA, _forward)
        except Exception as exc:
            logger.error("service.subscribe.failed channel=%s error=%s", name, exc)
            return None

        subscription = Subscription(name=name, channel=channel)
        self._subscriptions[name] = subscription
        logger.info("service.subscribe.ok channel=%s", name)
        return subscription

    async def unsubscribe(self, subscription: Optional[Subscription]) -> None:
        """Release a subscription; releasing twice is harmless."""
        if subscription is None:
            return

        if self._subscriptions.get(subscription.name) is not subscription:
            logger.debug("service.unsubscribe.not_tracked channel=%s", subscription.name)
            return
        del self._subscriptions[subscription.name]

        if self.backend is None:
            return
        try:
            await self.backend.unsubscribe(subscription.channel)
        except Exception as exc:
            logger.error("service.unsubscribe.failed channel=%s error=%s", subscription.name, exc)
            return
        logger.debug("service.unsubscribe.ok channel=%s", subscription.name)
