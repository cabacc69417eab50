"""Backend protocol implemented by the storage adapters."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Protocol

from intake.models import ChangeEvent

if TYPE_CHECKING:
    from intake.config.registry import AppConfig


ChangeHandler = Callable[[ChangeEvent], None]


class Backend(Protocol):
    """Relational table client with a row-change feed.

    Adapters raise ``intake.errors.BackendError`` with a classified kind.
    """

    async def probe(self, table: str) -> None:
        """Run a lightweight existence query against ``table``."""

    async def select(
        self,
        table: str,
        columns: str = "*",
        order_by: Optional[str] = None,
        ascending: bool = True,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """Return rows from ``table``."""

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        """Insert ``row`` and return the stored row."""

    async def update(
        self,
        table: str,
        values: dict[str, Any],
        match: dict[str, Any],
    ) -> list[dict[str, Any]]:
        """Update rows equal to ``match`` and return them."""

    async def subscribe(
        self,
        name: str,
        table: str,
        schema: str,
        on_change: ChangeHandler,
    ) -> Any:
        """Open a change feed channel and return its handle."""

    async def unsubscribe(self, channel: Any) -> None:
        """Release a channel opened by ``subscribe``."""

    async def close(self) -> None:
        """Release the connection."""


BackendFactory = Callable[["AppConfig"], Awaitable[Backend]]
