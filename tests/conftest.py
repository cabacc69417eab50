from typing import Any, Optional

import pytest

from intake.config.registry import AppConfig, ConfigRegistry, SupabaseSection
from intake.models import ChangeEvent
from intake.service import ComplaintService, RateLimiter


class FakeChannel:
    def __init__(self, name: str, table: str, on_change) -> None:
        self.name = name
        self.table = table
        self.on_change = on_change

    def push(self, payload: dict[str, Any]) -> None:
        self.on_change(ChangeEvent.from_payload(payload))


class FakeBackend:
    """In-memory stand-in for a table client; records every call."""

    def __init__(self, probe_error: Optional[Exception] = None) -> None:
        self.probe_error = probe_error
        self.rows: list[dict[str, Any]] = []
        self.calls: list[tuple[str, Any]] = []
        self.failures: dict[str, list[Exception]] = {}
        self.channels: list[FakeChannel] = []
        self.removed: list[FakeChannel] = []
        self.unsubscribe_error: Optional[Exception] = None
        self.closed = False

    def fail_next(self, method: str, *errors: Exception) -> None:
        self.failures.setdefault(method, []).extend(errors)

    def _maybe_fail(self, method: str) -> None:
        queue = self.failures.get(method)
        if queue:
            raise queue.pop(0)

    async def probe(self, table: str) -> None:
        self.calls.append(("probe", table))
        if self.probe_error is not None:
            raise self.probe_error

    async def select(self, table, columns="*", order_by=None, ascending=True, limit=None):
        self.calls.append(("select", {"table": table, "order_by": order_by, "ascending": ascending, "limit": limit}))
        self._maybe_fail("select")
        rows = list(self.rows)
        if order_by:
            rows.sort(key=lambda row: row.get(order_by) or "", reverse=not ascending)
        return rows[:limit] if limit is not None else rows

    async def insert(self, table, row):
        self.calls.append(("insert", row))
        self._maybe_fail("insert")
        stored = {"id": len(self.rows) + 1, **row}
        self.rows.append(stored)
        return stored

    async def update(self, table, values, match):
        self.calls.append(("update", {"values": values, "match": match}))
        self._maybe_fail("update")
        updated = []
        for row in self.rows:
            if all(row.get(key) == value for key, value in match.items()):
                row.update(values)
                updated.append(dict(row))
        return updated

    async def subscribe(self, name, table, schema, on_change):
        self.calls.append(("subscribe", name))
        channel = FakeChannel(name, table, on_change)
        self.channels.append(channel)
        return channel

    async def unsubscribe(self, channel):
        self.calls.append(("unsubscribe", channel.name))
        if self.unsubscribe_error is not None:
            raise self.unsubscribe_error
        self.removed.append(channel)

    async def close(self) -> None:
        self.closed = True

    def method_calls(self, method: str) -> list[Any]:
        return [args for name, args in self.calls if name == method]


def make_registry(**overrides: Any) -> ConfigRegistry:
    values: dict[str, Any] = {
        "supabase": SupabaseSection(url="https://example.supabase.co", anon_key="test-anon-key"),
    }
    values.update(overrides)
    return ConfigRegistry(AppConfig(**values))


@pytest.fixture
def registry() -> ConfigRegistry:
    return make_registry()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def service(registry: ConfigRegistry, backend: FakeBackend, sleeps: list[float]) -> ComplaintService:
    async def factory(config: AppConfig) -> FakeBackend:
        return backend

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    return ComplaintService(
        registry,
        backend_factory=factory,
        rate_limiter=RateLimiter(clock=lambda: 1_700_000_000.0),
        sleep=fake_sleep,
    )


@pytest.fixture
def complaint_fields() -> dict[str, str]:
    return {
        "name": "Siti Aminah",
        "phone": "+62 812-3456-7890",
        "district": "Sumbersari",
        "village": "Kebonsari",
        "address": "Jl. Mastrip No. 12",
        "category": "Infrastruktur",
        "body": "Jalan di depan sekolah berlubang dan membahayakan pengendara.",
    }
