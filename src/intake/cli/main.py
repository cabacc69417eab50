"""Typer CLI entry point."""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import orjson
import typer

from intake.config import ConfigRegistry, Settings, check_config
from intake.models import ChangeEvent, OperationResult
from intake.service import ComplaintService
from intake.utils.logging import configure_logging, get_logger


app = typer.Typer(help="Complaint intake client CLI")
config_app = typer.Typer(help="Configuration commands")
db_app = typer.Typer(help="Database utilities")
complaints_app = typer.Typer(help="Complaint commands")

app.add_typer(config_app, name="config")
app.add_typer(db_app, name="db")
app.add_typer(complaints_app, name="complaints")

logger = get_logger(__name__)


@app.callback()
def main() -> None:
    """Initialize logging for all commands."""
    settings = Settings()
    configure_logging(settings.log_level)


def _registry() -> ConfigRegistry:
    return ConfigRegistry.from_settings(Settings())


def _echo_json(value: Any) -> None:
    typer.echo(orjson.dumps(value, option=orjson.OPT_INDENT_2).decode("utf-8"))


def _finish(result: OperationResult) -> None:
    _echo_json(result.to_dict())
    if not result.success:
        raise typer.Exit(1)


@config_app.command("check")
def config_check() -> None:
    """Report missing or placeholder connection settings."""
    result = check_config(_registry())
    if not result.valid:
        for error in result.errors:
            typer.echo(f"- {error}", err=True)
        raise typer.Exit(1)
    typer.echo("Configuration OK")


@config_app.command("get")
def config_get(path: str = typer.Argument(..., help="Dotted path, e.g. realtime.enabled")) -> None:
    """Print one configuration value."""
    _echo_json(_registry().get(path))


@db_app.command("check")
def db_check() -> None:
    """Check backend connectivity."""

    async def _run() -> dict[str, Any]:
        async with ComplaintService(_registry()) as service:
            return await service.health_check()

    health = asyncio.run(_run())
    if not health["healthy"]:
        logger.error("db.check.failed: %s", health.get("error"))
        typer.echo(f"Database check failed: {health.get('error')}", err=True)
        raise typer.Exit(1)
    logger.info("db.check.ok")
    typer.echo("Database OK")


@complaints_app.command("list")
def complaints_list(
    limit: int = typer.Option(100, help="Max complaints to return"),
    order_by: str = typer.Option("created_at", help="Column to order by"),
    ascending: bool = typer.Option(False, help="Oldest first"),
) -> None:
    """List complaints."""

    async def _run() -> OperationResult:
        async with ComplaintService(_registry()) as service:
            return await service.get_all_complaints(limit=limit, order_by=order_by, ascending=ascending)

    _finish(asyncio.run(_run()))


@complaints_app.command("submit")
def complaints_submit(
    name: str = typer.Option(..., help="Reporter name"),
    phone: str = typer.Option(..., help="Reporter phone number"),
    district: str = typer.Option(..., help="Kecamatan"),
    village: str = typer.Option(..., help="Desa"),
    address: str = typer.Option(..., help="Street address"),
    category: str = typer.Option(..., help="Complaint category"),
    body: str = typer.Option(..., help="Complaint text"),
) -> None:
    """Submit a new complaint."""
    fields = {
        "name": name,
        "phone": phone,
        "district": district,
        "village": village,
        "address": address,
        "category": category,
        "body": body,
    }

    async def _run() -> OperationResult:
        async with ComplaintService(_registry()) as service:
            return await service.create_complaint(fields)

    _finish(asyncio.run(_run()))


@complaints_app.command("set-status")
def complaints_set_status(
    complaint_id: str = typer.Argument(..., help="Complaint id"),
    status: str = typer.Argument(..., help="pending, in_progress, completed or rejected"),
    notes: Optional[str] = typer.Option(None, help="Resolution notes"),
) -> None:
    """Update the status of a complaint."""

    async def _run() -> OperationResult:
        async with ComplaintService(_registry()) as service:
            return await service.update_complaint_status(complaint_id, status, notes)

    _finish(asyncio.run(_run()))


@complaints_app.command("watch")
def complaints_watch() -> None:
    """Print complaint changes as they happen (Ctrl+C to stop)."""

    def _print(event: ChangeEvent) -> None:
        _echo_json(event.model_dump(mode="json", exclude={"payload"}))

    async def _run() -> bool:
        async with ComplaintService(_registry()) as service:
            subscription = await service.subscribe_to_complaints(_print)
            if subscription is None:
                return False
            typer.echo(f"Listening on {subscription.name}", err=True)
            await asyncio.Event().wait()
        return True

    try:
        started = asyncio.run(_run())
    except KeyboardInterrupt:
        return
    if not started:
        typer.echo("Real-time updates are unavailable", err=True)
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
