"""Storage backends."""

from __future__ import annotations

from intake.backend.base import Backend, BackendFactory, ChangeHandler
from intake.config.registry import AppConfig
from intake.errors import ConfigurationError


async def create_backend(config: AppConfig) -> Backend:
    """Create the backend selected by ``config.backend``."""
    if config.backend == "supabase":
        from intake.backend.supabase import create_supabase_backend

        return await create_supabase_backend(config)
    if config.backend == "postgres":
        from intake.backend.postgres import create_postgres_backend

        return await create_postgres_backend(config)
    raise ConfigurationError(f"Unknown backend: {config.backend!r}")


__all__ = ["Backend", "BackendFactory", "ChangeHandler", "create_backend"]
