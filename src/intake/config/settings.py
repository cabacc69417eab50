"""Application settings loaded from environment."""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strongly typed settings for the intake client."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Backend selection
    backend: Literal["supabase", "postgres"] = Field(default="supabase", alias="INTAKE_BACKEND")

    # Supabase
    supabase_url: Optional[str] = Field(default=None, alias="SUPABASE_URL")
    supabase_anon_key: Optional[str] = Field(default=None, alias="SUPABASE_ANON_KEY")

    # Database
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    pghost: Optional[str] = Field(default=None, alias="PGHOST")
    pgport: int = Field(default=5432, alias="PGPORT")
    pguser: Optional[str] = Field(default=None, alias="PGUSER")
    pgpassword: Optional[str] = Field(default=None, alias="PGPASSWORD")
    pgdatabase: Optional[str] = Field(default=None, alias="PGDATABASE")
    db_timeout_seconds: int = Field(default=30, alias="DB_TIMEOUT_SECONDS")
    tolerate_missing_table: bool = Field(default=True, alias="TOLERATE_MISSING_TABLE")

    # Realtime
    realtime_enabled: bool = Field(default=True, alias="REALTIME_ENABLED")

    # Runtime
    debug_enabled: bool = Field(default=True, alias="DEBUG_ENABLED")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    run_env: str = Field(default="local", alias="RUN_ENV")

    def get_database_url(self) -> Optional[str]:
        """Return a usable database URL, or None when nothing is configured."""
        if self.database_url:
            return self.database_url

        if all([self.pghost, self.pguser, self.pgpassword, self.pgdatabase]):
            return (
                "postgresql://"
                f"{self.pguser}:{self.pgpassword}@{self.pghost}:{self.pgport}/"
                f"{self.pgdatabase}"
            )

        return None
