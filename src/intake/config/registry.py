"""Structured application configuration with a dotted-path accessor."""

from __future__ import annotations

from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from intake.config.settings import Settings
from intake.utils.logging import get_logger


logger = get_logger(__name__)

PLACEHOLDER_URL = "YOUR_SUPABASE_PROJECT_URL"
PLACEHOLDER_KEY = "YOUR_SUPABASE_ANON_KEY"


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class AuthOptions(_Section):
    auto_refresh_token: bool = True
    persist_session: bool = False
    detect_session_in_url: bool = False


class RealtimeOptions(_Section):
    events_per_second: int = 10


class SupabaseOptions(_Section):
    auth: AuthOptions = Field(default_factory=AuthOptions)
    realtime: RealtimeOptions = Field(default_factory=RealtimeOptions)
    headers: dict[str, str] = Field(
        default_factory=lambda: {"x-application-name": "pks-jember-complaint-system"}
    )


class SupabaseSection(_Section):
    url: str = PLACEHOLDER_URL
    anon_key: str = PLACEHOLDER_KEY
    options: SupabaseOptions = Field(default_factory=SupabaseOptions)


class PostgresSection(_Section):
    database_url: str = ""


class AdminSection(_Section):
    use_supabase_auth: bool = False
    session_timeout_ms: int = 8 * 60 * 60 * 1000
    max_login_attempts: int = 5
    lockout_duration_ms: int = 15 * 60 * 1000


class RealtimeSection(_Section):
    enabled: bool = True
    channel: str = "complaints-channel"
    retry_interval_ms: int = 5000
    max_retries: int = 3
    enable_presence: bool = False


class DatabaseSection(_Section):
    table: str = "complaints"
    timeout_ms: int = 30000
    max_rows: int = 1000
    default_order_by: str = "created_at"
    default_ascending: bool = False
    # A missing complaint table during the connection probe is treated as a fresh install.
    tolerate_missing_table: bool = True


class PhoneRule(_Section):
    pattern: str = r"^08[0-9]{8,12}$"
    message: str = "Format nomor HP tidak valid. Gunakan format 08xxxxxxxxx"


class LengthRule(_Section):
    min_length: int
    max_length: int
    message: str


class ValidationSection(_Section):
    phone: PhoneRule = Field(default_factory=PhoneRule)
    name: LengthRule = Field(
        default_factory=lambda: LengthRule(
            min_length=3, max_length=100, message="Nama harus antara 3-100 karakter"
        )
    )
    complaint: LengthRule = Field(
        default_factory=lambda: LengthRule(
            min_length=20, max_length=2000, message="Isi aduan harus antara 20-2000 karakter"
        )
    )


class CategoryOption(_Section):
    value: str
    label: str
    color: str


class StatusOption(_Section):
    value: str
    label: str
    color: str
    bg_color: str


DEFAULT_CATEGORIES: tuple[CategoryOption, ...] = (
    CategoryOption(value="Infrastruktur", label="Infrastruktur", color="#3B82F6"),
    CategoryOption(value="Pelayanan Publik", label="Pelayanan Publik", color="#10B981"),
    CategoryOption(value="Sosial", label="Sosial", color="#8B5CF6"),
    CategoryOption(value="Kesehatan", label="Kesehatan", color="#EF4444"),
    CategoryOption(value="Pendidikan", label="Pendidikan", color="#F59E0B"),
    CategoryOption(value="Ekonomi", label="Ekonomi", color="#6366F1"),
    CategoryOption(value="Lingkungan", label="Lingkungan", color="#059669"),
    CategoryOption(value="Keamanan", label="Keamanan", color="#DC2626"),
    CategoryOption(value="Lainnya", label="Lainnya", color="#6B7280"),
)

DEFAULT_STATUSES: tuple[StatusOption, ...] = (
    StatusOption(value="pending", label="Menunggu", color="#F59E0B", bg_color="#FEF3C7"),
    StatusOption(value="in_progress", label="Diproses", color="#3B82F6", bg_color="#DBEAFE"),
    StatusOption(value="completed", label="Selesai", color="#10B981", bg_color="#D1FAE5"),
    StatusOption(value="rejected", label="Ditolak", color="#EF4444", bg_color="#FEE2E2"),
)


class ThemeSettings(_Section):
    primary_color: str = "#ff6b35"
    secondary_color: str = "#ea580c"
    background_color: str = "#f9fafb"


class NotificationSettings(_Section):
    duration_ms: int = 5000
    position: str = "top-right"


class TableSettings(_Section):
    items_per_page: int = 25
    auto_refresh: bool = True
    auto_refresh_interval_ms: int = 30000


class UISection(_Section):
    theme: ThemeSettings = Field(default_factory=ThemeSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    table: TableSettings = Field(default_factory=TableSettings)


class DebugSection(_Section):
    enabled: bool = True
    log_level: str = "debug"
    show_connection_status: bool = True


class FeatureFlags(_Section):
    enable_realtime: bool = True
    enable_export: bool = True
    enable_search: bool = True


class AppConfig(_Section):
    """Complete runtime configuration, immutable once built."""

    backend: Literal["supabase", "postgres"] = "supabase"
    supabase: SupabaseSection = Field(default_factory=SupabaseSection)
    postgres: PostgresSection = Field(default_factory=PostgresSection)
    admin: AdminSection = Field(default_factory=AdminSection)
    realtime: RealtimeSection = Field(default_factory=RealtimeSection)
    database: DatabaseSection = Field(default_factory=DatabaseSection)
    validation: ValidationSection = Field(default_factory=ValidationSection)
    categories: tuple[CategoryOption, ...] = DEFAULT_CATEGORIES
    complaint_status: tuple[StatusOption, ...] = DEFAULT_STATUSES
    ui: UISection = Field(default_factory=UISection)
    debug: DebugSection = Field(default_factory=DebugSection)
    features: FeatureFlags = Field(default_factory=FeatureFlags)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "AppConfig":
        """Build the config from environment settings on top of the built-in catalog."""
        settings = settings or Settings()
        return cls(
            backend=settings.backend,
            supabase=SupabaseSection(
                url=settings.supabase_url or "",
                anon_key=settings.supabase_anon_key or "",
            ),
            postgres=PostgresSection(database_url=settings.get_database_url() or ""),
            realtime=RealtimeSection(enabled=settings.realtime_enabled),
            database=DatabaseSection(
                timeout_ms=settings.db_timeout_seconds * 1000,
                tolerate_missing_table=settings.tolerate_missing_table,
            ),
            debug=DebugSection(
                enabled=settings.debug_enabled,
                log_level=settings.log_level.lower(),
            ),
            features=FeatureFlags(enable_realtime=settings.realtime_enabled),
        )


class ConfigValidation(BaseModel):
    """Outcome of a configuration check."""

    valid: bool
    errors: list[str] = Field(default_factory=list)


def connection_errors(config: AppConfig) -> list[str]:
    """Return problems with the connection parameters of the selected backend."""
    errors: list[str] = []
    if config.backend == "postgres":
        if not config.postgres.database_url:
            errors.append("DATABASE_URL belum dikonfigurasi")
        return errors

    if not config.supabase.url or config.supabase.url == PLACEHOLDER_URL:
        errors.append("Supabase URL belum dikonfigurasi dengan benar")
    if not config.supabase.anon_key or config.supabase.anon_key == PLACEHOLDER_KEY:
        errors.append("Supabase anonymous key belum dikonfigurasi dengan benar")
    return errors


class ConfigRegistry:
    """Read-only access to an AppConfig by dotted path."""

    def __init__(self, config: Optional[AppConfig] = None) -> None:
        self.config = config or AppConfig()
        self._tree = self.config.model_dump()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ConfigRegistry":
        return cls(AppConfig.from_settings(settings))

    def get(self, path: str, default: Any = None) -> Any:
        """Look up ``a.b.c``; return ``default`` when any segment is missing."""
        if not isinstance(path, str) or not path:
            return default

        current: Any = self._tree
        for key in path.split("."):
            if isinstance(current, Mapping) and key in current:
                current = current[key]
            else:
                return default
        return current

    def validate(self) -> ConfigValidation:
        errors = connection_errors(self.config)
        if errors:
            logger.warning("config.invalid errors=%s", errors)
            return ConfigValidation(valid=False, errors=errors)
        return ConfigValidation(valid=True)

    def category_values(self) -> list[str]:
        return [item.value for item in self.config.categories]

    def status_values(self) -> list[str]:
        return [item.value for item in self.config.complaint_status]

    @property
    def debug(self) -> bool:
        return self.config.debug.enabled


def check_config(registry: ConfigRegistry) -> ConfigValidation:
    """Run the startup configuration check; problems are only reported."""
    result = registry.validate()
    for error in result.errors:
        logger.warning("config.check.error: %s", error)
    return result
