"""
Lightweight Web Analytics
Centralized Configuration Management

Process-wide configuration read once at startup using Pydantic settings with
environment variable support. No core operation re-reads configuration
mid-request: services receive the values they need at construction time.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional, List
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Embedded SQLite store configuration"""

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    path: str = Field(default="./data/analytics.db", alias="DB_PATH", description="SQLite database file")
    echo: bool = Field(default=False, description="Echo SQL queries")
    busy_timeout: float = Field(default=5.0, description="Seconds a writer waits on a locked database")

    @property
    def async_url(self) -> str:
        """Async database URL for aiosqlite"""
        if self.path == ":memory:":
            return "sqlite+aiosqlite:///:memory:"
        return f"sqlite+aiosqlite:///{self.path}"

    def ensure_directory(self) -> None:
        """Create the parent directory of the database file if missing"""
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)


class IngestionSettings(BaseSettings):
    """Beacon ingestion and admission control configuration"""

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    ip_hash_salt: SecretStr = Field(
        default=SecretStr("default-salt-change-me"),
        alias="IP_HASH_SALT",
        description="Salt mixed into client address hashes",
    )
    rate_limit: int = Field(default=100, alias="RATE_LIMIT", ge=1, description="Beacons admitted per source per window")
    window_ms: int = Field(default=60_000, ge=1, description="Admission window in milliseconds")
    sweep_interval: int = Field(default=300, ge=1, description="Seconds between admission map sweeps")

    # Forwarding headers are honoured only from these peers; "*" trusts any peer
    trusted_proxies: List[str] = Field(
        default=["127.0.0.1", "::1"],
        alias="TRUSTED_PROXIES",
        description="Peer addresses allowed to set X-Forwarded-For / X-Real-IP",
    )


class RetentionSettings(BaseSettings):
    """Data retention configuration"""

    model_config = SettingsConfigDict(
        env_prefix="RETENTION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    days: int = Field(default=30, ge=1, description="Retention horizon in days")
    sweep_interval: int = Field(default=3600, ge=1, description="Seconds between retention sweeps")

    @property
    def horizon_ms(self) -> int:
        """Retention horizon in milliseconds"""
        return self.days * 24 * 60 * 60 * 1000


class SecuritySettings(BaseSettings):
    """Dashboard boundary check and CORS configuration"""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    dashboard_username: Optional[str] = Field(default=None, alias="DASHBOARD_USERNAME", description="Dashboard Basic auth user")
    dashboard_password: Optional[SecretStr] = Field(default=None, alias="DASHBOARD_PASSWORD", description="Dashboard Basic auth password")

    # Beacons are posted cross-origin from the tracked sites
    cors_origins: List[str] = Field(default=["*"], alias="CORS_ORIGINS", description="Allowed CORS origins")

    @property
    def dashboard_auth_enabled(self) -> bool:
        """Basic auth is enforced only when both credentials are configured"""
        return bool(self.dashboard_username and self.dashboard_password)


class MonitoringSettings(BaseSettings):
    """Logging configuration"""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="lightweight-web-analytics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=8000, alias="API_PORT", description="API port")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    retention: RetentionSettings = Field(default_factory=RetentionSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
