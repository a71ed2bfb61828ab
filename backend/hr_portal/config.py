from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "HR Portal"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    database_url: str = "postgresql+asyncpg://hr_portal:hr_portal@db:5432/hr_portal"
    database_pool_size: int = 5
    database_max_overflow: int = 10
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8000"]

    # Approval workflow
    manager_token_ttl_hours: int = 48
    public_base_url: str = "http://localhost:5173"
    hr_notification_email: str = "rh@example.com"
    notification_sender: str = "intranet@example.com"

    # Entitlement ledger
    rollover_grace_months: int = 4

    # Renewal worker
    renewal_run_hour: int = 2
    renewal_lease_seconds: int = 3600


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
