"""Configuration management for kondate."""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=("../.env", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    environment: str = "development"
    log_level: str = "info"

    # Supabase
    supabase_url: str
    supabase_service_role_key: str

    # Notifications (ntfy.sh)
    ntfy_server: str = "https://ntfy.sh"
    ntfy_topic: str | None = None

    # Cron
    cron_secret: str | None = None

    # API Security
    api_key: str | None = None

    # Day keys ("tomorrow", remaining days) are computed in this timezone
    timezone: str = "Asia/Tokyo"

    # Shopping drafts
    draft_default_range_days: int = 2
    custom_expire_days_default: int = 3
    # Keeps computed expiry dates inside the datetime range
    custom_expire_days_max: int = 3650

    # Expiry alerts
    expiry_alert_days: int = 2
    expiry_alert_hour: int = 8

    # Feature Flags
    feature_expiry_alerts: bool = True
    feature_stale_draft_archiving: bool = True

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
