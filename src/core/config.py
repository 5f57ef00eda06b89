"""
Application configuration using Pydantic Settings.

Centralizes all configuration with environment variable support.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/review_scheduler.db"

    # Shared secret for /admin/cron and internal cron calls
    cron_secret_token: str = ""

    # Cron jobs
    enable_cron: bool = False
    cron_check_due_cards_schedule: str = "0 */4 * * *"  # Every 4 hours
    cron_check_due_cards_timezone: str = "UTC"
    cron_process_notifications_schedule: str = "*/15 * * * *"
    cron_prune_ledger_schedule: str = "30 3 * * *"

    # Notifications
    notification_cooldown_hours: float = 6.0
    card_due_min_items: int = 1
    push_gateway_url: Optional[str] = None
    push_gateway_timeout: float = 10.0

    # Review engine
    grade_request_retention_days: int = 30
    sm2_max_interval_days: Optional[int] = 180
    grade_retry_base_delay: float = 0.05

    # Environment
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    log_to_file: bool = True
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env vars

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def cron_enabled(self) -> bool:
        """Cron runs in production, or anywhere ENABLE_CRON=true forces it."""
        return self.is_production or self.enable_cron


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
