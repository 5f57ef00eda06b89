"""
Startup configuration validation and redacted summary logging.

Called early in the FastAPI lifespan to fail fast on misconfiguration.
"""

import logging
import re
from typing import List

from ..domain.errors import ValidationError
from ..services.scheduler.cron_manager import build_trigger
from .config import Settings

logger = logging.getLogger(__name__)

# Minimal pattern: scheme://... or scheme:///...
_SQLALCHEMY_URL_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+\-.]*://")

_CRON_SETTINGS = [
    ("cron_check_due_cards_schedule", "CRON_CHECK_DUE_CARDS_SCHEDULE"),
    ("cron_process_notifications_schedule", "CRON_PROCESS_NOTIFICATIONS_SCHEDULE"),
    ("cron_prune_ledger_schedule", "CRON_PRUNE_LEDGER_SCHEDULE"),
]


def validate_config(settings: Settings) -> List[str]:
    """
    Validate application configuration and return a list of error strings.

    An empty list means the configuration is valid.
    """
    errors: List[str] = []

    # -- DATABASE_URL format -----------------------------------------------
    db_url = (settings.database_url or "").strip()
    if not db_url:
        errors.append("DATABASE_URL is required but missing or empty")
    elif not _SQLALCHEMY_URL_RE.match(db_url):
        errors.append(
            f"DATABASE_URL format is invalid (expected SQLAlchemy URL like "
            f"'sqlite+aiosqlite:///...' or 'postgresql+asyncpg://...'): "
            f"'{db_url}'"
        )

    # -- Cron secret is mandatory once the scheduler runs ------------------
    if settings.cron_enabled and not settings.cron_secret_token.strip():
        errors.append("CRON_SECRET_TOKEN is required when cron jobs are enabled")

    # -- Cron expressions --------------------------------------------------
    for attr, env_name in _CRON_SETTINGS:
        expression = getattr(settings, attr)
        try:
            build_trigger(expression, settings.cron_check_due_cards_timezone)
        except ValidationError as e:
            errors.append(f"{env_name} is invalid ({expression!r}): {e}")

    # -- Numeric bounds ----------------------------------------------------
    if settings.notification_cooldown_hours < 0:
        errors.append("NOTIFICATION_COOLDOWN_HOURS must not be negative")
    if settings.card_due_min_items < 1:
        errors.append("CARD_DUE_MIN_ITEMS must be at least 1")
    if settings.grade_request_retention_days < 1:
        errors.append("GRADE_REQUEST_RETENTION_DAYS must be at least 1")
    if settings.sm2_max_interval_days is not None and settings.sm2_max_interval_days < 1:
        errors.append("SM2_MAX_INTERVAL_DAYS must be at least 1 when set")

    return errors


def _redact(value: str) -> str:
    """Return first 4 characters followed by '***', or '<empty>' if blank."""
    if not value:
        return "<empty>"
    return value[:4] + "***"


def _db_type(database_url: str) -> str:
    """Extract the database backend name from a SQLAlchemy URL."""
    return database_url.split("://", 1)[0] if "://" in database_url else "unknown"


def log_config_summary(settings: Settings) -> None:
    """Log a redacted one-line-per-setting configuration summary."""
    logger.info("Configuration summary:")
    logger.info("  environment      = %s", settings.environment)
    logger.info("  database         = %s", _db_type(settings.database_url))
    logger.info("  cron enabled     = %s", settings.cron_enabled)
    logger.info(
        "  check-due-cards  = %s (%s)",
        settings.cron_check_due_cards_schedule,
        settings.cron_check_due_cards_timezone,
    )
    logger.info("  cron secret      = %s", _redact(settings.cron_secret_token))
    logger.info("  cooldown hours   = %s", settings.notification_cooldown_hours)
    logger.info("  push gateway     = %s", settings.push_gateway_url or "<log only>")
