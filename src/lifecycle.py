"""
Application lifespan management.

Handles startup and shutdown of all subsystems:
- Configuration validation
- Database initialization
- Service container setup
- Cron jobs (production, or ENABLE_CRON=true)
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api.health import set_start_time
from .core.config import get_settings
from .core.config_validator import log_config_summary, validate_config
from .core.container import get_container
from .core.database import close_database, init_database
from .core.services import Services, get_service, setup_services
from .services.scheduler.jobs import default_job_configs, register_default_tasks

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("🚀 Review scheduler starting up...")
    set_start_time()

    # Validate configuration before anything else
    settings = get_settings()
    config_errors = validate_config(settings)
    if config_errors:
        for err in config_errors:
            logger.error(f"Config validation error: {err}")
        logger.critical(
            "Aborting startup due to %d configuration error(s)", len(config_errors)
        )
        sys.exit(1)
    log_config_summary(settings)

    # Initialize database
    try:
        logger.info("📣 LIFESPAN: Starting database initialization")
        await init_database()
        logger.info("✅ Database initialized")
    except Exception as e:
        logger.error(f"❌ Database initialization failed: {e}")
        raise

    # Register all services in the DI container
    try:
        logger.info("📣 LIFESPAN: Setting up service container")
        setup_services()
        logger.info("✅ Service container initialized")
    except Exception as e:
        logger.error(f"❌ Service container setup failed: {e}")
        raise

    cron_manager = None
    if settings.cron_enabled:
        logger.info("📣 LIFESPAN: Starting cron jobs")
        cron_manager = get_service(Services.CRON_MANAGER)
        register_default_tasks(cron_manager, get_container())
        cron_manager.load_jobs(default_job_configs(settings))
        await cron_manager.start_all()
        logger.info(
            f"✅ Cron jobs started: {', '.join(cron_manager.get_all_jobs_status())}"
        )
    else:
        logger.info(
            f"⏸️ Cron jobs disabled in {settings.environment} (set ENABLE_CRON=true to force)"
        )

    logger.info("✅ Startup complete")

    yield

    logger.info("🛑 Review scheduler shutting down...")
    if cron_manager is not None:
        await cron_manager.stop_all()
        logger.info("✅ Cron jobs stopped")
    await get_container().shutdown()
    await close_database()
    logger.info("✅ Shutdown complete")
