"""
Health endpoint for observability.

Returns structured health info: uptime, version, database connectivity,
and cron manager status. Lightweight and requires no authentication.
"""

import logging
import time
from typing import Any, Dict, List

from fastapi import APIRouter

from ..core.database import health_check
from ..core.services import Services
from ..core.container import get_container
from ..version import __version__

logger = logging.getLogger(__name__)

SERVICE_NAME = "review-scheduler"

# Start time for uptime calculation
_start_time: float = time.monotonic()


def set_start_time() -> None:
    """Reset the start time (called during app startup)."""
    global _start_time
    _start_time = time.monotonic()


def get_uptime_seconds() -> float:
    """Return seconds since the process started."""
    return time.monotonic() - _start_time


async def check_database_health() -> bool:
    """True if the database answers ``SELECT 1``."""
    try:
        return await health_check()
    except Exception as e:
        logger.warning("Database health check failed: %s", e)
        return False


def get_cron_status() -> Dict[str, Any]:
    """Scheduler state; ``registered`` is False before services are set up."""
    container = get_container()
    if not container.has(Services.CRON_MANAGER):
        return {"registered": False, "running": False, "jobs": 0}
    manager = container.get(Services.CRON_MANAGER)
    jobs = manager.get_all_jobs_status()
    return {
        "registered": True,
        "running": manager.is_running,
        "jobs": len(jobs),
        "failing_jobs": sorted(
            name
            for name, job in jobs.items()
            if job["last_result"] is not None and not job["last_result"]["success"]
        ),
    }


async def build_health() -> Dict[str, Any]:
    db_healthy = await check_database_health()
    subsystems: List[Dict[str, Any]] = [
        {"name": "database", "status": "ok" if db_healthy else "error"},
    ]
    return {
        "status": "healthy" if db_healthy else "degraded",
        "service": SERVICE_NAME,
        "version": __version__,
        "uptime_seconds": round(get_uptime_seconds(), 2),
        "database": "connected" if db_healthy else "disconnected",
        "cron": get_cron_status(),
        "subsystems": subsystems,
    }


def create_health_router() -> APIRouter:
    """Create and return the health check router.

    This is a factory so the router can be included in the main app
    or used standalone in tests.
    """
    router = APIRouter()

    @router.get("/health")
    async def health_endpoint() -> Dict[str, Any]:
        return await build_health()

    return router
