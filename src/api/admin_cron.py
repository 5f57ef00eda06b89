"""
Operator endpoints for the cron job manager.

All routes require the shared cron secret as ``?secret=``.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from ..core.config import Settings
from ..core.security import verify_cron_secret
from ..domain.errors import NotFoundError, ValidationError
from ..services.scheduler import CronJobManager
from .dependencies import get_app_settings, get_cron_manager_dependency

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/cron", tags=["admin"])


def require_cron_secret(
    secret: Optional[str] = Query(default=None),
    settings: Settings = Depends(get_app_settings),
) -> None:
    verify_cron_secret(secret, settings)


@router.get("", dependencies=[Depends(require_cron_secret)])
async def list_jobs(
    manager: CronJobManager = Depends(get_cron_manager_dependency),
) -> Dict[str, Any]:
    """Status of every registered job."""
    return {
        "running": manager.is_running,
        "jobs": manager.get_all_jobs_status(),
    }


@router.post("", dependencies=[Depends(require_cron_secret)])
async def trigger_job(
    job: Optional[str] = Query(default=None),
    manager: CronJobManager = Depends(get_cron_manager_dependency),
):
    """Run a job immediately and return its result."""
    if not job:
        raise ValidationError("Missing job parameter")
    if manager.get_job(job) is None:
        raise NotFoundError("Job", job)

    logger.info(f"Admin trigger for cron job '{job}'")
    result = await manager.trigger_job(job)
    body = {"job": job, **result.to_dict()}
    if not result.success:
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)
    return body


@router.post("/enabled", dependencies=[Depends(require_cron_secret)])
async def set_job_enabled(
    job: str = Query(...),
    enabled: bool = Query(...),
    manager: CronJobManager = Depends(get_cron_manager_dependency),
) -> Dict[str, Any]:
    """Enable or disable a job's schedule without removing it."""
    return manager.set_job_enabled(job, enabled)
