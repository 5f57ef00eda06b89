import logging
import os
from pathlib import Path
from typing import Dict

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Explicitly load .env files at startup
# Load order (later files override earlier):
# 1. project .env (project defaults)
# 2. project .env.local (local overrides)
project_root = Path(__file__).parent.parent
env_file = project_root / ".env"
env_local = project_root / ".env.local"

if env_file.exists():
    load_dotenv(env_file, override=True)
    print(f"📁 Loaded environment from {env_file}")

if env_local.exists():
    load_dotenv(env_local, override=True)
    print(f"📁 Loaded environment from {env_local}")

from .api.admin_cron import router as admin_cron_router
from .api.health import create_health_router
from .api.notifications import router as notifications_router
from .api.review import router as review_router
from .core.config import get_settings
from .lifecycle import lifespan
from .middleware.error_handler import ErrorHandlerMiddleware, register_exception_handlers
from .middleware.request_id import RequestIdMiddleware
from .utils.logging import setup_logging
from .version import __version__

# Set up comprehensive logging
settings = get_settings()
setup_logging(log_level=settings.log_level, log_to_file=settings.log_to_file)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Review Scheduler",
        description="Spaced-repetition review engine with cron-driven due-card notifications",
        version=__version__,
        lifespan=lifespan,
    )

    # Middleware added last runs first: request ID wraps the error handler
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.get("/")
    async def root() -> Dict[str, str]:
        """Root endpoint for health checks and API info"""
        return {"message": "Review Scheduler API", "version": __version__, "status": "running"}

    app.include_router(create_health_router())
    app.include_router(review_router)
    app.include_router(notifications_router)
    app.include_router(admin_cron_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"Starting server on {host}:{port}")
    uvicorn.run("src.main:app", host=host, port=port, reload=True, log_level="info")
