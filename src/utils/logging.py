import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict

import structlog


class RequestContextFilter(logging.Filter):
    """Copy bound request context (request_id, job) onto stdlib log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = structlog.contextvars.get_contextvars()
        record.request_id = context.get("request_id", "-")
        record.job = context.get("job", "-")
        return True


class RequestContext:
    """Per-request / per-job logging context backed by structlog contextvars.

    Values survive across ``await`` points within the same task, so every
    log line written while a request or cron run is in flight carries them.
    """

    @staticmethod
    def set(**values: Any) -> None:
        structlog.contextvars.bind_contextvars(**values)

    @staticmethod
    def get() -> Dict[str, Any]:
        return structlog.contextvars.get_contextvars()

    @staticmethod
    def clear() -> None:
        structlog.contextvars.clear_contextvars()


def setup_logging(log_level: str = "INFO", log_to_file: bool = True) -> None:
    """Set up logging configuration for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Whether to log to files in addition to console
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.set_exc_info,
            (
                structlog.processors.JSONRenderer()
                if log_to_file
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    context_filter = RequestContextFilter()
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(context_filter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    if log_to_file:
        logs_dir = Path("logs")
        logs_dir.mkdir(exist_ok=True)

        app_handler = logging.handlers.RotatingFileHandler(
            logs_dir / "app.log", maxBytes=10 * 1024 * 1024, backupCount=5  # 10MB
        )
        app_handler.setLevel(logging.INFO)
        app_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] "
                "%(funcName)s:%(lineno)d - %(message)s"
            )
        )
        app_handler.addFilter(context_filter)
        root_logger.addHandler(app_handler)

        # Cron runs get their own file; failures there are easy to miss
        cron_handler = logging.handlers.RotatingFileHandler(
            logs_dir / "cron.log", maxBytes=5 * 1024 * 1024, backupCount=10  # 5MB
        )
        cron_handler.setLevel(logging.DEBUG)
        cron_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(levelname)s - [%(job)s] %(message)s")
        )
        cron_handler.addFilter(context_filter)
        logging.getLogger("src.services.scheduler").addHandler(cron_handler)

        error_handler = logging.handlers.RotatingFileHandler(
            logs_dir / "errors.log", maxBytes=5 * 1024 * 1024, backupCount=10  # 5MB
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] "
                "%(funcName)s:%(lineno)d - %(message)s"
            )
        )
        error_handler.addFilter(context_filter)
        root_logger.addHandler(error_handler)

    # APScheduler logs every tick at INFO
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

