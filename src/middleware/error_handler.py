"""
Unified Error Handling for FastAPI.

Provides:
- Status code mapping for typed domain errors (registered as exception handlers)
- ErrorHandlerMiddleware: JSON 500 for anything unhandled
- Request ID in every error body
"""

import logging
import traceback
import uuid
from typing import Callable, Dict, Type

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ..domain.errors import (
    ConcurrencyError,
    DomainError,
    NotFoundError,
    TaskExecutionError,
    UnauthorizedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Most specific first; DomainError is the catch-all
DOMAIN_ERROR_STATUS: Dict[Type[DomainError], int] = {
    ValidationError: 400,
    UnauthorizedError: 401,
    NotFoundError: 404,
    ConcurrencyError: 409,
    TaskExecutionError: 500,
    DomainError: 500,
}


def _request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if not request_id:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
    return request_id


def status_for(error: DomainError) -> int:
    for error_type, status_code in DOMAIN_ERROR_STATUS.items():
        if isinstance(error, error_type):
            return status_code
    return 500


def get_error_response(
    error: Exception,
    request_id: str = None,
    include_traceback: bool = False,
) -> dict:
    """
    Build a standard error response dict.

    Args:
        error: The exception that occurred
        request_id: Optional request ID for tracking
        include_traceback: Whether to include full traceback (dev only)
    """
    response = {
        "error": {
            "message": str(error),
            "type": type(error).__name__,
        },
    }

    if request_id:
        response["request_id"] = request_id

    if include_traceback:
        response["error"]["traceback"] = traceback.format_exc()

    return response


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status_code = status_for(exc)
    request_id = _request_id(request)

    if status_code >= 500:
        logger.error(
            f"{type(exc).__name__} [{request_id}] on {request.method} "
            f"{request.url.path}: {exc}"
        )
    else:
        logger.info(
            f"{type(exc).__name__} [{request_id}] on {request.method} "
            f"{request.url.path}: {exc}"
        )

    return JSONResponse(
        status_code=status_code,
        content=get_error_response(exc, request_id),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Middleware that catches all unhandled exceptions and returns
    consistent JSON error responses.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and handle any errors."""
        request_id = _request_id(request)
        request.state.request_id = request_id

        try:
            return await call_next(request)

        except HTTPException:
            # Let HTTP exceptions pass through to FastAPI's handler
            raise

        except Exception as e:
            logger.error(
                f"Unhandled exception [{request_id}]: {type(e).__name__}: {e}",
                exc_info=True,
                extra={
                    "path": request.url.path,
                    "method": request.method,
                },
            )
            return JSONResponse(
                status_code=500,
                content={
                    "error": {
                        "message": "Internal server error",
                    },
                    "request_id": request_id,
                },
            )
