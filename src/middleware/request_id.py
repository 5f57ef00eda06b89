"""Correlation IDs for HTTP requests.

The ID lives in the structlog context for the duration of the request, on
``request.state.request_id`` for error bodies, and in the response's
X-Request-ID header. A caller-supplied header value is kept only when it is
short and made of safe characters, since it ends up in log lines.
"""

import re
import uuid
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ..utils.logging import RequestContext

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128
_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]+$")


def incoming_request_id(request: Request) -> Optional[str]:
    value = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if not value or len(value) > MAX_REQUEST_ID_LENGTH:
        return None
    if not _SAFE_REQUEST_ID.match(value):
        return None
    return value


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = incoming_request_id(request) or uuid.uuid4().hex
        request.state.request_id = request_id

        RequestContext.set(
            request_id=request_id, method=request.method, path=request.url.path
        )
        try:
            response = await call_next(request)
        finally:
            RequestContext.clear()

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
