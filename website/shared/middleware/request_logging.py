"""
HTTP request logger middleware.

Writes one line per request in the compact development format:

    GET /about 200 3.214 ms - 1534

The content length is ``-`` when the response does not declare one.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

access_logger = logging.getLogger("website.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status, duration and response size."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        level = logging.INFO
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING

        access_logger.log(
            level,
            "%s %s %d %.3f ms - %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            response.headers.get("content-length", "-"),
        )
        return response
