"""
Centralized error handlers for FastAPI.

Every framework-level failure is converted into an ErrorCondition and
handed to the terminal error pipeline, so all error responses share the
same JSON shape. Exceptions that no handler claims are caught by
UnhandledErrorMiddleware and take the same path.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from website.domain.errors import ErrorCondition, HttpError
from website.shared.pipeline import Pipeline

logger = logging.getLogger(__name__)

HTTP_404 = 404
HTTP_422 = 422
HTTP_429 = 429

VALIDATION_MESSAGE = "Validation error"


def _is_unmatched(request: Request, exc: StarletteHTTPException) -> bool:
    """True when the 404 comes from the router finding no route."""
    return exc.status_code == HTTP_404 and "endpoint" not in request.scope


def register_error_handlers(app: FastAPI, pipeline: Pipeline) -> None:
    """Register all error handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance.
        pipeline: The terminal error pipeline producing the responses.
    """

    @app.exception_handler(HttpError)
    async def handle_http_error(request: Request, exc: HttpError) -> Response:
        """Handle errors raised by route code with an explicit status."""
        logger.debug("HttpError %s: %s", exc.status, exc.message)
        return pipeline.run(request, ErrorCondition.from_exception(exc))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(
        request: Request, exc: StarletteHTTPException
    ) -> Response:
        """Handle framework HTTP exceptions, including unmatched routes."""
        if _is_unmatched(request, exc):
            response = pipeline.run(request, None)
        else:
            condition = ErrorCondition(
                message=str(exc.detail), status=exc.status_code, detail=exc
            )
            response = pipeline.run(request, condition)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> Response:
        """Handle request validation failures."""
        logger.warning("Validation failed for %s", request.url.path)
        condition = ErrorCondition(
            message=VALIDATION_MESSAGE, status=HTTP_422, detail=exc
        )
        return pipeline.run(request, condition)

    @app.exception_handler(RateLimitExceeded)
    async def handle_rate_limit(request: Request, exc: RateLimitExceeded) -> Response:
        """Handle rate limit exceeded errors."""
        logger.warning("Rate limit exceeded for %s", request.url.path)
        condition = ErrorCondition(
            message=f"Rate limit exceeded: {exc.detail}",
            status=HTTP_429,
            detail=exc,
        )
        return pipeline.run(request, condition)


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """Catch-all for exceptions no exception handler claimed.

    Must be the innermost user middleware so the error response still
    passes through logging, security headers and compression.
    """

    def __init__(self, app: ASGIApp, pipeline: Pipeline) -> None:
        super().__init__(app)
        self.pipeline = pipeline

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Forward the request and convert any escaping exception."""
        try:
            return await call_next(request)
        except Exception as exc:
            logger.debug("Unhandled %s on %s", type(exc).__name__, request.url.path)
            return self.pipeline.run(request, ErrorCondition.from_exception(exc))
