"""
Error normalizer: the terminal stages of the request pipeline.

Two stages close every failing request:
- the unmatched-route fallback, which turns "no route matched" into a
  404 condition and forwards it;
- the error formatter, which turns any condition into a JSON response
  with a status code and a message.

Outside production the response also carries the diagnostic detail of the
error, and the same error is written once to the ``website.errors`` log
channel. In production neither happens.
"""

import logging
import traceback
from typing import Any, Optional

from starlette.requests import Request
from starlette.responses import JSONResponse

from website.domain.errors import ErrorCondition, HttpError
from website.shared.pipeline import Continue, Handled, Pipeline, Stage, StageResult

error_logger = logging.getLogger("website.errors")

NOT_FOUND_MESSAGE = "Not Found"
HTTP_404 = 404
HTTP_500 = 500


def handle_unmatched(request: Request) -> ErrorCondition:
    """Create the condition for a request that matched no route."""
    detail = HttpError(NOT_FOUND_MESSAGE, status=HTTP_404)
    return ErrorCondition(message=NOT_FOUND_MESSAGE, status=HTTP_404, detail=detail)


def resolve_status(condition: ErrorCondition) -> int:
    """Return the status the response will carry.

    Falls back to 500 when the condition has no status, or one that is
    not a valid HTTP status code.
    """
    status = condition.status
    if not status or not 100 <= status <= 599:
        return HTTP_500
    return status


def describe_error(condition: ErrorCondition) -> dict[str, Any]:
    """Build the diagnostic payload exposed outside production."""
    payload: dict[str, Any] = {
        "status": condition.status,
        "message": condition.message,
    }
    exc = condition.detail
    if exc is not None:
        payload["type"] = type(exc).__name__
        payload["stack"] = traceback.format_exception(
            type(exc), exc, exc.__traceback__
        )
    return payload


def format_error(condition: ErrorCondition, production: bool) -> JSONResponse:
    """Turn an error condition into the final JSON response.

    Args:
        condition: The error that ended the request.
        production: Whether diagnostic detail must be suppressed.

    Returns:
        A JSON response with the resolved status and a ``message`` field,
        plus an ``error`` field when not in production.
    """
    status = resolve_status(condition)
    if status == HTTP_500:
        condition.status = HTTP_500

    body: dict[str, Any] = {"message": condition.message}

    if not production:
        body["error"] = describe_error(condition)
        exc = condition.detail
        error_logger.error(
            "Request failed with status %d: %s",
            status,
            condition.message,
            exc_info=(type(exc), exc, exc.__traceback__) if exc is not None else None,
        )

    return JSONResponse(status_code=status, content=body)


class ErrorNormalizer:
    """Holds the production flag and exposes both terminal stages.

    The flag is fixed at construction so the stages never consult
    process-wide state.
    """

    def __init__(self, production: bool) -> None:
        self.production = production

    def unmatched_stage(
        self, request: Request, condition: Optional[ErrorCondition]
    ) -> StageResult:
        """Synthesize a 404 condition when nothing upstream failed."""
        if condition is None:
            return Continue(handle_unmatched(request))
        return Continue(condition)

    def format_stage(
        self, request: Request, condition: Optional[ErrorCondition]
    ) -> StageResult:
        """Write the JSON error response. Always terminates."""
        if condition is None:
            condition = handle_unmatched(request)
        return Handled(format_error(condition, self.production))


def build_error_pipeline(
    normalizer: ErrorNormalizer, *leading_stages: Stage
) -> Pipeline:
    """Assemble the terminal error pipeline.

    Leading stages (crash reporting) run first, followed by the unmatched
    fallback and, last, the formatter.
    """
    return Pipeline(
        [*leading_stages, normalizer.unmatched_stage, normalizer.format_stage]
    )
