"""
Crash reporting through Sentry.

Reporting is enabled only when a DSN is configured. Server errors are
captured by a stage at the head of the error pipeline; client errors
(status below 500) are not reported.
"""

import logging
from typing import Optional

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration
from starlette.requests import Request

from website.core.config import Settings
from website.domain.errors import ErrorCondition
from website.shared.errors.normalizer import resolve_status
from website.shared.pipeline import Continue, StageResult

logger = logging.getLogger(__name__)

REPORTABLE_STATUS = 500


def init_crash_reporting(settings: Settings) -> bool:
    """Initialize the Sentry client.

    Args:
        settings: Application settings providing the DSN and release.

    Returns:
        True if the client was initialized, False when no DSN is set.
    """
    if not settings.sentry_dsn:
        logger.info("Crash reporting disabled: no DSN configured")
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        release=settings.version,
        environment=settings.environment,
        # Errors reach Sentry through report_crash only.
        auto_enabling_integrations=False,
        integrations=[LoggingIntegration(level=logging.INFO, event_level=None)],
    )
    logger.info("Crash reporting enabled (release %s)", settings.version)
    return True


def report_crash(
    request: Request, condition: Optional[ErrorCondition]
) -> StageResult:
    """Pipeline stage that sends server errors to Sentry.

    Never terminates the request. The event id, when one is produced,
    is stored on ``request.state.sentry_event_id``.
    """
    if condition is None:
        return Continue(None)

    if resolve_status(condition) < REPORTABLE_STATUS:
        return Continue(condition)

    if condition.detail is not None:
        event_id = sentry_sdk.capture_exception(condition.detail)
    else:
        event_id = sentry_sdk.capture_message(condition.message, level="error")
    if event_id:
        request.state.sentry_event_id = event_id
    return Continue(condition)
