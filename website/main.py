"""
Application entry point.

Creates the FastAPI application and wires together, outermost first:
- Crash reporting request handler (Sentry, when configured)
- Security headers (HSTS, no-cache, CSP)
- Request logging
- Body parsing (JSON, URL-encoded)
- Unhandled error catcher
- Compression (gzip)
- Public files served at the site root
- Routers (pages, health) and error handlers

Every request that is not answered by a route ends in the error pipeline:
crash reporting, then the unmatched-route fallback, then the JSON error
formatter.

No business logic belongs here.
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.templating import Jinja2Templates
from sentry_sdk.integrations.asgi import SentryAsgiMiddleware

from website.core.config import Settings, settings as default_settings
from website.interfaces.health import router as health_router
from website.interfaces.pages import build_router as build_pages_router
from website.shared.crash_reporting import init_crash_reporting, report_crash
from website.shared.errors.handlers import (
    UnhandledErrorMiddleware,
    register_error_handlers,
)
from website.shared.errors.normalizer import ErrorNormalizer, build_error_pipeline
from website.shared.logging import configure_logging
from website.shared.middleware.body_parsing import BodyParserMiddleware
from website.shared.middleware.public_files import PublicFilesMiddleware
from website.shared.middleware.request_logging import RequestLoggingMiddleware
from website.shared.security.headers import SecurityHeadersMiddleware
from website.shared.security.rate_limiting import build_limiter

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Middleware added last runs first, so the stack below is registered
    from the innermost stage outwards.
    This is the composition root of the application.

    Args:
        settings: Configuration to build the app from. Defaults to the
            settings loaded from the environment.

    Returns:
        A fully configured FastAPI application instance.
    """
    settings = settings or default_settings
    configure_logging(level=settings.log_level)
    crash_reporting = init_crash_reporting(settings)

    app = FastAPI(
        title=settings.project_name,
        version=settings.version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )
    app.state.settings = settings

    # --- Views ---
    app.state.templates = Jinja2Templates(directory=str(settings.views_dir))

    # --- Error pipeline ---
    normalizer = ErrorNormalizer(production=settings.is_production)
    error_pipeline = build_error_pipeline(normalizer, report_crash)
    app.state.error_pipeline = error_pipeline

    # --- Rate Limiting ---
    limiter = build_limiter(enabled=settings.rate_limit_enabled)
    app.state.limiter = limiter

    # --- Error Handlers ---
    register_error_handlers(app, error_pipeline)

    # --- Middleware (innermost first) ---
    if settings.public_dir.is_dir():
        app.add_middleware(PublicFilesMiddleware, directory=str(settings.public_dir))
    else:
        logger.warning("Public directory %s not found", settings.public_dir)
    # Must stay inside every BaseHTTPMiddleware: they re-stream the body in
    # chunks, and minimum_size only applies to single-chunk responses.
    app.add_middleware(GZipMiddleware, minimum_size=settings.gzip_minimum_size)
    app.add_middleware(UnhandledErrorMiddleware, pipeline=error_pipeline)
    app.add_middleware(
        BodyParserMiddleware,
        pipeline=error_pipeline,
        limit_bytes=settings.max_request_size_bytes,
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        SecurityHeadersMiddleware,
        hsts_max_age=settings.hsts_max_age,
        hsts_include_subdomains=settings.hsts_include_subdomains,
    )
    if crash_reporting:
        app.add_middleware(SentryAsgiMiddleware)

    # --- Routers ---
    app.include_router(build_pages_router(limiter))
    app.include_router(health_router, prefix="/api/v1")

    logger.info("%s %s ready (%s)", app.title, app.version, settings.environment)
    return app


app = create_app()
