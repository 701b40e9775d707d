"""
Page router.

Renders the site's views. Templates are resolved from the views directory
configured on the application (``app.state.templates``).
"""

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from slowapi import Limiter

from website.shared.security.rate_limiting import DEFAULT_RATE_LIMIT


def build_router(limiter: Limiter) -> APIRouter:
    """Create the page router, rate-limited through the app's limiter."""
    router = APIRouter(tags=["pages"])

    @router.get("/", response_class=HTMLResponse, include_in_schema=False)
    @limiter.limit(DEFAULT_RATE_LIMIT)
    def index(request: Request) -> HTMLResponse:
        """Render the home page."""
        templates = request.app.state.templates
        return templates.TemplateResponse(
            request,
            "index.html",
            {"title": request.app.title, "version": request.app.version},
        )

    return router
