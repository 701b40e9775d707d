"""
Secure HTTP headers middleware.

Adds security-related headers to every response:
- Strict-Transport-Security (forced, also on plain HTTP)
- Cache-Control / Pragma / Expires / Surrogate-Control (no caching)
- Content-Security-Policy
- X-Content-Type-Options, X-Frame-Options, Referrer-Policy

No business logic. Pure cross-cutting concern.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

CONTENT_SECURITY_POLICY = {
    "default-src": ["'none'"],
    "connect-src": ["'self'"],
    "font-src": ["'self'"],
    "frame-src": ["'self'"],
    "img-src": ["'self'", "data:"],
    "media-src": ["'none'"],
    "object-src": ["'none'"],
    "script-src": ["'self'", "'unsafe-inline'"],
    "style-src": ["'self'", "'unsafe-inline'"],
}

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
    "Surrogate-Control": "no-store",
}

SECURE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
}


def build_csp(directives: dict[str, list[str]]) -> str:
    """Render CSP directives into a header value."""
    return "; ".join(
        f"{name} {' '.join(sources)}" for name, sources in directives.items()
    )


def build_hsts(max_age: int, include_subdomains: bool) -> str:
    """Render the Strict-Transport-Security header value."""
    value = f"max-age={max_age}"
    if include_subdomains:
        value += "; includeSubDomains"
    return value


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware that adds secure HTTP headers to every response.

    HSTS is sent regardless of the request scheme, and every response is
    marked as not cacheable so clients always revalidate with the server.
    """

    def __init__(
        self,
        app: ASGIApp,
        hsts_max_age: int = 15_638_400,
        hsts_include_subdomains: bool = True,
        csp_directives: dict[str, list[str]] | None = None,
    ) -> None:
        super().__init__(app)
        self.headers = {
            "Strict-Transport-Security": build_hsts(
                hsts_max_age, hsts_include_subdomains
            ),
            "Content-Security-Policy": build_csp(
                csp_directives or CONTENT_SECURITY_POLICY
            ),
            **NO_CACHE_HEADERS,
            **SECURE_HEADERS,
        }

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Process request and add security headers to response."""
        response = await call_next(request)
        for header_name, header_value in self.headers.items():
            response.headers[header_name] = header_value
        return response
