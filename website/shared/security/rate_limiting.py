"""
Rate limiting configuration and setup.

Uses slowapi to enforce per-endpoint rate limits on page routes.
Exceeded limits surface as RateLimitExceeded and are turned into a 429
JSON response by the centralized error handlers.

Each application builds its own limiter, so counters and the enabled
switch never leak between apps.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

DEFAULT_RATE_LIMIT = "60/minute"


def build_limiter(enabled: bool = True) -> Limiter:
    """Create a limiter keyed on the client address.

    Args:
        enabled: Whether limits are enforced.

    Returns:
        A new limiter with in-memory storage.
    """
    return Limiter(
        key_func=get_remote_address,
        default_limits=[DEFAULT_RATE_LIMIT],
        enabled=enabled,
    )
