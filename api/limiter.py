"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in both api/main.py (to attach to app.state and handle
RateLimitExceeded) and api/routes/auth.py (to apply per-route limits with
@limiter.limit()).

Using a single shared instance ensures all routes share the same in-memory
counter store. If this were instantiated in each module separately, each
module would get its own isolated counter and rate limits would never trigger.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    enabled=get_settings().rate_limit_enabled,
)


def login_rate_limit() -> str:
    """Limit string for POST /login, read per request so tests can override it."""
    return get_settings().login_rate_limit
