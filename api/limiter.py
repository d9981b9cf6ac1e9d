"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in both api/main.py (to mount as middleware) and the route modules
that tighten limits with @limiter.limit() (login, forgot-password).

Using a single shared instance ensures all routes share the same in-memory
counter store. If this were instantiated in each module separately, each
module would get its own isolated counter and rate limits would never trigger.

default_limits applies RATE_LIMIT (100 per 15 minutes unless configured) to
every route that does not carry its own limit or an exemption.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

_settings = get_settings()

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[_settings.rate_limit],
    storage_uri="memory://",
)
