"""
api/limiter.py -- Shared slowapi rate limiter and the auth route limits.

Import `limiter` in both api/main.py (to mount as middleware) and
api/routes/v1/auth.py (to apply per-route limits with @limiter.limit()).

Using a single shared instance ensures all routes share the same in-memory
counter store. If this were instantiated in each module separately, each
module would get its own isolated counter and rate limits would never trigger.

login_limit() and signup_limit() are passed to @limiter.limit() as callables,
so slowapi re-reads the configured limit on every request instead of freezing
it at import time.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")


def login_limit() -> str:
    """Per-IP limit for POST /auth/login (LOGIN_RATE_LIMIT)."""
    return get_settings().login_rate_limit


def signup_limit() -> str:
    """Per-IP limit for POST /auth/signup (SIGNUP_RATE_LIMIT)."""
    return get_settings().signup_rate_limit
