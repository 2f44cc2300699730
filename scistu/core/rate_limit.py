from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from scistu.core.config import settings

limiter = Limiter(key_func=get_remote_address)


def rate_limit(limit: str | None = None):
    """slowapi limit for one route; ``limit`` overrides the global ``RATE_LIMIT``.

    The decorated endpoint must take a ``request: Request`` argument.
    """
    if settings.rate_limit_enabled:
        return limiter.limit(limit or settings.rate_limit)

    def decorator(func):
        return func

    return decorator
