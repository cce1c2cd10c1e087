"""Rate limiting for the AI routes using slowapi.

Only the routes that call the model are limited; the CRUD routes are cheap.
"""

from fastapi import Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address

from aichef.config import settings


def get_rate_limit_key(request: Request) -> str:
    """Limit per caller-supplied user id when present, else per client address."""
    user_id = request.headers.get("X-User-ID") or request.query_params.get("user_id")
    return f"user:{user_id}" if user_id else get_remote_address(request)


limiter = Limiter(
    key_func=get_rate_limit_key,
    enabled=settings.rate_limit_enabled,
    storage_uri="memory://",  # In-memory storage, per process
)

ai_rate_limit = limiter.limit(settings.ai_rate_limit)


def get_rate_limit_exceeded_handler():
    """Get rate limit exceeded handler."""
    return _rate_limit_exceeded_handler
