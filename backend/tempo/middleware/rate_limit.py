"""Rate limiting via slowapi.

Usage:
    from tempo.middleware.rate_limit import limiter

    @router.post("/login")
    @limiter.limit(settings.RATE_LIMIT_AUTH)
    def login(request: Request, ...):
        ...
"""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from tempo.config import settings


def get_client_identifier(request: Request) -> str:
    """Client IP, honouring X-Forwarded-For when behind a proxy."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # First IP in the chain is the original client
        return forwarded_for.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(key_func=get_client_identifier, enabled=settings.RATE_LIMIT_ENABLED)
