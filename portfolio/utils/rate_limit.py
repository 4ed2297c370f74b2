"""
Rate limiting for brute-forceable endpoints (admin login, client gallery passwords).
Uses slowapi; disabled entirely when RATE_LIMIT_ENABLED is false.
"""
from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from portfolio.config import settings


def get_client_identifier(request: Request) -> str:
    """
    Client key for rate limiting.
    Uses the first X-Forwarded-For hop when behind a proxy, otherwise the remote address.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=["300/hour"],
    storage_uri="memory://",
    enabled=settings.RATE_LIMIT_ENABLED,
)


RATE_LIMITS = {
    "login": "5/minute",
    "gallery_access": "10/minute",
    "upload": "60/hour",
}
