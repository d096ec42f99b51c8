"""Rate limiting configuration using slowapi."""

from slowapi import Limiter
from starlette.requests import Request

from recs_api.core.config import settings


def get_client_ip(request: Request) -> str:
    """Extract the real client IP behind a reverse proxy."""
    return (
        request.headers.get("CF-Connecting-IP")
        or request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
        or (request.client.host if request.client else "127.0.0.1")
    )


limiter = Limiter(key_func=get_client_ip, default_limits=[settings.rate_limit_default])

# Storefront event beacons fire on every page view
ANALYTICS_EVENT_LIMIT = "300/minute"
