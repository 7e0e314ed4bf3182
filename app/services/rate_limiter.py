"""
Rate Limiting Service

Implements rate limiting using slowapi to protect the API from abuse
and ensure fair usage across clients.

Key Features:
=============
1. IP-based rate limiting (proxy headers honored)
2. Configurable limits per endpoint type
3. Pluggable storage (in-memory by default, redis:// for several instances)
4. 429 responses use the standard error envelope

Rate Limit Tiers:
=================
- Default (reads): 100 requests / 15 minutes
- Writes (book mutations): 30 requests/minute
- Auth (register, login, refresh): 10 requests/minute
"""

import logging

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from app.config import get_settings
from app.utils.responses import error_response

logger = logging.getLogger(__name__)
settings = get_settings()

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


def get_client_ip(request: Request) -> str:
    """
    Get client IP address for rate limiting.

    Handles common proxy headers to get the real client IP.
    Falls back to direct connection IP if no proxy headers.
    """
    # X-Forwarded-For can contain multiple IPs; first is the client
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    # nginx
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


def create_limiter() -> Limiter:
    """
    Create and configure the rate limiter.

    Limits are applied per route with @limiter.limit(...); default_limits
    only covers routes without their own decorator when SlowAPIMiddleware
    is installed.
    """
    limiter = Limiter(
        key_func=get_client_ip,
        default_limits=[settings.rate_limit_default],
        storage_uri=settings.rate_limit_storage_uri,
        strategy="fixed-window",
        enabled=settings.rate_limit_enabled,
    )

    logger.info(
        f"Rate limiter initialized - enabled: {settings.rate_limit_enabled}, "
        f"default: {settings.rate_limit_default}"
    )

    return limiter


limiter = create_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Render RateLimitExceeded as a 429 error envelope.

    The limit that was hit is echoed in X-RateLimit-Limit; Retry-After
    defaults to one minute.
    """
    limit_detail = str(exc.detail)

    logger.warning(f"Rate limit exceeded for {get_client_ip(request)}: {limit_detail}")

    return error_response(
        status_code=429,
        message=RATE_LIMIT_MESSAGE,
        headers={
            "Retry-After": str(60),
            "X-RateLimit-Limit": limit_detail,
        },
    )
