"""
Rate Limiting for the CampusGate API
====================================
slowapi limiter with Redis storage, applied to every route through
SlowAPIMiddleware. Authenticated callers are limited per user, anonymous
callers (health checks, bad tokens) per IP address.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from gatepass.core.config import settings
from gatepass.core.logging_config import logger
from gatepass.core.security import decode_access_subject


DEFAULT_LIMIT = f"{settings.RATE_LIMIT_PER_MINUTE}/(1 minute)"


def get_user_identifier(request: Request) -> str:
    """
    Get rate limit key based on user authentication.

    Priority:
    1. User ID from a valid bearer token
    2. IP address
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        user_id = decode_access_subject(auth_header[7:].strip())
        if user_id:
            return f"user:{user_id}"

    return f"ip:{get_remote_address(request)}"


def get_storage_uri() -> str:
    """Redis when limiting is on; in-memory otherwise so tests need no Redis"""
    if settings.RATE_LIMIT_ENABLED and settings.REDIS_URL:
        return settings.REDIS_URL
    return "memory://"


# Create limiter instance
limiter = Limiter(
    key_func=get_user_identifier,
    default_limits=[DEFAULT_LIMIT],
    storage_uri=get_storage_uri(),
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """JSON 429 response in the API error format, with Retry-After"""
    retry_after = "60"

    logger.warning(
        f"[RateLimit] Exceeded for {get_user_identifier(request)}: {exc.detail}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": {
                "code": "RATE_LIMIT_EXCEEDED",
                "message": "Too many requests. Please slow down.",
                "details": {"limit": str(exc.detail)},
            },
        },
        headers={
            "Retry-After": retry_after,
            "X-RateLimit-Limit": str(settings.RATE_LIMIT_PER_MINUTE),
        }
    )


def rate_limit(limit: str):
    """
    Decorator for applying a tighter limit to one endpoint.

    Usage:
        @router.post("/scan")
        @rate_limit("30/(1 minute)")
        async def scan(request: Request, ...):
            ...
    """
    return limiter.limit(limit, key_func=get_user_identifier)
