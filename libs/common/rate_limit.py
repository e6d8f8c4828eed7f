"""Rate limiting for the onboarding endpoints.

Invite codes are short, so the lookup endpoints are the obvious target for
enumeration; they get the tightest tier. Counters live in Redis when
``REDIS_URL`` points at one, in process memory otherwise. Tests switch the
limiter off with ``RATE_LIMIT_ENABLED=false``.
"""

from functools import lru_cache
from typing import Callable

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from libs.common.config import get_settings


def _get_client_ip(request: Request) -> str:
    """
    Get client IP from request, handling proxies.

    Checks X-Forwarded-For header first (for proxied requests),
    then falls back to direct connection IP.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # Take the first IP in the chain (original client)
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


def _get_user_or_ip(request: Request) -> str:
    """
    Key by the authenticated subject when known, otherwise by client IP.

    ``request.state.user`` is only populated once the auth dependency has
    run, so the anonymous validate endpoint is always keyed by IP.
    """
    user = getattr(request.state, "user", None)
    if user is not None:
        return f"user:{user.user_id}"
    return f"ip:{_get_client_ip(request)}"


@lru_cache
def get_limiter() -> Limiter:
    """Build the process-wide Limiter from settings (cached)."""
    settings = get_settings()

    return Limiter(
        key_func=_get_user_or_ip,
        default_limits=["100/minute"],
        storage_uri=settings.REDIS_URL,
        strategy="fixed-window",
        enabled=settings.RATE_LIMIT_ENABLED,
    )


limiter = get_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """
    Custom handler for rate limit exceeded errors.

    Returns a JSON response with clear error message and retry-after header.
    """
    retry_after = exc.detail.split("per")[0].strip() if exc.detail else "1 minute"

    return JSONResponse(
        status_code=429,
        content={
            "detail": f"Rate limit exceeded. Try again in {retry_after}.",
            "code": "RATE_LIMIT_EXCEEDED",
        },
        headers={
            "Retry-After": str(getattr(exc, "retry_after", 60)),
            "X-RateLimit-Limit": str(getattr(exc, "limit", "unknown")),
        },
    )


# Decorator shortcuts for common rate limit tiers
def invite_limit(func: Callable) -> Callable:
    """Invite code lookups are guessable; keep them tight (30/minute)."""
    return limiter.limit("30/minute")(func)


def search_limit(func: Callable) -> Callable:
    """Account search (60/minute)."""
    return limiter.limit("60/minute")(func)


def admin_limit(func: Callable) -> Callable:
    """Apply relaxed rate limit for admin endpoints (200/minute)."""
    return limiter.limit("200/minute")(func)
