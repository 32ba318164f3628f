"""
Rate limiting configuration and setup.

Uses slowapi to enforce per-endpoint rate limits. Requests are keyed by
the authenticated user when the X-User-Id header is present, otherwise
by client address, so one user cannot hammer the exchange endpoint from
many IPs.
"""

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

from changeit.core.config import settings

USER_HEADER = "X-User-Id"


def user_or_address(request: Request) -> str:
    """Return the rate-limit key for a request."""
    user_id = request.headers.get(USER_HEADER)
    if user_id:
        return f"user:{user_id}"
    return get_remote_address(request)


limiter = Limiter(key_func=user_or_address, default_limits=[settings.rate_limit_default])


async def rate_limit_exceeded_handler(
    _request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """Handle rate limit exceeded errors with a clean JSON response.

    Args:
        _request: The incoming HTTP request.
        exc: The rate limit exceeded exception.

    Returns:
        A 429 JSON response with a clear error message.
    """
    return JSONResponse(
        status_code=429,
        content={"error": "Rate limit exceeded", "detail": str(exc.detail)},
    )
