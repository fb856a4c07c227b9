# File: minibook/core/limiter.py

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from minibook.core.config import settings

# Keyed by client IP. Routes opt in with ``@limiter.limit(...)``.
# One limiter serves every app in the process; each app switches its own
# limits on or off through ``rate_limit_disabled``.
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.rate_limit_storage_uri,
)


def rate_limit_disabled(request: Request) -> bool:
    return not request.app.state.settings.rate_limit_enabled


# Limit values come from the process environment, not from a per-app Settings
def auth_rate_limit() -> str:
    return settings.auth_rate_limit


def health_rate_limit() -> str:
    return settings.health_rate_limit


async def custom_rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """
    Custom exception handler for rate-limited requests to return a JSON response.
    """
    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": "Too many requests",
            "message": f"Rate limit exceeded ({exc.detail}). Please try again later.",
        },
    )
