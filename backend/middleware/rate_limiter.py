"""
Rate Limiting for BowSense
Uses slowapi for per-client request rate limiting.
"""

import logging
from typing import Callable

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from starlette.responses import JSONResponse

from config.settings import get_settings

logger = logging.getLogger(__name__)


def create_limiter() -> Limiter:
    """Create the rate limiter, keyed by client address."""
    settings = get_settings()

    return Limiter(
        key_func=get_remote_address,
        default_limits=[settings.RATE_LIMIT_GLOBAL],
        enabled=settings.RATE_LIMIT_ENABLED,
        storage_uri="memory://",
        strategy="fixed-window"
    )


# Global limiter instance
limiter = create_limiter()


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(
        f"Rate limit exceeded for {get_remote_address(request)}",
        extra={
            "path": str(request.url.path),
            "method": request.method,
            "limit": str(exc.detail)
        }
    )

    return JSONResponse(
        status_code=429,
        content={
            "error": "RATE_LIMIT_EXCEEDED",
            "detail": f"Rate limit exceeded: {exc.detail}",
            "path": str(request.url.path)
        },
        headers={
            "Retry-After": "60",
            "X-RateLimit-Limit": str(exc.detail)
        }
    )


def setup_rate_limiting(app) -> None:
    """Attach the limiter and its 429 handler to the FastAPI app."""
    settings = get_settings()

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    if settings.RATE_LIMIT_ENABLED:
        logger.info("Rate limiting enabled")
    else:
        logger.info("Rate limiting is disabled")


def limit_sessions(func: Callable) -> Callable:
    """Decorator for session creation"""
    return limiter.limit(get_settings().RATE_LIMIT_SESSIONS)(func)


def limit_capture(func: Callable) -> Callable:
    """Decorator for diagnostic capture start"""
    return limiter.limit(get_settings().RATE_LIMIT_CAPTURE)(func)
