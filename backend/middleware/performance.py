"""
Request Timing Middleware for BowSense
Assigns a correlation ID to each request and logs its duration.
"""

import time
import logging
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from logging_config import new_correlation_id, set_correlation_id

logger = logging.getLogger(__name__)

# Frame posts arrive many times per second; a slow one stalls live feedback
SLOW_REQUEST_MS = 250.0

# Logged at DEBUG to keep per-frame traffic out of INFO logs
QUIET_PATH_SUFFIXES = ("/frames",)


class PerformanceMiddleware(BaseHTTPMiddleware):
    """
    Adds to every response:
    - X-Correlation-ID (taken from the request header when supplied)
    - X-Process-Time-Ms
    """

    def __init__(self, app, slow_request_ms: float = SLOW_REQUEST_MS):
        super().__init__(app)
        self.slow_request_ms = slow_request_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or new_correlation_id()
        set_correlation_id(correlation_id)
        request.state.correlation_id = correlation_id

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Process-Time-Ms"] = f"{duration_ms:.2f}"

        path = request.url.path
        if path.startswith("/health"):
            return response

        slow = duration_ms > self.slow_request_ms
        if slow:
            log_level = logging.WARNING
        elif path.endswith(QUIET_PATH_SUFFIXES):
            log_level = logging.DEBUG
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            f"{request.method} {path} - {response.status_code} ({duration_ms:.2f}ms)",
            extra={
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "slow": slow
            }
        )

        return response
