"""
Middleware module for BowSense
"""

from .error_handler import setup_error_handlers
from .performance import PerformanceMiddleware
from .rate_limiter import limiter, setup_rate_limiting

__all__ = ["setup_error_handlers", "PerformanceMiddleware", "limiter", "setup_rate_limiting"]
