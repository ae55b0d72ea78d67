"""
Global Error Handlers for BowSense
Every error leaves the API as {error, detail, path[, details]}.
"""

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from exceptions import BowSenseException
from config.settings import get_settings

logger = logging.getLogger(__name__)


def error_body(request: Request, code: str, detail, **extra) -> dict:
    return {
        "error": code,
        "detail": detail,
        "path": str(request.url.path),
        **extra
    }


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""
    settings = get_settings()

    @app.exception_handler(BowSenseException)
    async def bowsense_exception_handler(
        request: Request,
        exc: BowSenseException
    ) -> JSONResponse:
        # Client-side misuse is expected traffic; only server faults are errors
        log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
        logger.log(
            log_level,
            f"{exc.code} - {exc.message}",
            extra={
                "code": exc.code,
                "status_code": exc.status_code,
                "path": str(request.url.path),
                "method": request.method,
                "details": exc.details
            }
        )

        return JSONResponse(
            status_code=exc.status_code,
            content={**exc.to_dict(), "path": str(request.url.path)}
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request,
        exc: StarletteHTTPException
    ) -> JSONResponse:
        logger.warning(
            f"HTTP error: {exc.status_code} - {exc.detail}",
            extra={
                "status_code": exc.status_code,
                "path": str(request.url.path),
                "method": request.method
            }
        )

        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(request, "HTTP_ERROR", exc.detail)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError
    ) -> JSONResponse:
        formatted_errors = [
            {
                "field": ".".join(str(loc) for loc in error.get("loc", [])),
                "message": error.get("msg", "Validation error"),
                "type": error.get("type", "unknown")
            }
            for error in exc.errors()
        ]

        logger.warning(
            f"Validation error on {request.url.path}",
            extra={
                "path": str(request.url.path),
                "method": request.method,
                "errors": formatted_errors
            }
        )

        return JSONResponse(
            status_code=422,
            content=error_body(
                request, "VALIDATION_ERROR", "Request validation failed",
                validation_errors=formatted_errors
            )
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request,
        exc: Exception
    ) -> JSONResponse:
        logger.error(
            f"Unhandled exception: {type(exc).__name__} - {str(exc)}",
            exc_info=True,
            extra={
                "path": str(request.url.path),
                "method": request.method,
                "exception_type": type(exc).__name__
            }
        )

        if settings.DEBUG:
            content = error_body(
                request, "INTERNAL_SERVER_ERROR", str(exc),
                traceback=traceback.format_exc()
            )
        else:
            content = error_body(request, "INTERNAL_SERVER_ERROR", "An unexpected error occurred")

        return JSONResponse(status_code=500, content=content)
