"""
FastAPI Application - BowSense Bowing Coach API
Live bowing feedback for violin practice: clients post pose landmarks frame
by frame and receive straightness, bow distribution, elbow height and
shoulder tension metrics with a coaching cue.
"""

import os
import time
import logging
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

# Internal imports
from config.settings import get_settings
from core.report_generator import report_to_dict
from core.session_registry import SessionRegistry
from exceptions import ReportNotFound
from logging_config import setup_logging
from middleware.error_handler import setup_error_handlers
from middleware.performance import PerformanceMiddleware
from middleware.rate_limiter import limit_capture, limit_sessions, setup_rate_limiting

# Load settings
settings = get_settings()

setup_logging(
    level=settings.LOG_LEVEL,
    json_format=settings.LOG_JSON or settings.is_production,
    log_file=settings.LOG_FILE
)
logger = logging.getLogger(__name__)

STARTED_AT = time.time()

# =============================================================================
# Application Factory
# =============================================================================

def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title=settings.APP_NAME,
        description="Real-time bowing form analysis for violin practice",
        version=settings.APP_VERSION,
        docs_url="/docs" if settings.DEBUG else None,  # Disable docs in production
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Correlation-ID"],
        max_age=3600,
    )

    app.add_middleware(PerformanceMiddleware)

    setup_error_handlers(app)
    setup_rate_limiting(app)

    return app


# Create app instance
app = create_app()

# =============================================================================
# Global State
# =============================================================================

registry = SessionRegistry(
    max_sessions=settings.MAX_ACTIVE_SESSIONS,
    diagnostic_duration=settings.DIAGNOSTIC_DURATION_SEC
)

# =============================================================================
# Request/Response Models
# =============================================================================

class LandmarkModel(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    x: float = Field(..., description="Normalized image x (0-1)")
    y: float = Field(..., description="Normalized image y (0-1, downward)")
    visibility: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class FrameRequest(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    timestamp: float = Field(..., description="Frame timestamp in milliseconds")
    landmarks: List[Optional[LandmarkModel]] = Field(
        ...,
        max_length=33,
        description="Pose landmarks indexed by MediaPipe landmark index"
    )


class CreateSessionRequest(BaseModel):
    start: bool = Field(default=True, description="Start the session immediately")


class StartRequest(BaseModel):
    timestamp: Optional[float] = Field(default=None, description="Current frame time in ms")


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str


# =============================================================================
# Health Check Endpoints
# =============================================================================

@app.get("/", response_model=HealthResponse, tags=["Health"])
async def root():
    """Root endpoint - basic health check."""
    return HealthResponse(
        status="ok",
        service=settings.APP_NAME,
        version=settings.APP_VERSION
    )


@app.get("/health", tags=["Health"])
async def health():
    """Simple health check for load balancers."""
    return {"status": "healthy"}


@app.get("/health/live", tags=["Health"])
async def health_live():
    """Liveness probe - is service responding?"""
    return {"status": "alive"}


@app.get("/health/ready", tags=["Health"])
async def health_ready():
    """Readiness probe - can the service accept a new session?"""
    if len(registry) >= registry.max_sessions:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "reason": "session_capacity_reached"}
        )
    return {"status": "ready"}


@app.get("/metrics", tags=["Health"])
async def metrics():
    """Basic process and session metrics for monitoring."""
    import psutil

    process = psutil.Process(os.getpid())
    sessions = registry.list_sessions()

    return {
        "uptime_seconds": round(time.time() - STARTED_AT, 1),
        "memory_mb": round(process.memory_info().rss / 1024 / 1024, 2),
        "cpu_percent": process.cpu_percent(interval=None),
        "sessions_count": len(sessions),
        "sessions_running": sum(1 for s in sessions if s["running"]),
        "captures_active": sum(1 for s in sessions if s["capture"]["active"]),
        "max_sessions": registry.max_sessions
    }


# =============================================================================
# Session Endpoints
# =============================================================================

@app.post("/api/sessions", status_code=201, tags=["Sessions"])
@limit_sessions
async def create_session(request: Request, body: Optional[CreateSessionRequest] = None):
    """
    Create a bowing session.

    - **start**: start it right away (default true)
    """
    session = registry.create()
    if body is None or body.start:
        session.start()
    return session.summary()


@app.get("/api/sessions", tags=["Sessions"])
async def list_sessions():
    """List live sessions."""
    sessions = registry.list_sessions()
    return {"sessions": sessions, "count": len(sessions)}


@app.get("/api/sessions/{session_id}", tags=["Sessions"])
async def get_session(session_id: str):
    return registry.get(session_id).summary()


@app.delete("/api/sessions/{session_id}", tags=["Sessions"])
async def delete_session(session_id: str):
    registry.delete(session_id)
    return {"deleted": session_id}


@app.post("/api/sessions/{session_id}/start", tags=["Sessions"])
async def start_session(session_id: str, body: Optional[StartRequest] = None):
    """
    Start (or restart) a session. Trail, distribution, smoothing and
    calibration all begin from scratch.
    """
    session = registry.get(session_id)
    session.start(body.timestamp if body else None)
    return session.summary()


@app.post("/api/sessions/{session_id}/stop", tags=["Sessions"])
async def stop_session(session_id: str):
    """Stop a session; a running diagnostic capture is cancelled."""
    session = registry.get(session_id)
    session.stop()
    return session.summary()


# =============================================================================
# Frame Endpoint
# =============================================================================

@app.post("/api/sessions/{session_id}/frames", tags=["Frames"])
async def process_frame(session_id: str, frame: FrameRequest):
    """
    Analyze one pose sample.

    - **timestamp**: frame time in ms; frames not newer than the previous
      one are skipped
    - **landmarks**: MediaPipe pose landmarks (null for undetected points)
    """
    session = registry.get(session_id)
    landmarks = [lm.model_dump() if lm is not None else None for lm in frame.landmarks]

    result = session.process_frame(landmarks, frame.timestamp)
    if result is None:
        return {"skipped": True, "capture": session.capture.status()}

    return {
        "skipped": False,
        **result.to_dict(),
        "capture": session.capture.status()
    }


# =============================================================================
# Diagnostic Capture Endpoints
# =============================================================================

@app.post("/api/sessions/{session_id}/capture", status_code=201, tags=["Diagnostic"])
@limit_capture
async def start_capture(request: Request, session_id: str):
    """Start a timed diagnostic capture on a running session."""
    session = registry.get(session_id)
    return session.start_capture()


@app.get("/api/sessions/{session_id}/capture", tags=["Diagnostic"])
async def capture_status(session_id: str):
    """Capture countdown; finishes the capture if its time is up."""
    session = registry.get(session_id)
    report = session.poll_capture()

    status = session.capture.status()
    if report is not None:
        status["report"] = report_to_dict(report)
    return status


@app.delete("/api/sessions/{session_id}/capture", tags=["Diagnostic"])
async def cancel_capture(session_id: str):
    """Cancel the running capture without producing a report."""
    session = registry.get(session_id)
    session.cancel_capture()
    return session.capture.status()


@app.post("/api/sessions/{session_id}/capture/finish", tags=["Diagnostic"])
async def finish_capture(session_id: str):
    """Finish the running capture early and return its report."""
    session = registry.get(session_id)
    return report_to_dict(session.finish_capture())


@app.get("/api/sessions/{session_id}/report", tags=["Diagnostic"])
async def get_report(session_id: str):
    """Latest diagnostic report of a session."""
    session = registry.get(session_id)
    session.poll_capture()

    if session.last_report is None:
        raise ReportNotFound(session_id)
    return report_to_dict(session.last_report)


# =============================================================================
# Main
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
