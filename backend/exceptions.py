"""
Custom Exceptions for BowSense
Provides structured error handling with error codes and HTTP status mapping.

The metrics engine itself never raises for degenerate numeric input; these
exceptions cover input-contract violations and session-control misuse.
"""

from typing import Optional, Dict, Any, List


class BowSenseException(Exception):
    """Base exception for all BowSense errors"""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to API response format"""
        result = {
            "error": self.code,
            "detail": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Resource Errors (404, 409)
# =============================================================================

class SessionNotFound(BowSenseException):
    """Raised when session doesn't exist"""
    def __init__(self, session_id: str):
        super().__init__(
            f"Session not found: {session_id}",
            "SESSION_NOT_FOUND",
            404,
            {"session_id": session_id}
        )


class ReportNotFound(BowSenseException):
    """Raised when a session has no finished diagnostic report yet"""
    def __init__(self, session_id: str):
        super().__init__(
            f"No diagnostic report for session: {session_id}",
            "REPORT_NOT_FOUND",
            404,
            {"session_id": session_id}
        )


class SessionNotRunning(BowSenseException):
    """Raised when frames arrive for a stopped session"""
    def __init__(self, session_id: str):
        super().__init__(
            f"Session is not running: {session_id}",
            "SESSION_NOT_RUNNING",
            409,
            {"session_id": session_id}
        )


class CaptureNotActive(BowSenseException):
    """Raised when finishing or cancelling a capture that isn't running"""
    def __init__(self, message: str = "No diagnostic capture is active"):
        super().__init__(message, "CAPTURE_NOT_ACTIVE", 409)


class CaptureAlreadyActive(BowSenseException):
    """Raised when starting a capture while another one is running"""
    def __init__(self, remaining_sec: float):
        super().__init__(
            f"Diagnostic capture already running ({remaining_sec:.1f}s left)",
            "CAPTURE_ALREADY_ACTIVE",
            409,
            {"remaining_sec": round(remaining_sec, 1)}
        )


# =============================================================================
# Validation Errors (400, 422)
# =============================================================================

class ValidationError(BowSenseException):
    """Raised when input validation fails"""
    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", 400, details)


class InvalidLandmarks(BowSenseException):
    """Raised when a pose sample lacks landmarks the engine needs"""
    def __init__(self, missing: List[str], received: int):
        super().__init__(
            f"Pose sample missing required landmarks: {', '.join(missing)}",
            "INVALID_LANDMARKS",
            422,
            {"missing": missing, "received": received}
        )


# =============================================================================
# Resource Exhaustion Errors (507)
# =============================================================================

class ResourceExhausted(BowSenseException):
    """Raised when system resources are exhausted"""
    def __init__(self, resource: str, current: Optional[str] = None, limit: Optional[str] = None):
        details = {"resource": resource}
        if current:
            details["current"] = current
        if limit:
            details["limit"] = limit
        super().__init__(
            f"Resource exhausted: {resource}",
            "RESOURCE_EXHAUSTED",
            507,
            details
        )

