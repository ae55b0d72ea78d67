"""
Diagnostic Capture
Timed recording window over the live metrics. The countdown runs on a wall
clock so it does not depend on the frame rate; when it expires the log is
aggregated into a DiagnosticReport exactly once.
"""

import time
import logging
from typing import Callable, Dict, List, Optional

from config import get_thresholds
from exceptions import CaptureAlreadyActive, CaptureNotActive
from .report_generator import DiagnosticLogEntry, DiagnosticReport, generate_report

logger = logging.getLogger(__name__)


class DiagnosticCapture:
    """
    Lifecycle: idle -> start() -> active -> finish()/poll() -> idle (report)
                                        \\-> cancel() -> idle (no report)
    """

    def __init__(
        self,
        duration_sec: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        session_id: str = ""
    ):
        self.duration_sec = duration_sec or get_thresholds().diagnostic.duration_sec
        self.clock = clock
        self.session_id = session_id

        self.log: List[DiagnosticLogEntry] = []
        self.last_report: Optional[DiagnosticReport] = None
        self._started_at: Optional[float] = None

    @property
    def is_active(self) -> bool:
        return self._started_at is not None

    def start(self) -> None:
        if self.is_active:
            raise CaptureAlreadyActive(self.remaining_sec())

        self.log = []
        self._started_at = self.clock()
        logger.info(f"[{self.session_id}] Diagnostic capture started ({self.duration_sec:.0f}s)")

    def append(self, entry: DiagnosticLogEntry) -> None:
        """Record one frame; ignored while idle"""
        if self.is_active:
            self.log.append(entry)

    def elapsed_sec(self) -> float:
        if not self.is_active:
            return 0.0
        return self.clock() - self._started_at

    def remaining_sec(self) -> float:
        if not self.is_active:
            return 0.0
        return max(0.0, self.duration_sec - self.elapsed_sec())

    def poll(self) -> Optional[DiagnosticReport]:
        """Finish the capture if its deadline has passed"""
        if self.is_active and self.elapsed_sec() >= self.duration_sec:
            return self.finish()
        return None

    def finish(self) -> DiagnosticReport:
        """
        Stop the capture and aggregate its log.

        Raises:
            CaptureNotActive: If no capture is running
        """
        if not self.is_active:
            raise CaptureNotActive("No diagnostic capture to finish")

        duration = min(self.elapsed_sec(), self.duration_sec)
        entries, self.log = self.log, []
        self._started_at = None

        self.last_report = generate_report(entries, duration, self.session_id)
        logger.info(
            f"[{self.session_id}] Diagnostic capture finished with {len(entries)} frames"
        )
        return self.last_report

    def cancel(self) -> None:
        """Stop the capture and discard its log without a report"""
        if not self.is_active:
            raise CaptureNotActive("No diagnostic capture to cancel")

        discarded = len(self.log)
        self.log = []
        self._started_at = None
        logger.info(f"[{self.session_id}] Diagnostic capture cancelled ({discarded} frames discarded)")

    def discard(self) -> None:
        """Drop any running capture silently (session reset)"""
        self.log = []
        self._started_at = None

    def status(self) -> Dict:
        return {
            "active": self.is_active,
            "duration_sec": self.duration_sec,
            "remaining_sec": round(self.remaining_sec(), 1),
            "frames_recorded": len(self.log),
            "has_report": self.last_report is not None,
        }
