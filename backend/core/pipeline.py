"""
Live Bowing Pipeline
Turns a stream of pose samples into per-frame bowing metrics and advice.
One BowingSession holds all rolling state for one performer.
"""

import math
import time
import uuid
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Sequence

from exceptions import SessionNotRunning, ValidationError
from config import get_thresholds
from .advice import select_advice
from .bow_zone import BowDistribution, compute_bow_zone
from .calibration import ShoulderBaselineCalibrator
from .diagnostic import DiagnosticCapture
from .elbow_height import ElbowResult, compute_elbow_height
from .feature_computer import extract_bowing_landmarks
from .geometry import ema, round_half_up
from .metrics import MetricsRecord
from .report_generator import DiagnosticLogEntry, DiagnosticReport, report_to_dict
from .shoulder_tension import compute_shoulder_tension
from .stroke_analyzer import StraightnessResult, WristTrail, compute_bow_straightness

logger = logging.getLogger(__name__)


@dataclass
class FrameResult:
    """Output of one processed frame"""
    timestamp: float
    metrics: MetricsRecord
    advice: str
    pose_confidence: Optional[float] = None
    # Set when the diagnostic capture expired on this frame
    report: Optional[DiagnosticReport] = None

    def to_dict(self) -> Dict:
        result = {
            "timestamp": self.timestamp,
            "metrics": self.metrics.to_dict(),
            "advice": self.advice,
            "pose_confidence": self.pose_confidence,
        }
        if self.report is not None:
            result["report"] = report_to_dict(self.report)
        return result


class BowingSession:
    """
    Per-performer analysis state:
    1. Wrist trail for stroke straightness
    2. Rolling zone distribution
    3. EMA smoothers for straightness and elbow height
    4. Shoulder baseline calibration
    5. Diagnostic capture

    All of it is cleared together by start() and reset(), so a new run never
    sees stale trail, counters or baseline from the previous one.
    """

    def __init__(
        self,
        session_id: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
        diagnostic_duration: Optional[float] = None
    ):
        self.session_id = session_id or str(uuid.uuid4())[:8]
        self.created_at = datetime.now(timezone.utc).isoformat()

        self.trail = WristTrail()
        self.distribution = BowDistribution()
        self.calibrator = ShoulderBaselineCalibrator()
        self.capture = DiagnosticCapture(
            duration_sec=diagnostic_duration,
            clock=clock,
            session_id=self.session_id
        )

        self.running = False
        self.frames_processed = 0
        self.last_timestamp: Optional[float] = None
        self.smooth_straightness: Optional[float] = None
        self.smooth_elbow_height: Optional[float] = None

    def reset(self, now_ms: Optional[float] = None) -> None:
        """Clear all rolling state in one step"""
        self.trail.clear()
        self.distribution.reset(now_ms)
        self.calibrator.reset()
        self.capture.discard()
        self.frames_processed = 0
        self.last_timestamp = None
        self.smooth_straightness = None
        self.smooth_elbow_height = None

    def start(self, now_ms: Optional[float] = None) -> None:
        self.reset(now_ms)
        self.running = True
        logger.info(f"[{self.session_id}] Session started")

    def stop(self) -> None:
        if self.capture.is_active:
            self.capture.cancel()
        self.running = False
        logger.info(f"[{self.session_id}] Session stopped after {self.frames_processed} frames")

    def process_frame(self, landmarks: Sequence, timestamp_ms: float) -> Optional[FrameResult]:
        """
        Process one pose sample.

        Args:
            landmarks: Pose landmarks indexed by MediaPipe landmark index
            timestamp_ms: Frame timestamp in milliseconds, strictly increasing

        Returns:
            FrameResult, or None when the timestamp is not newer than the
            previous frame (duplicate delivery)

        Raises:
            SessionNotRunning: If the session is stopped
            ValidationError: If the timestamp is not a finite number
            InvalidLandmarks: If required landmarks are missing
        """
        if not self.running:
            raise SessionNotRunning(self.session_id)

        if timestamp_ms is None or not math.isfinite(timestamp_ms):
            raise ValidationError("Frame timestamp must be a finite number", field="timestamp")

        if self.last_timestamp is not None and timestamp_ms <= self.last_timestamp:
            logger.debug(
                f"[{self.session_id}] Skipped frame at {timestamp_ms}ms "
                f"(last {self.last_timestamp}ms)"
            )
            return None

        points = extract_bowing_landmarks(landmarks)
        self.last_timestamp = timestamp_ms

        smoothing = get_thresholds().smoothing

        # M1: straightness of the latest stroke
        self.trail.append(points.right_wrist.x, points.right_wrist.y, timestamp_ms)
        straightness = compute_bow_straightness(self.trail)
        if straightness.score is not None:
            self.smooth_straightness = ema(
                self.smooth_straightness, straightness.score, smoothing.straightness_alpha
            )

        # M2: contact zone and rolling distribution
        bow_zone = compute_bow_zone(points.right_shoulder, points.right_elbow, points.right_wrist)
        self.distribution.record(bow_zone.zone, timestamp_ms)
        distribution = self.distribution.percent()

        # M3: elbow height
        elbow = compute_elbow_height(points.right_shoulder, points.right_elbow, points.right_hip)
        self.smooth_elbow_height = ema(
            self.smooth_elbow_height, elbow.relative_height, smoothing.elbow_alpha
        )

        # M4: shoulder tension, scored against the baseline before this frame
        shoulder = compute_shoulder_tension(
            points.right_shoulder, points.right_ear,
            points.left_shoulder, points.left_ear,
            self.calibrator.baseline
        )
        self.calibrator.update(shoulder.current_distance)

        record = MetricsRecord(
            straightness=StraightnessResult(
                score=(
                    round_half_up(self.smooth_straightness)
                    if self.smooth_straightness is not None else None
                ),
                curvature=straightness.curvature,
                status=straightness.status,
                stroke_samples=straightness.stroke_samples,
            ),
            distribution=distribution,
            bow_zone=bow_zone,
            elbow=ElbowResult(
                relative_height=round_half_up(self.smooth_elbow_height, 2),
                status=elbow.status,
                label=elbow.label,
            ),
            shoulder=shoulder,
        )
        advice = select_advice(record)
        self.frames_processed += 1

        self.capture.append(
            DiagnosticLogEntry.from_record(record, timestamp_ms, points.pose_confidence)
        )
        report = self.capture.poll()

        return FrameResult(
            timestamp=timestamp_ms,
            metrics=record,
            advice=advice,
            pose_confidence=points.pose_confidence,
            report=report,
        )

    # Diagnostic capture controls

    def start_capture(self) -> Dict:
        if not self.running:
            raise SessionNotRunning(self.session_id)
        self.capture.start()
        return self.capture.status()

    def cancel_capture(self) -> None:
        self.capture.cancel()

    def finish_capture(self) -> DiagnosticReport:
        return self.capture.finish()

    def poll_capture(self) -> Optional[DiagnosticReport]:
        return self.capture.poll()

    @property
    def last_report(self) -> Optional[DiagnosticReport]:
        return self.capture.last_report

    def summary(self) -> Dict:
        """Session state for listings"""
        return {
            "session_id": self.session_id,
            "created_at": self.created_at,
            "running": self.running,
            "frames_processed": self.frames_processed,
            "calibrated": self.calibrator.is_complete,
            "shoulder_baseline": self.calibrator.baseline,
            "capture": self.capture.status(),
        }
