"""
Shoulder Baseline Calibration
Learns the performer's relaxed shoulder-ear distance automatically during the
first frames of a run.

Usage:
1. Player starts the session and begins playing relaxed
2. The first N frames seed and refine the baseline with an EMA
3. Later frames are scored against the frozen baseline
"""

import logging
from dataclasses import dataclass
from typing import Optional

from config import get_thresholds
from .geometry import ema

logger = logging.getLogger(__name__)


@dataclass
class CalibrationConfig:
    """Configuration for automatic calibration"""
    frames: int = 30
    alpha: float = 0.3

    @classmethod
    def from_thresholds(cls) -> "CalibrationConfig":
        cfg = get_thresholds().shoulder
        return cls(frames=cfg.calibration_frames, alpha=cfg.calibration_alpha)


class ShoulderBaselineCalibrator:
    """
    Automatic baseline policy: no manual trigger and no manual override.

    Callers read `baseline` before calling `update()` for the same frame, so
    the first frame of a run always sees no baseline.
    """

    def __init__(self, config: Optional[CalibrationConfig] = None):
        self.config = config or CalibrationConfig.from_thresholds()
        self._baseline: Optional[float] = None
        self._frames_seen = 0

    @property
    def baseline(self) -> Optional[float]:
        return self._baseline

    @property
    def frames_seen(self) -> int:
        return self._frames_seen

    @property
    def is_complete(self) -> bool:
        return self._frames_seen >= self.config.frames

    def update(self, current_distance: float) -> None:
        """Fold one frame's shoulder-ear distance into the baseline"""
        if self.is_complete:
            return

        self._frames_seen += 1
        # Collapsed landmarks carry no scale information
        if current_distance > 0:
            self._baseline = ema(self._baseline, current_distance, self.config.alpha)

        if self.is_complete:
            logger.info(
                f"Shoulder calibration complete after {self._frames_seen} frames",
                extra={"baseline": self._baseline}
            )

    def reset(self) -> None:
        self._baseline = None
        self._frames_seen = 0
