from .thresholds import (
    ThresholdConfig,
    get_thresholds,
    THRESHOLDS,
    TRAIL_CAPACITY,
    DIAGNOSTIC_DURATION_SEC,
    CALIBRATION_FRAMES,
)
from .settings import Settings, get_settings, settings

__all__ = [
    "ThresholdConfig",
    "get_thresholds",
    "THRESHOLDS",
    "TRAIL_CAPACITY",
    "DIAGNOSTIC_DURATION_SEC",
    "CALIBRATION_FRAMES",
    "Settings", "get_settings", "settings"
]
