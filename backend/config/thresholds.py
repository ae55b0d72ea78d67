"""
BowSense - Configurable Thresholds
All bowing evaluation thresholds live here and can be tuned without code changes.
"""

from dataclasses import dataclass, field
from typing import Dict


@dataclass
class TrailConfig:
    """Wrist trail buffer"""
    # Maximum samples kept (oldest evicted)
    capacity: int = 60


@dataclass
class StraightnessConfig:
    """Bow straightness (M1) thresholds"""
    # Minimum trail length before any score is produced
    min_trail_samples: int = 10
    # Horizontal deltas below this (normalized units) are treated as noise
    noise_floor: float = 0.002
    # Strokes shorter than this are discarded
    min_stroke_samples: int = 8
    # Chord length below this is too short to trust
    min_stroke_length: float = 0.03
    # |n*Sxx - Sx^2| below this means a near-vertical stroke
    degenerate_epsilon: float = 1e-10
    # Score = 100 - curvature * penalty
    score_penalty: float = 5.0
    # Curvature (%) bands
    warn_curvature: float = 2.0
    bad_curvature: float = 5.0


@dataclass
class ZoneConfig:
    """Bow zone (M2) thresholds on arm extension ratio"""
    # Arm length guard (normalized)
    min_arm_length: float = 0.01
    default_ratio: float = 0.5
    # ratio < frog_max -> frog, < middle_max -> middle, else tip
    frog_max_ratio: float = 0.55
    middle_max_ratio: float = 0.78


@dataclass
class DistributionConfig:
    """Bow distribution histogram"""
    # Counters reset together after this many ms of frame time
    reset_interval_ms: float = 10000.0
    # A zone at or above this share dominates the label
    dominant_pct: int = 50
    # max - min below this means the whole bow is used evenly
    full_bow_spread_pct: int = 15
    # Dominant share at or above this is a bad distribution in reports
    skewed_bad_pct: int = 75


@dataclass
class ElbowConfig:
    """Elbow height (M3) thresholds"""
    # Body scale when no hip landmark is supplied
    fallback_body_scale: float = 0.3
    min_body_scale: float = 0.01
    # Relative height bands (positive = elbow below shoulder)
    too_high: float = -0.15
    too_low: float = 0.5
    slightly_low: float = 0.35


@dataclass
class ShoulderConfig:
    """Shoulder tension (M4) thresholds"""
    # Relative drop of shoulder-ear distance vs baseline
    warn_change: float = 0.15
    bad_change: float = 0.25
    # |L - R| / max(L, R) above this flags uneven shoulders
    asymmetry_threshold: float = 0.2
    # Automatic baseline learning (first N frames of a run)
    calibration_frames: int = 30
    calibration_alpha: float = 0.3


@dataclass
class SmoothingConfig:
    """EMA smoothing factors (larger = more reactive)"""
    straightness_alpha: float = 0.15
    elbow_alpha: float = 0.1


@dataclass
class DiagnosticConfig:
    """Diagnostic capture and report scoring"""
    # Capture window length
    duration_sec: float = 15.0
    # Channel weights for the overall score
    straightness_weight: float = 3.0
    elbow_weight: float = 2.0
    shoulder_weight: float = 2.0
    distribution_weight: float = 1.0
    # Status -> channel score
    elbow_scores: Dict[str, int] = field(
        default_factory=lambda: {"good": 90, "warn": 60, "bad": 30}
    )
    shoulder_scores: Dict[str, int] = field(
        default_factory=lambda: {"good": 95, "warn": 60, "bad": 30}
    )
    distribution_scores: Dict[str, int] = field(
        default_factory=lambda: {"good": 90, "warn": 65, "bad": 35}
    )
    # Overall status bands
    overall_good: int = 80
    overall_warn: int = 60
    # Commentary bands
    excellent_score: int = 85
    good_score: int = 70
    needs_work_score: int = 50
    # Frames with mean visibility below this count as low confidence
    low_confidence: float = 0.5
    # Session-wide mean visibility below this earns a camera note
    low_avg_confidence: float = 0.6
    # Share of low-confidence frames that earns a visibility note
    low_confidence_share: float = 0.1


@dataclass
class ThresholdConfig:
    """Master threshold configuration"""
    trail: TrailConfig = field(default_factory=TrailConfig)
    straightness: StraightnessConfig = field(default_factory=StraightnessConfig)
    zone: ZoneConfig = field(default_factory=ZoneConfig)
    distribution: DistributionConfig = field(default_factory=DistributionConfig)
    elbow: ElbowConfig = field(default_factory=ElbowConfig)
    shoulder: ShoulderConfig = field(default_factory=ShoulderConfig)
    smoothing: SmoothingConfig = field(default_factory=SmoothingConfig)
    diagnostic: DiagnosticConfig = field(default_factory=DiagnosticConfig)


# Global config instance - modify this to tune thresholds
THRESHOLDS = ThresholdConfig()


def get_thresholds() -> ThresholdConfig:
    """Get the current threshold configuration"""
    return THRESHOLDS


# Commonly referenced thresholds (aliases)
TRAIL_CAPACITY = THRESHOLDS.trail.capacity
DIAGNOSTIC_DURATION_SEC = THRESHOLDS.diagnostic.duration_sec
CALIBRATION_FRAMES = THRESHOLDS.shoulder.calibration_frames
