"""
Bow Zone Classification
Classifies the bow contact zone (frog / middle / tip) from how far the bowing
arm is extended, and tracks a rolling usage histogram of the zones.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from config import get_thresholds
from .geometry import angle_between3, distance, round_half_up

logger = logging.getLogger(__name__)

ZONES = ("tip", "middle", "frog")

# Distribution labels
LABEL_EMPTY = "--"
LABEL_TIP = "tip-heavy"
LABEL_FROG = "frog-heavy"
LABEL_MIDDLE = "middle-centered"
LABEL_FULL_BOW = "full bow"
LABEL_BALANCED = "balanced"


@dataclass
class BowZoneResult:
    """Zone for a single frame"""
    zone: str
    extension_ratio: float
    elbow_angle: float = 0.0  # Shoulder-elbow-wrist angle in degrees


@dataclass
class DistributionResult:
    """Zone usage in percent; always sums to 100"""
    tip: int
    middle: int
    frog: int
    label: str


def compute_bow_zone(shoulder, elbow, wrist) -> BowZoneResult:
    """
    Classify the bow zone from arm extension.

    Extension ratio = shoulder-to-wrist distance / (upper arm + forearm).
    A folded arm (low ratio) plays at the frog, a straight arm at the tip.
    """
    cfg = get_thresholds().zone

    arm_length = distance(shoulder, elbow) + distance(elbow, wrist)
    elbow_angle = round_half_up(angle_between3(shoulder, elbow, wrist), 1)

    if arm_length < cfg.min_arm_length:
        return BowZoneResult("middle", cfg.default_ratio, elbow_angle)

    ratio = distance(shoulder, wrist) / arm_length

    if ratio < cfg.frog_max_ratio:
        zone = "frog"
    elif ratio < cfg.middle_max_ratio:
        zone = "middle"
    else:
        zone = "tip"

    return BowZoneResult(zone, round_half_up(ratio, 2), elbow_angle)


def compute_distribution_percent(counts: Dict[str, int]) -> DistributionResult:
    """
    Convert zone counters to percentages with a summary label.
    Middle takes the rounding remainder so the total is exactly 100.
    """
    cfg = get_thresholds().distribution

    total = counts.get("tip", 0) + counts.get("middle", 0) + counts.get("frog", 0)
    if total == 0:
        return DistributionResult(tip=33, middle=34, frog=33, label=LABEL_EMPTY)

    tip_pct = round_half_up(counts.get("tip", 0) / total * 100)
    frog_pct = round_half_up(counts.get("frog", 0) / total * 100)
    mid_pct = 100 - tip_pct - frog_pct

    high = max(tip_pct, mid_pct, frog_pct)
    low = min(tip_pct, mid_pct, frog_pct)

    if high >= cfg.dominant_pct:
        if tip_pct == high:
            label = LABEL_TIP
        elif frog_pct == high:
            label = LABEL_FROG
        else:
            label = LABEL_MIDDLE
    elif high - low < cfg.full_bow_spread_pct:
        label = LABEL_FULL_BOW
    else:
        label = LABEL_BALANCED

    return DistributionResult(tip=tip_pct, middle=mid_pct, frog=frog_pct, label=label)


def distribution_status(result: DistributionResult) -> str:
    """Spread status used by the diagnostic report"""
    cfg = get_thresholds().distribution
    if result.label in (LABEL_FULL_BOW, LABEL_BALANCED, LABEL_EMPTY):
        return "good"
    if max(result.tip, result.middle, result.frog) >= cfg.skewed_bad_pct:
        return "bad"
    return "warn"


class BowDistribution:
    """
    Rolling zone histogram.
    All counters reset together once the window exceeds the reset interval
    of frame time; the frame that triggers the reset opens the new window.
    """

    def __init__(self, reset_interval_ms: Optional[float] = None):
        self.reset_interval_ms = reset_interval_ms or get_thresholds().distribution.reset_interval_ms
        self.counts: Dict[str, int] = {zone: 0 for zone in ZONES}
        self.window_start: Optional[float] = None

    def reset(self, now_ms: Optional[float] = None) -> None:
        self.counts = {zone: 0 for zone in ZONES}
        self.window_start = now_ms

    def record(self, zone: str, timestamp_ms: float) -> None:
        if self.window_start is None:
            self.window_start = timestamp_ms

        self.counts[zone] += 1

        if timestamp_ms - self.window_start > self.reset_interval_ms:
            logger.debug(f"Bow distribution window reset at {timestamp_ms:.0f}ms: {self.counts}")
            self.reset(timestamp_ms)
            self.counts[zone] += 1

    def percent(self) -> DistributionResult:
        return compute_distribution_percent(self.counts)
