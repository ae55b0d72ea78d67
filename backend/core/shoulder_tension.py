"""
Shoulder Tension Evaluation
Raised shoulders shorten the shoulder-ear distance. Tension is the relative
drop of that distance against a calibrated relaxed baseline, with a separate
left/right asymmetry check.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from config import get_thresholds
from .geometry import distance, round_half_up

LABEL_RELAXED = "relaxed"
LABEL_SLIGHTLY_TENSE = "slightly tense"
LABEL_TENSE = "tense"
LABEL_UNEVEN = "uneven shoulders"
LABEL_PENDING = "calibration pending"


@dataclass
class ShoulderResult:
    tension: int              # Percent drop vs baseline, >= 0
    status: str
    label: str
    current_distance: float   # Mean shoulder-ear distance this frame
    asymmetry: float = 0.0


def _classify_change(change: float) -> Tuple[str, str]:
    cfg = get_thresholds().shoulder
    if change > cfg.bad_change:
        return "bad", LABEL_TENSE
    if change > cfg.warn_change:
        return "warn", LABEL_SLIGHTLY_TENSE
    return "good", LABEL_RELAXED


def classify_tension(tension_pct: float) -> Tuple[str, str]:
    """Map a tension percentage to (status, label)"""
    return _classify_change(tension_pct / 100.0)


def compute_shoulder_tension(
    r_shoulder,
    r_ear,
    l_shoulder,
    l_ear,
    baseline: Optional[float]
) -> ShoulderResult:
    """
    Evaluate shoulder tension for one frame.

    Without a usable baseline the result is tension 0, status good and a
    pending label; asymmetry is still reported but does not change status.
    """
    cfg = get_thresholds().shoulder

    r_dist = distance(r_shoulder, r_ear)
    l_dist = distance(l_shoulder, l_ear)
    avg_dist = (r_dist + l_dist) / 2

    longer = max(r_dist, l_dist)
    asymmetry = abs(r_dist - l_dist) / longer if longer > 0 else 0.0

    if baseline is None or baseline <= 0:
        return ShoulderResult(0, "good", LABEL_PENDING, avg_dist, asymmetry)

    change = (baseline - avg_dist) / baseline  # Positive = shoulders raised
    tension = max(0, round_half_up(change * 100))
    status, label = _classify_change(change)

    # Uneven shoulders only escalates an otherwise good reading
    if asymmetry > cfg.asymmetry_threshold and status == "good":
        status, label = "warn", LABEL_UNEVEN

    return ShoulderResult(tension, status, label, avg_dist, asymmetry)
