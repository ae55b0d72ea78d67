"""
Bow Straightness Analyzer
Segments the wrist trail into bow strokes and scores the most recent one
by how far it deviates from a least-squares line.
"""

import math
from collections import deque
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from config import get_thresholds
from .geometry import TrailSample, distance, round_half_up


@dataclass
class StraightnessResult:
    """Straightness of the latest bow stroke"""
    score: Optional[int]          # 0-100, None = insufficient data
    curvature: Optional[float]    # RMSE / chord length, in percent
    status: str                   # good / warn / bad
    stroke_samples: int = 0


def _insufficient_data() -> StraightnessResult:
    return StraightnessResult(score=None, curvature=None, status="good")


class WristTrail:
    """
    Fixed-capacity ring of recent wrist positions.
    Append-only while running; the oldest sample is evicted at capacity.
    """

    def __init__(self, capacity: Optional[int] = None):
        self.capacity = capacity or get_thresholds().trail.capacity
        self._samples: deque = deque(maxlen=self.capacity)

    def append(self, x: float, y: float, t: float) -> None:
        self._samples.append(TrailSample(x, y, t))

    def clear(self) -> None:
        self._samples.clear()

    def samples(self) -> List[TrailSample]:
        return list(self._samples)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self):
        return iter(self._samples)


def segment_strokes(
    trail: Sequence[TrailSample]
) -> Tuple[List[List[TrailSample]], List[TrailSample]]:
    """
    Split a chronological trail into direction-consistent strokes.

    Horizontal deltas under the noise floor join the current stroke without
    changing direction. A sign flip against the last non-noise delta closes
    the current stroke (kept only if long enough) and starts a new one.

    Returns:
        (closed_strokes, pending_stroke)
    """
    cfg = get_thresholds().straightness

    if not trail:
        return [], []

    closed: List[List[TrailSample]] = []
    current: List[TrailSample] = [trail[0]]
    prev_dx = 0.0

    for prev, sample in zip(trail, trail[1:]):
        dx = sample.x - prev.x

        if abs(dx) < cfg.noise_floor:
            current.append(sample)
            continue

        if prev_dx != 0 and math.copysign(1, dx) != math.copysign(1, prev_dx):
            if len(current) >= cfg.min_stroke_samples:
                closed.append(current)
            current = [sample]
        else:
            current.append(sample)
        prev_dx = dx

    return closed, current


def fit_line_rmse(stroke: Sequence[TrailSample]) -> float:
    """
    RMSE of stroke points from their least-squares line (y on x).
    Near-vertical strokes have no usable slope, so the spread of x about
    its mean is used instead.
    """
    cfg = get_thresholds().straightness

    xs = np.array([p.x for p in stroke], dtype=float)
    ys = np.array([p.y for p in stroke], dtype=float)
    n = len(xs)

    sum_x = xs.sum()
    sum_y = ys.sum()
    denom = n * np.dot(xs, xs) - sum_x * sum_x

    if abs(denom) < cfg.degenerate_epsilon:
        residuals = xs - xs.mean()
    else:
        slope = (n * np.dot(xs, ys) - sum_x * sum_y) / denom
        intercept = (sum_y - slope * sum_x) / n
        residuals = ys - (slope * xs + intercept)

    return float(np.sqrt(np.mean(residuals ** 2)))


def straightness_status(curvature: float) -> str:
    """Map curvature percentage to a status"""
    cfg = get_thresholds().straightness
    if curvature > cfg.bad_curvature:
        return "bad"
    if curvature > cfg.warn_curvature:
        return "warn"
    return "good"


def straightness_status_from_score(score: float) -> str:
    """Status for a (possibly averaged) score, via the curvature it implies"""
    cfg = get_thresholds().straightness
    curvature = (100.0 - score) / cfg.score_penalty
    return straightness_status(curvature)


def compute_bow_straightness(trail: Sequence[TrailSample]) -> StraightnessResult:
    """
    Score the straightness of the most recent bow stroke.

    Args:
        trail: Chronological wrist samples (WristTrail or list)

    Returns:
        StraightnessResult; score None with status good when there is not
        enough data to judge
    """
    cfg = get_thresholds().straightness
    samples = list(trail)

    if len(samples) < cfg.min_trail_samples:
        return _insufficient_data()

    closed, pending = segment_strokes(samples)
    strokes = closed + ([pending] if len(pending) >= cfg.min_stroke_samples else [])
    if not strokes:
        return _insufficient_data()

    stroke = strokes[-1]

    stroke_length = distance(stroke[0], stroke[-1])
    if stroke_length < cfg.min_stroke_length:
        return _insufficient_data()

    rmse = fit_line_rmse(stroke)
    curvature = rmse / stroke_length * 100
    score = max(0.0, min(100.0, 100 - curvature * cfg.score_penalty))

    return StraightnessResult(
        score=round_half_up(score),
        curvature=curvature,
        status=straightness_status(curvature),
        stroke_samples=len(stroke),
    )
