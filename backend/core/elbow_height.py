"""
Elbow Height Evaluation
Vertical elbow offset from the shoulder, normalized by torso length.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from config import get_thresholds
from .geometry import round_half_up


@dataclass
class ElbowResult:
    relative_height: float  # Positive = elbow below shoulder
    status: str
    label: str


def classify_elbow_height(relative_height: float) -> Tuple[str, str]:
    """
    Map relative elbow height to (status, label).
    The good band is wide because the ideal height changes with the string
    being played.
    """
    cfg = get_thresholds().elbow

    if relative_height < cfg.too_high:
        return "warn", "too high"
    if relative_height > cfg.too_low:
        return "bad", "too low"
    if relative_height > cfg.slightly_low:
        return "warn", "slightly low"
    return "good", "OK"


def compute_elbow_height(shoulder, elbow, hip=None) -> ElbowResult:
    """
    Args:
        shoulder: Bowing-side shoulder
        elbow: Bowing-side elbow
        hip: Optional same-side hip for body scale

    Returns:
        ElbowResult with relative height rounded to 2 decimals
    """
    cfg = get_thresholds().elbow

    offset = elbow.y - shoulder.y  # Image y grows downward

    body_scale: Optional[float] = abs(hip.y - shoulder.y) if hip is not None else None
    if body_scale is None or body_scale < cfg.min_body_scale:
        body_scale = cfg.fallback_body_scale

    relative_height = offset / body_scale
    status, label = classify_elbow_height(relative_height)

    return ElbowResult(round_half_up(relative_height, 2), status, label)
