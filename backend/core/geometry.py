"""
Geometry helpers shared by the bowing evaluators.
Points are normalized image coordinates (0-1, y grows downward).
"""

import math
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Point2D:
    x: float
    y: float


@dataclass(frozen=True)
class Landmark(Point2D):
    """Pose landmark with optional detector confidence (0-1)"""
    visibility: Optional[float] = None


@dataclass(frozen=True)
class TrailSample(Point2D):
    """Wrist position with frame timestamp in milliseconds"""
    t: float = 0.0


def distance(a, b) -> float:
    """Euclidean distance between two points"""
    return math.hypot(a.x - b.x, a.y - b.y)


def angle_between3(a, b, c) -> float:
    """
    Angle at vertex b between rays b->a and b->c, in degrees [0, 180].
    Returns 0 when either ray has zero length.
    """
    ba = (a.x - b.x, a.y - b.y)
    bc = (c.x - b.x, c.y - b.y)

    mag_ba = math.hypot(*ba)
    mag_bc = math.hypot(*bc)
    if mag_ba == 0 or mag_bc == 0:
        return 0.0

    cos_angle = (ba[0] * bc[0] + ba[1] * bc[1]) / (mag_ba * mag_bc)
    cos_angle = max(-1.0, min(1.0, cos_angle))  # Clamp for numerical stability

    return math.degrees(math.acos(cos_angle))


def ema(prev: Optional[float], curr: float, alpha: float) -> float:
    """Exponential moving average step; cold start returns curr"""
    if prev is None:
        return curr
    return prev + alpha * (curr - prev)


def round_half_up(value: float, digits: int = 0):
    """Round halves toward +inf; int result when digits == 0"""
    scale = 10 ** digits
    rounded = math.floor(value * scale + 0.5) / scale
    return int(rounded) if digits == 0 else rounded
