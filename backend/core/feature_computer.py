"""
Landmark Extraction Module
Pulls the bowing-relevant subset out of a full-body pose sample.
"""

import math
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .geometry import Landmark
from exceptions import InvalidLandmarks

logger = logging.getLogger(__name__)


# MediaPipe landmark indices
LANDMARKS = {
    "left_ear": 7, "right_ear": 8,
    "left_shoulder": 11, "right_shoulder": 12,
    "right_elbow": 14,
    "right_wrist": 16,
    "right_hip": 24,
}

REQUIRED_LANDMARKS = (
    "left_ear", "right_ear",
    "left_shoulder", "right_shoulder",
    "right_elbow", "right_wrist",
)


@dataclass
class BowingLandmarks:
    """The points consumed by the bowing evaluators for one frame"""
    right_shoulder: Landmark
    right_elbow: Landmark
    right_wrist: Landmark
    left_shoulder: Landmark
    right_ear: Landmark
    left_ear: Landmark
    right_hip: Optional[Landmark] = None

    # Mean visibility of the points that report one
    pose_confidence: Optional[float] = None


def to_landmark(raw) -> Optional[Landmark]:
    """
    Coerce a Landmark, dict or x/y object into a Landmark.
    Points without finite coordinates come back as None, like absent ones.
    """
    if raw is None:
        return None
    if isinstance(raw, Landmark):
        point = raw
    elif isinstance(raw, dict):
        if "x" not in raw or "y" not in raw:
            return None
        point = Landmark(float(raw["x"]), float(raw["y"]), raw.get("visibility"))
    else:
        point = Landmark(float(raw.x), float(raw.y), getattr(raw, "visibility", None))

    if not (math.isfinite(point.x) and math.isfinite(point.y)):
        return None
    return point


def _get_landmark(landmarks: Sequence, name: str) -> Optional[Landmark]:
    """Get landmark by name"""
    idx = LANDMARKS[name]
    if idx >= len(landmarks):
        return None
    return to_landmark(landmarks[idx])


def _mean_visibility(points: List[Landmark]) -> Optional[float]:
    values = [
        p.visibility for p in points
        if p.visibility is not None and math.isfinite(p.visibility)
    ]
    if not values:
        return None
    return sum(values) / len(values)


def extract_bowing_landmarks(landmarks: Sequence) -> BowingLandmarks:
    """
    Extract the bowing subset from a pose sample.

    Args:
        landmarks: Sequence indexed by MediaPipe landmark index. Entries may be
            Landmark objects or dicts with x, y and optional visibility.

    Returns:
        BowingLandmarks

    Raises:
        InvalidLandmarks: If a required point is missing or not finite
    """
    found: Dict[str, Optional[Landmark]] = {
        name: _get_landmark(landmarks, name) for name in LANDMARKS
    }

    missing = [name for name in REQUIRED_LANDMARKS if found[name] is None]
    if missing:
        logger.debug(f"Rejected pose sample, missing {missing}")
        raise InvalidLandmarks(missing, len(landmarks))

    consumed = [found[name] for name in REQUIRED_LANDMARKS]
    if found["right_hip"] is not None:
        consumed.append(found["right_hip"])

    return BowingLandmarks(
        right_shoulder=found["right_shoulder"],
        right_elbow=found["right_elbow"],
        right_wrist=found["right_wrist"],
        left_shoulder=found["left_shoulder"],
        right_ear=found["right_ear"],
        left_ear=found["left_ear"],
        right_hip=found["right_hip"],
        pose_confidence=_mean_visibility(consumed),
    )
