"""
Per-frame metrics record handed to the presentation layer.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Optional

from .bow_zone import BowZoneResult, DistributionResult
from .elbow_height import ElbowResult
from .shoulder_tension import ShoulderResult
from .stroke_analyzer import StraightnessResult


@dataclass
class MetricsRecord:
    """
    Output of one frame. A straightness score of None with status good means
    there is not enough data yet, not a measured good stroke.
    """
    straightness: Optional[StraightnessResult]
    distribution: Optional[DistributionResult]
    bow_zone: Optional[BowZoneResult]
    elbow: Optional[ElbowResult]
    shoulder: Optional[ShoulderResult]

    def to_dict(self) -> Dict:
        return asdict(self)
