"""
Diagnostic Report Generator
Aggregates the per-frame snapshots of one diagnostic capture into a single
scored report with commentary.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional
from dataclasses import dataclass, asdict, field

from config import get_thresholds
from .advice import select_advice
from .bow_zone import compute_distribution_percent, distribution_status
from .elbow_height import ElbowResult, classify_elbow_height
from .geometry import round_half_up
from .metrics import MetricsRecord
from .shoulder_tension import LABEL_PENDING, ShoulderResult, classify_tension
from .stroke_analyzer import StraightnessResult, straightness_status_from_score

logger = logging.getLogger(__name__)

NO_POSE_COMMENTARY = "No pose detected during the capture. Make sure your upper body is in frame."


@dataclass
class DiagnosticLogEntry:
    """Flattened snapshot of one MetricsRecord"""
    timestamp: float
    straightness_score: Optional[int]
    straightness_status: str
    bow_zone: str
    extension_ratio: float
    elbow_relative_height: float
    elbow_status: str
    tension: int
    shoulder_status: str
    shoulder_label: str = ""
    pose_confidence: Optional[float] = None

    @classmethod
    def from_record(
        cls,
        record: MetricsRecord,
        timestamp: float,
        pose_confidence: Optional[float] = None
    ) -> "DiagnosticLogEntry":
        return cls(
            timestamp=timestamp,
            straightness_score=record.straightness.score,
            straightness_status=record.straightness.status,
            bow_zone=record.bow_zone.zone,
            extension_ratio=record.bow_zone.extension_ratio,
            elbow_relative_height=record.elbow.relative_height,
            elbow_status=record.elbow.status,
            tension=record.shoulder.tension,
            shoulder_status=record.shoulder.status,
            shoulder_label=record.shoulder.label,
            pose_confidence=pose_confidence,
        )


@dataclass
class DiagnosticReport:
    """End-of-capture summary"""
    session_id: str
    created_at: str
    duration_sec: float
    frames_analyzed: int
    pose_detected: bool

    # Overall
    overall_score: Optional[int]
    overall_status: str  # good / warn / bad / no_data
    commentary: str
    advice: Optional[str] = None

    # Per-metric sections
    straightness: Optional[Dict] = None
    elbow: Optional[Dict] = None
    shoulder: Optional[Dict] = None
    distribution: Optional[Dict] = None
    channel_scores: Dict[str, int] = field(default_factory=dict)

    # Confidence
    avg_pose_confidence: Optional[float] = None
    confidence_notes: List[str] = field(default_factory=list)


def overall_status(score: int) -> str:
    cfg = get_thresholds().diagnostic
    if score >= cfg.overall_good:
        return "good"
    if score >= cfg.overall_warn:
        return "warn"
    return "bad"


def commentary_for(score: int) -> str:
    cfg = get_thresholds().diagnostic
    if score >= cfg.excellent_score:
        return "Excellent bowing. Your form held steady through the whole capture."
    if score >= cfg.good_score:
        return "Good bowing with a few details to polish."
    if score >= cfg.needs_work_score:
        return "Your bowing needs work. Start with the highlighted issue."
    return "Your bowing needs significant work. Slow down and rebuild one element at a time."


def _mean(values: List[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def _confidence_notes(entries: List[DiagnosticLogEntry]) -> tuple:
    cfg = get_thresholds().diagnostic
    confidences = [e.pose_confidence for e in entries if e.pose_confidence is not None]
    avg_confidence = _mean(confidences)

    notes = []
    if confidences:
        low_frames = sum(1 for c in confidences if c < cfg.low_confidence)
        if low_frames > len(confidences) * cfg.low_confidence_share:
            notes.append(
                f"Low visibility in {low_frames} frames ({low_frames / len(confidences) * 100:.0f}%)"
            )
        if avg_confidence < cfg.low_avg_confidence:
            notes.append("Overall pose confidence is low - improve lighting or camera angle")

    rounded = round_half_up(avg_confidence, 2) if avg_confidence is not None else None
    return rounded, notes


def generate_report(
    entries: List[DiagnosticLogEntry],
    duration_sec: float,
    session_id: str = ""
) -> DiagnosticReport:
    """
    Generate a diagnostic report from a capture log.

    An empty log yields an explicit no-pose result without statistics.
    """
    cfg = get_thresholds().diagnostic
    created_at = datetime.now(timezone.utc).isoformat()

    if not entries:
        logger.info(f"[{session_id}] Diagnostic finished without pose data")
        return DiagnosticReport(
            session_id=session_id,
            created_at=created_at,
            duration_sec=round(duration_sec, 1),
            frames_analyzed=0,
            pose_detected=False,
            overall_score=None,
            overall_status="no_data",
            commentary=NO_POSE_COMMENTARY,
            confidence_notes=["No pose detected"],
        )

    # Straightness: frames that produced a score
    scores = [e.straightness_score for e in entries if e.straightness_score is not None]
    avg_straightness = _mean(scores)
    if avg_straightness is not None:
        straightness_state = straightness_status_from_score(avg_straightness)
    else:
        straightness_state = "good"

    # Elbow: every frame
    avg_elbow = _mean([e.elbow_relative_height for e in entries])
    elbow_state, elbow_label = classify_elbow_height(avg_elbow)

    # Shoulder: frames with measurable tension only
    tensions = [e.tension for e in entries if e.tension > 0]
    avg_tension = _mean(tensions) or 0.0
    max_tension = max(tensions) if tensions else 0
    shoulder_state, shoulder_label = classify_tension(avg_tension)
    if all(e.shoulder_label == LABEL_PENDING for e in entries):
        shoulder_label = LABEL_PENDING

    # Zone usage over the whole log
    counts = {"tip": 0, "middle": 0, "frog": 0}
    for e in entries:
        counts[e.bow_zone] = counts.get(e.bow_zone, 0) + 1
    distribution = compute_distribution_percent(counts)
    spread_state = distribution_status(distribution)

    # Weighted overall score
    channel_scores: Dict[str, int] = {}
    weighted = []
    if avg_straightness is not None:
        channel_scores["straightness"] = round_half_up(avg_straightness)
        weighted.append((cfg.straightness_weight, avg_straightness))
    channel_scores["elbow"] = cfg.elbow_scores[elbow_state]
    weighted.append((cfg.elbow_weight, channel_scores["elbow"]))
    channel_scores["shoulder"] = cfg.shoulder_scores[shoulder_state]
    weighted.append((cfg.shoulder_weight, channel_scores["shoulder"]))
    channel_scores["distribution"] = cfg.distribution_scores[spread_state]
    weighted.append((cfg.distribution_weight, channel_scores["distribution"]))

    total_weight = sum(w for w, _ in weighted)
    score = round_half_up(sum(w * s for w, s in weighted) / total_weight)

    aggregate = MetricsRecord(
        straightness=StraightnessResult(
            score=channel_scores.get("straightness"), curvature=None, status=straightness_state
        ),
        distribution=distribution,
        bow_zone=None,
        elbow=ElbowResult(round_half_up(avg_elbow, 2), elbow_state, elbow_label),
        shoulder=ShoulderResult(round_half_up(avg_tension), shoulder_state, shoulder_label, 0.0),
    )

    avg_confidence, notes = _confidence_notes(entries)

    report = DiagnosticReport(
        session_id=session_id,
        created_at=created_at,
        duration_sec=round(duration_sec, 1),
        frames_analyzed=len(entries),
        pose_detected=True,
        overall_score=score,
        overall_status=overall_status(score),
        commentary=commentary_for(score),
        advice=select_advice(aggregate),
        straightness={
            "avg_score": round_half_up(avg_straightness, 1) if avg_straightness is not None else None,
            "valid_frames": len(scores),
            "status": straightness_state,
        },
        elbow={
            "avg_relative_height": round_half_up(avg_elbow, 2),
            "status": elbow_state,
            "label": elbow_label,
        },
        shoulder={
            "avg_tension": round_half_up(avg_tension, 1),
            "max_tension": max_tension,
            "tension_frames": len(tensions),
            "status": shoulder_state,
            "label": shoulder_label,
        },
        distribution={
            **asdict(distribution),
            "status": spread_state,
        },
        channel_scores=channel_scores,
        avg_pose_confidence=avg_confidence,
        confidence_notes=notes,
    )

    logger.info(
        f"[{session_id}] Diagnostic report: score {score} ({report.overall_status}) "
        f"from {len(entries)} frames"
    )
    return report


def report_to_dict(report: DiagnosticReport) -> Dict:
    """Convert report to JSON-serializable dict."""
    return asdict(report)
