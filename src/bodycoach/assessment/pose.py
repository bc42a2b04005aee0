"""
Pose Metrics

Internal Codename: T-800
Turns 2D keypoints from a pose model into torso-normalized posture metrics
and threshold-based observations.

Keypoints below MIN_KEYPOINT_SCORE (or missing) are unknown, never zero:
any metric that needs them is None. All distance metrics are divided by
torso height (mid-shoulder to mid-hip) so photo scale does not matter.
"""

import json
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

import numpy as np

from ..errors import PoseEstimationError

logger = logging.getLogger(__name__)

MIN_KEYPOINT_SCORE = 0.2
DEFAULT_CONFIDENCE = 0.4
MIN_CONFIDENCE = 0.3
MAX_PRIORITIES = 4

VIEWS = ("front", "side", "back")

NO_FINDINGS = "No major asymmetries detected at this time."
NO_LANDMARKS = "We couldn't reliably detect posture landmarks in these photos."


@dataclass(frozen=True)
class Keypoint:
    """One named joint in image coordinates."""
    name: str
    x: float
    y: float
    score: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Keypoint':
        return cls(
            name=str(data['name']),
            x=float(data['x']),
            y=float(data['y']),
            score=float(data['score']) if data.get('score') is not None else None,
        )


@dataclass
class PoseMetrics:
    torso_height: Optional[float] = None
    avg_keypoint_score: Optional[float] = None
    shoulder_height_delta: Optional[float] = None
    hip_height_delta: Optional[float] = None
    knee_alignment_delta: Optional[float] = None
    head_forward_offset: Optional[float] = None
    torso_lean_angle: Optional[float] = None  # degrees from vertical
    hip_to_shoulder_alignment: Optional[float] = None
    scapular_symmetry: Optional[float] = None
    hip_shift: Optional[float] = None

    def to_dict(self) -> Dict[str, Optional[float]]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class PoseCheck:
    """Threshold rule: metric above threshold -> observation + priority."""
    slug: str
    metric: str
    threshold: float
    view: str
    observation: str
    priority: str


POSE_CHECKS: List[PoseCheck] = [
    PoseCheck("shoulder-asymmetry", "shoulder_height_delta", 0.05, "front",
              "Mild shoulder height asymmetry detected.",
              "Upper-back symmetry and scapular control"),
    PoseCheck("hip-height", "hip_height_delta", 0.05, "front",
              "Hip height difference may indicate uneven load sharing.",
              "Hip stability and lateral balance"),
    PoseCheck("knee-alignment", "knee_alignment_delta", 0.06, "front",
              "Knee tracking appears offset; we'll focus on alignment.",
              "Lower-body alignment and stability"),
    PoseCheck("forward-head", "head_forward_offset", 0.08, "side",
              "Forward head posture tendency detected.",
              "Neck + upper-back endurance"),
    PoseCheck("torso-lean", "torso_lean_angle", 6.0, "side",
              "Torso lean suggests a forward or backward bias.",
              "Core bracing and upright posture"),
    PoseCheck("trunk-alignment", "hip_to_shoulder_alignment", 0.06, "side",
              "Shoulder-to-hip alignment may be offset.",
              "Trunk alignment and core control"),
    PoseCheck("scapular-symmetry", "scapular_symmetry", 0.06, "back",
              "Shoulder blade symmetry may be uneven.",
              "Scapular positioning and control"),
    PoseCheck("hip-shift", "hip_shift", 0.06, "back",
              "Possible lateral weight shift detected.",
              "Balanced weight distribution"),
]


@dataclass
class PoseAnalysis:
    """Metrics plus what crossed a threshold."""
    metrics: PoseMetrics
    observations: List[str] = field(default_factory=list)
    priorities: List[str] = field(default_factory=list)
    confidence_score: float = DEFAULT_CONFIDENCE
    flagged: List[str] = field(default_factory=list)  # PoseCheck slugs, check order


class PoseEstimator(Protocol):
    """Anything that can turn an image into keypoints."""

    def estimate(self, image: Any) -> Optional[List[Keypoint]]:
        """Keypoints for the single most prominent person, or None if nobody was found."""


class KeypointFileEstimator:
    """
    Estimator backed by pre-computed keypoints.

    The "image" is a path to a JSON file holding a list of
    {name, x, y, score} objects, as exported by an external pose model.
    """

    def estimate(self, image: Any) -> Optional[List[Keypoint]]:
        path = Path(image)
        try:
            with open(path, encoding='utf-8') as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PoseEstimationError(f"Could not read keypoints from {path}: {e}") from e

        if isinstance(raw, dict):
            raw = raw.get('keypoints')
        if not raw:
            return None
        try:
            return [Keypoint.from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError) as e:
            raise PoseEstimationError(f"Malformed keypoints in {path}: {e}") from e


# =============================================================================
# Geometry
# =============================================================================

def _point(keypoints: Iterable[Keypoint], name: str) -> Optional[Keypoint]:
    for point in keypoints:
        if point.name == name:
            if (point.score or 0.0) < MIN_KEYPOINT_SCORE:
                return None
            return point
    return None


def _midpoint(a: Optional[Keypoint], b: Optional[Keypoint]) -> Optional[Keypoint]:
    if a is None or b is None:
        return None
    return Keypoint(
        name='mid',
        x=(a.x + b.x) / 2,
        y=(a.y + b.y) / 2,
        score=min(a.score or 0.0, b.score or 0.0),
    )


def _normalize(value: Optional[float], torso_height: Optional[float]) -> Optional[float]:
    if value is None or not torso_height:
        return None
    return float(value / torso_height)


def compute_metrics(keypoints: List[Keypoint]) -> PoseMetrics:
    """
    Compute posture metrics from one view's keypoints.

    Args:
        keypoints: Named joints (left_shoulder, right_hip, nose, ...)

    Returns:
        PoseMetrics; metrics whose joints are missing or low-score are None
    """
    names = [
        'left_shoulder', 'right_shoulder', 'left_hip', 'right_hip',
        'left_knee', 'right_knee', 'left_ankle', 'right_ankle',
        'left_wrist', 'right_wrist', 'left_ear', 'right_ear', 'nose',
    ]
    p = {name: _point(keypoints, name) for name in names}

    mid_shoulder = _midpoint(p['left_shoulder'], p['right_shoulder'])
    mid_hip = _midpoint(p['left_hip'], p['right_hip'])

    torso_height = None
    if mid_shoulder and mid_hip:
        torso_height = float(np.hypot(mid_shoulder.x - mid_hip.x, mid_shoulder.y - mid_hip.y))

    shoulders = p['left_shoulder'] and p['right_shoulder']
    shoulder_dy = abs(p['left_shoulder'].y - p['right_shoulder'].y) if shoulders else None

    hip_dy = None
    if p['left_hip'] and p['right_hip']:
        hip_dy = abs(p['left_hip'].y - p['right_hip'].y)

    knee_offset = None
    if all(p[n] for n in ('left_knee', 'left_ankle', 'right_knee', 'right_ankle')):
        knee_offset = np.mean([
            abs(p['left_knee'].x - p['left_ankle'].x),
            abs(p['right_knee'].x - p['right_ankle'].x),
        ])

    # Side view: use whichever side the model sees better
    def side_score(side):
        return sum((p[f'{side}_{joint}'].score or 0.0) if p[f'{side}_{joint}'] else 0.0
                   for joint in ('shoulder', 'hip', 'ear'))

    side = 'left' if side_score('left') >= side_score('right') else 'right'
    side_shoulder = p[f'{side}_shoulder']
    side_hip = p[f'{side}_hip']
    side_head = p['nose'] or p[f'{side}_ear']

    head_offset = abs(side_head.x - side_shoulder.x) if side_head and side_shoulder else None
    trunk_offset = abs(side_shoulder.x - side_hip.x) if side_shoulder and side_hip else None

    torso_lean = None
    if side_shoulder and side_hip:
        dx = abs(side_shoulder.x - side_hip.x)
        dy = abs(side_shoulder.y - side_hip.y)
        if dy != 0:
            torso_lean = float(np.degrees(np.arctan2(dx, dy)))

    hip_shift = None
    if mid_hip and p['left_ankle'] and p['right_ankle']:
        hip_shift = abs(mid_hip.x - (p['left_ankle'].x + p['right_ankle'].x) / 2)
    elif p['left_hip'] and p['right_hip']:
        hip_shift = abs(p['left_hip'].x - p['right_hip'].x) / 2

    scores = [point.score for point in p.values() if point is not None and point.score is not None]

    return PoseMetrics(
        torso_height=torso_height,
        avg_keypoint_score=float(np.mean(scores)) if scores else None,
        shoulder_height_delta=_normalize(shoulder_dy, torso_height),
        hip_height_delta=_normalize(hip_dy, torso_height),
        knee_alignment_delta=_normalize(knee_offset, torso_height),
        head_forward_offset=_normalize(head_offset, torso_height),
        torso_lean_angle=torso_lean,
        hip_to_shoulder_alignment=_normalize(trunk_offset, torso_height),
        scapular_symmetry=_normalize(shoulder_dy, torso_height),
        hip_shift=_normalize(hip_shift, torso_height),
    )


def clamp_confidence(score: Optional[float]) -> float:
    """Clamp to [0.3, 1]; unknown scores become 0.4."""
    value = DEFAULT_CONFIDENCE if score is None else score
    return min(1.0, max(MIN_CONFIDENCE, value))


def _unique(items: Iterable[str]) -> List[str]:
    seen = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def generate_observations(metrics: PoseMetrics) -> PoseAnalysis:
    """
    Apply the fixed thresholds to a set of metrics.

    Returns:
        PoseAnalysis with one observation per crossed threshold (or a single
        "no major asymmetries" line), at most four distinct priorities and a
        clamped confidence score
    """
    observations = []
    priorities = []
    flagged = []

    for check in POSE_CHECKS:
        value = getattr(metrics, check.metric)
        if value is not None and value > check.threshold:
            observations.append(check.observation)
            priorities.append(check.priority)
            flagged.append(check.slug)

    if not observations:
        observations.append(NO_FINDINGS)

    return PoseAnalysis(
        metrics=metrics,
        observations=observations,
        priorities=_unique(priorities)[:MAX_PRIORITIES],
        confidence_score=clamp_confidence(metrics.avg_keypoint_score),
        flagged=flagged,
    )


def analyze_views(estimator: PoseEstimator, images: Mapping[str, Any]) -> Optional[PoseAnalysis]:
    """
    Run the estimator over front/side/back images and combine the results.

    Views are processed one at a time. A view whose estimation fails (any
    model error) or finds nobody is logged and skipped. Each metric is taken from the view that
    shows it (front: shoulder/hip/knee, side: head/lean/trunk, back:
    scapular/hip shift); metrics from a missing view stay None.

    Args:
        estimator: Pose model adapter
        images: View name -> image (unknown views and None values are ignored)

    Returns:
        Combined PoseAnalysis, or None when no image was supplied
    """
    supplied = [(view, images[view]) for view in VIEWS if images.get(view) is not None]
    if not supplied:
        return None

    metrics_by_view: Dict[str, PoseMetrics] = {}
    confidence_scores = []

    for view, image in supplied:
        try:
            keypoints = estimator.estimate(image)
        except PoseEstimationError as e:
            logger.warning("Pose estimation failed for %s view: %s", view, e)
            continue
        except Exception:
            logger.warning("Pose model error on %s view", view, exc_info=True)
            continue
        if not keypoints:
            logger.info("No person detected in %s view", view)
            continue

        metrics = compute_metrics(keypoints)
        metrics_by_view[view] = metrics
        confidence_scores.append(clamp_confidence(metrics.avg_keypoint_score))

    combined = PoseMetrics()
    for check in POSE_CHECKS:
        view_metrics = metrics_by_view.get(check.view)
        if view_metrics is not None:
            setattr(combined, check.metric, getattr(view_metrics, check.metric))

    if not metrics_by_view:
        return PoseAnalysis(
            metrics=combined,
            observations=[NO_LANDMARKS],
            priorities=[],
            confidence_score=DEFAULT_CONFIDENCE,
        )

    analysis = generate_observations(combined)
    views_by_slug = {check.slug: check.view for check in POSE_CHECKS}
    if analysis.flagged:
        analysis.observations = [
            f"{views_by_slug[slug]}: {text}"
            for slug, text in zip(analysis.flagged, analysis.observations)
        ]
    analysis.confidence_score = float(np.mean(confidence_scores))
    return analysis
