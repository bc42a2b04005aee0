"""
Assessment: pose metrics and posture observations.

Internal Codename: T-800
"""

from .pose import (
    Keypoint,
    KeypointFileEstimator,
    PoseAnalysis,
    PoseEstimator,
    PoseMetrics,
    analyze_views,
    compute_metrics,
    generate_observations,
)
from .report import AssessmentObservation, AssessmentReport, Confidence, build_report
from .tags import FocusTag

__all__ = [
    'Keypoint',
    'KeypointFileEstimator',
    'PoseAnalysis',
    'PoseEstimator',
    'PoseMetrics',
    'analyze_views',
    'compute_metrics',
    'generate_observations',
    'AssessmentObservation',
    'AssessmentReport',
    'Confidence',
    'build_report',
    'FocusTag',
]
