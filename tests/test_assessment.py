"""Tests for pose metrics and assessment reports."""

import json

import pytest

from bodycoach.assessment.pose import (
    DEFAULT_CONFIDENCE,
    NO_FINDINGS,
    NO_LANDMARKS,
    POSE_CHECKS,
    Keypoint,
    KeypointFileEstimator,
    PoseAnalysis,
    PoseMetrics,
    analyze_views,
    clamp_confidence,
    compute_metrics,
    generate_observations,
)
from bodycoach.assessment.report import (
    DISCLAIMERS,
    Confidence,
    build_report,
    confidence_from_score,
)
from bodycoach.assessment.tags import FocusTag
from bodycoach.errors import PoseEstimationError
from bodycoach.models import Questionnaire


def _front(right_shoulder_y=100.0, score=0.9):
    points = {
        "left_shoulder": (100, 100),
        "right_shoulder": (200, right_shoulder_y),
        "left_hip": (110, 300),
        "right_hip": (190, 300),
        "left_knee": (110, 450),
        "right_knee": (190, 450),
        "left_ankle": (110, 600),
        "right_ankle": (190, 600),
    }
    return [Keypoint(name, x, y, score) for name, (x, y) in points.items()]


class FakeEstimator:
    """Returns canned keypoints per image key; raises for "broken" and "crash"."""

    def __init__(self, results):
        self.results = results
        self.calls = []

    def estimate(self, image):
        self.calls.append(image)
        if image == "broken":
            raise PoseEstimationError("model crashed")
        if image == "crash":
            raise RuntimeError("model crashed")
        return self.results.get(image)


def test_level_front_view_metrics():
    metrics = compute_metrics(_front())
    assert metrics.torso_height == pytest.approx(200.0)
    assert metrics.shoulder_height_delta == pytest.approx(0.0)
    assert metrics.hip_height_delta == pytest.approx(0.0)
    assert metrics.knee_alignment_delta == pytest.approx(0.0)
    assert metrics.hip_shift == pytest.approx(0.0)
    assert metrics.avg_keypoint_score == pytest.approx(0.9)
    assert metrics.head_forward_offset is None


def test_low_score_keypoints_are_unknown():
    keypoints = _front()
    keypoints[0] = Keypoint("left_shoulder", 100, 100, 0.1)
    metrics = compute_metrics(keypoints)
    assert metrics.torso_height is None
    assert metrics.shoulder_height_delta is None
    assert metrics.hip_height_delta is None


def test_no_metrics_means_no_findings():
    analysis = generate_observations(PoseMetrics())
    assert analysis.observations == [NO_FINDINGS]
    assert analysis.priorities == []
    assert analysis.flagged == []
    assert analysis.confidence_score == DEFAULT_CONFIDENCE


def test_thresholds_are_strict():
    at_threshold = generate_observations(PoseMetrics(shoulder_height_delta=0.05))
    assert at_threshold.flagged == []

    above = generate_observations(PoseMetrics(
        shoulder_height_delta=0.1, scapular_symmetry=0.1, avg_keypoint_score=0.9,
    ))
    assert above.flagged == ["shoulder-asymmetry", "scapular-symmetry"]
    assert above.priorities == [
        "Upper-back symmetry and scapular control",
        "Scapular positioning and control",
    ]
    assert above.confidence_score == pytest.approx(0.9)


def test_priorities_capped_at_four():
    metrics = PoseMetrics(**{check.metric: 100.0 for check in POSE_CHECKS})
    analysis = generate_observations(metrics)
    assert len(analysis.flagged) == len(POSE_CHECKS)
    assert len(analysis.priorities) == 4


@pytest.mark.parametrize("score,expected", [(None, 0.4), (0.1, 0.3), (0.65, 0.65), (1.4, 1.0)])
def test_clamp_confidence(score, expected):
    assert clamp_confidence(score) == pytest.approx(expected)


def test_analyze_views_without_images():
    assert analyze_views(FakeEstimator({}), {}) is None
    assert analyze_views(FakeEstimator({}), {"front": None}) is None


def test_analyze_views_all_failed():
    estimator = FakeEstimator({"empty": []})
    analysis = analyze_views(estimator, {"front": "broken", "side": "empty"})
    assert analysis.observations == [NO_LANDMARKS]
    assert analysis.confidence_score == DEFAULT_CONFIDENCE
    assert estimator.calls == ["broken", "empty"]


def test_analyze_views_uses_each_view_for_its_metrics():
    estimator = FakeEstimator({"front.json": _front(right_shoulder_y=120.0)})
    analysis = analyze_views(estimator, {"front": "front.json", "back": "broken"})

    assert analysis.flagged == ["shoulder-asymmetry"]
    assert analysis.observations == ["front: Mild shoulder height asymmetry detected."]
    # Back view failed, so its metric stays unknown
    assert analysis.metrics.scapular_symmetry is None
    assert analysis.confidence_score == pytest.approx(0.9)


def test_analyze_views_survives_unexpected_model_error():
    side = _front() + [Keypoint("left_ear", 100.0, 60.0, 0.9)]
    estimator = FakeEstimator({"side.json": side})
    analysis = analyze_views(estimator, {"front": "crash", "side": "side.json"})

    assert estimator.calls == ["crash", "side.json"]
    assert analysis.metrics.shoulder_height_delta is None
    assert analysis.metrics.head_forward_offset == pytest.approx(0.0)
    assert NO_LANDMARKS not in analysis.observations
    assert analysis.confidence_score == pytest.approx(0.9)


def test_keypoint_file_estimator(tmp_path):
    path = tmp_path / "front.json"
    path.write_text(json.dumps({"keypoints": [{"name": "nose", "x": 1, "y": 2, "score": 0.8}]}))
    assert KeypointFileEstimator().estimate(path) == [Keypoint("nose", 1.0, 2.0, 0.8)]

    empty = tmp_path / "empty.json"
    empty.write_text("[]")
    assert KeypointFileEstimator().estimate(empty) is None

    bad = tmp_path / "bad.json"
    bad.write_text('[{"name": "nose"}]')
    with pytest.raises(PoseEstimationError):
        KeypointFileEstimator().estimate(bad)

    with pytest.raises(PoseEstimationError):
        KeypointFileEstimator().estimate(tmp_path / "missing.json")


@pytest.mark.parametrize("score,expected", [
    (None, Confidence.LOW),
    (0.49, Confidence.LOW),
    (0.5, Confidence.MEDIUM),
    (0.74, Confidence.MEDIUM),
    (0.75, Confidence.HIGH),
])
def test_confidence_buckets(score, expected):
    assert confidence_from_score(score) == expected


def test_report_is_padded_with_baselines():
    report = build_report(Questionnaire(goals="Build strength"))
    assert [obs.id for obs in report.observations] == ["baseline-0", "baseline-1", "baseline-2"]
    assert report.summary == "Key focus areas: Movement baseline + Movement baseline."
    assert report.disclaimers == DISCLAIMERS


def test_self_report_observations():
    questionnaire = Questionnaire(
        goals="Improve posture",
        pain_areas=["Lower back", "Neck", "Knees"],
        experience="Beginner",
    )
    report = build_report(questionnaire, user_notes="Desk job")
    ids = [obs.id for obs in report.observations]
    assert ids == ["pain-lower-back", "pain-neck", "goal-posture-control", "notes-considerations"]

    lower_back = report.observations[0]
    assert lower_back.confidence == Confidence.MEDIUM
    assert FocusTag.CORE_ANTI_EXTENSION in lower_back.primary_focus_tags
    assert report.observations[-1].confidence == Confidence.LOW
    assert report.summary == "Key focus areas: Lower back sensitivity + Neck sensitivity."


def test_experienced_self_report_is_low_confidence():
    report = build_report(Questionnaire(pain_areas=["Shoulders"], experience="Advanced"))
    assert report.observations[0].confidence == Confidence.LOW


def test_pain_is_prioritized_ahead_of_pose():
    analysis = PoseAnalysis(
        metrics=PoseMetrics(),
        flagged=["forward-head", "hip-shift"],
        confidence_score=0.8,
    )
    report = build_report(Questionnaire(pain_areas=["Neck"]), pose_analysis=analysis)

    assert [obs.id for obs in report.observations][:2] == ["pose-forward-head", "pose-hip-shift"]
    assert report.observations[0].confidence == Confidence.HIGH
    assert report.priorities == [
        "pain-neck", "pose-forward-head", "pose-hip-shift", "goal-posture-control",
    ]


def test_report_capped_at_six():
    analysis = PoseAnalysis(
        metrics=PoseMetrics(),
        flagged=[check.slug for check in POSE_CHECKS],
        confidence_score=0.6,
    )
    report = build_report(Questionnaire(pain_areas=["Neck"]), pose_analysis=analysis)
    assert len(report.observations) == 6
    assert all(obs.id.startswith("pose-") for obs in report.observations)


def test_report_to_dict_uses_camel_case():
    data = build_report(Questionnaire(pain_areas=["Hips"])).to_dict()
    first = data["observations"][0]
    assert first["id"] == "pain-hips"
    assert first["primaryFocusTags"] == ["hip_extension", "glute_medius"]
    assert first["recommendedInterventions"][0]["type"] == "mobility"
    assert len(data["priorities"]) == len(data["observations"])
