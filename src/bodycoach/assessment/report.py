"""
Assessment Report

Internal Codename: T-800
Merges pose-derived findings and questionnaire self-report into a short,
prioritized list of observations. Never empty: baseline observations pad the
report to at least three entries.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..models import Questionnaire
from .pose import PoseAnalysis
from .tags import FocusTag

logger = logging.getLogger(__name__)

MAX_OBSERVATIONS = 6
MIN_OBSERVATIONS = 3
MAX_PAIN_AREAS = 2

DISCLAIMERS = [
    "This scan estimates posture patterns and is not a medical diagnosis.",
    "Observations may indicate movement tendencies, not injuries.",
]

POSE_RISK = "May slow progress or increase stiffness over time."


class Confidence(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class InterventionType(Enum):
    MOBILITY = "mobility"
    ACTIVATION = "activation"
    STRENGTH = "strength"
    MOTOR_CONTROL = "motorControl"
    BREATHING = "breathing"


@dataclass(frozen=True)
class Intervention:
    type: InterventionType
    target: str
    suggestion: str

    def to_dict(self) -> Dict[str, str]:
        return {'type': self.type.value, 'target': self.target, 'suggestion': self.suggestion}


@dataclass
class AssessmentObservation:
    id: str
    title: str
    description: str
    confidence: Confidence
    evidence: List[str]
    likely_drivers: List[str]
    risk_if_ignored: str
    primary_focus_tags: List[FocusTag]
    recommended_interventions: List[Intervention] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'confidence': self.confidence.value,
            'evidence': list(self.evidence),
            'likelyDrivers': list(self.likely_drivers),
            'riskIfIgnored': self.risk_if_ignored,
            'primaryFocusTags': [tag.value for tag in self.primary_focus_tags],
            'recommendedInterventions': [i.to_dict() for i in self.recommended_interventions],
        }


@dataclass
class AssessmentReport:
    observations: List[AssessmentObservation]
    priorities: List[str]
    summary: str
    disclaimers: List[str] = field(default_factory=lambda: list(DISCLAIMERS))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'observations': [obs.to_dict() for obs in self.observations],
            'priorities': list(self.priorities),
            'summary': self.summary,
            'disclaimers': list(self.disclaimers),
        }


@dataclass(frozen=True)
class PoseFindingTemplate:
    title: str
    description: str
    evidence: str
    drivers: List[str]
    tags: List[FocusTag]
    interventions: List[Intervention]


# Keyed by PoseCheck slug
POSE_FINDINGS: Dict[str, PoseFindingTemplate] = {
    "shoulder-asymmetry": PoseFindingTemplate(
        title="Shoulder height asymmetry",
        description="Pattern suggests uneven shoulder positioning; we'll even out upper-back control.",
        evidence="Scan: shoulder height difference",
        drivers=["scapular control", "upper-back endurance"],
        tags=[FocusTag.SCAP_CONTROL, FocusTag.POSTURE_ENDURANCE, FocusTag.PULL_STRENGTH],
        interventions=[
            Intervention(InterventionType.ACTIVATION, "scapular control", "prone Y/T/W with slow holds"),
            Intervention(InterventionType.STRENGTH, "upper back", "band rows or face pulls"),
        ],
    ),
    "hip-height": PoseFindingTemplate(
        title="Hip height asymmetry",
        description="Pattern suggests uneven hip loading; we'll reinforce balanced hip control.",
        evidence="Scan: hip height difference",
        drivers=["hip stability", "single-leg control"],
        tags=[FocusTag.GLUTE_MEDIUS, FocusTag.HIP_EXTENSION, FocusTag.CORE_ANTI_ROTATION],
        interventions=[
            Intervention(InterventionType.ACTIVATION, "glute med", "side-lying hip abduction"),
            Intervention(InterventionType.MOTOR_CONTROL, "single-leg balance", "split squat holds"),
        ],
    ),
    "knee-alignment": PoseFindingTemplate(
        title="Knee alignment offset",
        description="Pattern suggests knee tracking bias; we'll reinforce alignment and control.",
        evidence="Scan: knee tracking offset",
        drivers=["hip stability", "ankle mobility"],
        tags=[FocusTag.SQUAT_PATTERN, FocusTag.ANKLE_MOBILITY, FocusTag.GLUTE_MEDIUS],
        interventions=[
            Intervention(InterventionType.MOTOR_CONTROL, "squat tracking", "tempo bodyweight squats"),
            Intervention(InterventionType.MOBILITY, "ankle", "ankle rocks and calf stretch"),
        ],
    ),
    "forward-head": PoseFindingTemplate(
        title="Forward head tendency",
        description="Pattern suggests forward head bias; we'll focus on neck endurance and rib alignment.",
        evidence="Scan: head position offset",
        drivers=["limited T-spine extension", "neck flexor endurance"],
        tags=[FocusTag.NECK_ENDURANCE, FocusTag.TSPINE_EXTENSION, FocusTag.POSTURE_ENDURANCE],
        interventions=[
            Intervention(InterventionType.MOTOR_CONTROL, "deep neck flexors", "chin tucks with breathing"),
            Intervention(InterventionType.MOBILITY, "thoracic extension", "wall slides or T-spine rotations"),
        ],
    ),
    "torso-lean": PoseFindingTemplate(
        title="Torso lean bias",
        description="Pattern suggests the trunk sits off vertical; we'll build bracing and upright endurance.",
        evidence="Scan: torso lean angle",
        drivers=["core endurance", "hip flexor stiffness"],
        tags=[FocusTag.CORE_ANTI_EXTENSION, FocusTag.POSTURE_ENDURANCE, FocusTag.HIP_MOBILITY],
        interventions=[
            Intervention(InterventionType.MOTOR_CONTROL, "trunk bracing", "dead bugs with slow exhales"),
            Intervention(InterventionType.MOBILITY, "hip flexors", "half-kneeling hip flexor stretch"),
        ],
    ),
    "trunk-alignment": PoseFindingTemplate(
        title="Shoulder-to-hip alignment offset",
        description="Pattern suggests shoulders and hips are not stacked; we'll train trunk alignment.",
        evidence="Scan: shoulder-to-hip horizontal offset",
        drivers=["core stability", "thoracic mobility"],
        tags=[FocusTag.CORE_STABILITY, FocusTag.TSPINE_EXTENSION, FocusTag.POSTURE_ENDURANCE],
        interventions=[
            Intervention(InterventionType.MOTOR_CONTROL, "ribcage over pelvis", "wall-supported breathing"),
            Intervention(InterventionType.STRENGTH, "anti-extension", "front plank variations"),
        ],
    ),
    "scapular-symmetry": PoseFindingTemplate(
        title="Shoulder blade symmetry",
        description="Pattern suggests uneven shoulder blade position; we'll train scapular control.",
        evidence="Scan: shoulder blade height difference",
        drivers=["scapular control", "upper-back endurance"],
        tags=[FocusTag.SCAP_CONTROL, FocusTag.PULL_STRENGTH, FocusTag.POSTURE_ENDURANCE],
        interventions=[
            Intervention(InterventionType.ACTIVATION, "lower traps", "prone Y raises"),
            Intervention(InterventionType.STRENGTH, "upper back", "band pull-aparts"),
        ],
    ),
    "hip-shift": PoseFindingTemplate(
        title="Lateral weight shift",
        description="Pattern suggests weight favors one side; we'll reinforce balanced stance.",
        evidence="Scan: hip shift over base of support",
        drivers=["hip stability", "single-leg control"],
        tags=[FocusTag.GLUTE_MEDIUS, FocusTag.BALANCE, FocusTag.CORE_ANTI_ROTATION],
        interventions=[
            Intervention(InterventionType.ACTIVATION, "glute med", "side-lying hip abduction"),
            Intervention(InterventionType.MOTOR_CONTROL, "single-leg balance", "split squat holds"),
        ],
    ),
}

# Pain area -> focus tags; anything else gets DEFAULT_PAIN_TAGS
PAIN_AREA_TAGS: Dict[str, List[FocusTag]] = {
    "upper back": [FocusTag.SCAP_CONTROL, FocusTag.POSTURE_ENDURANCE],
    "lower back": [FocusTag.CORE_ANTI_EXTENSION, FocusTag.HIP_EXTENSION],
    "neck": [FocusTag.NECK_ENDURANCE, FocusTag.TSPINE_EXTENSION],
    "hips": [FocusTag.HIP_EXTENSION, FocusTag.GLUTE_MEDIUS],
    "knees": [FocusTag.SQUAT_PATTERN, FocusTag.ANKLE_MOBILITY],
}
DEFAULT_PAIN_TAGS = [FocusTag.POSTURE_ENDURANCE, FocusTag.CORE_STABILITY]


def confidence_from_score(score: Optional[float]) -> Confidence:
    """Bucket a pose confidence score: >= 0.75 high, >= 0.5 medium, else low."""
    if not score:
        return Confidence.LOW
    if score >= 0.75:
        return Confidence.HIGH
    if score >= 0.5:
        return Confidence.MEDIUM
    return Confidence.LOW


def _slug(text: str) -> str:
    return re.sub(r'\s+', '-', text.strip().lower())


def pose_observations(analysis: PoseAnalysis) -> List[AssessmentObservation]:
    """One observation per threshold the analysis flagged."""
    confidence = confidence_from_score(analysis.confidence_score)
    observations = []
    for slug in analysis.flagged:
        template = POSE_FINDINGS.get(slug)
        if template is None:
            continue
        observations.append(AssessmentObservation(
            id=f"pose-{slug}",
            title=template.title,
            description=template.description,
            confidence=confidence,
            evidence=[template.evidence],
            likely_drivers=list(template.drivers),
            risk_if_ignored=POSE_RISK,
            primary_focus_tags=list(template.tags),
            recommended_interventions=list(template.interventions),
        ))
    return observations


def self_report_observations(
    questionnaire: Questionnaire,
    user_notes: Optional[str] = None
) -> List[AssessmentObservation]:
    """Observations from pain areas, a posture goal and free-text notes."""
    confidence = Confidence.MEDIUM if questionnaire.experience == "Beginner" else Confidence.LOW
    observations = []

    for area in questionnaire.pain_areas[:MAX_PAIN_AREAS]:
        observations.append(AssessmentObservation(
            id=f"pain-{_slug(area)}",
            title=f"{area} sensitivity",
            description=(
                f"Self-report suggests {area.lower()} sensitivity; "
                "we'll prioritize gentle, supportive work."
            ),
            confidence=confidence,
            evidence=[f"Self-report: {area} discomfort"],
            likely_drivers=["local stiffness", "postural load", "limited mobility"],
            risk_if_ignored="May limit training consistency or comfort.",
            primary_focus_tags=list(PAIN_AREA_TAGS.get(area.strip().lower(), DEFAULT_PAIN_TAGS)),
            recommended_interventions=[
                Intervention(InterventionType.MOBILITY, area, "slow range-of-motion work and breathing"),
                Intervention(InterventionType.ACTIVATION, "supporting muscles", "low-load activation before main work"),
            ],
        ))

    if "posture" in (questionnaire.goals or "").lower():
        observations.append(AssessmentObservation(
            id="goal-posture-control",
            title="Posture control focus",
            description="Goal suggests improving posture; we'll build endurance in upper back and core.",
            confidence=confidence,
            evidence=["Self-report: posture improvement goal"],
            likely_drivers=["upper-back endurance", "core stability"],
            risk_if_ignored="Posture improvements may plateau.",
            primary_focus_tags=[
                FocusTag.POSTURE_ENDURANCE,
                FocusTag.SCAP_CONTROL,
                FocusTag.CORE_ANTI_EXTENSION,
            ],
            recommended_interventions=[
                Intervention(InterventionType.STRENGTH, "upper back", "rows, pull-aparts, face pulls"),
                Intervention(InterventionType.MOTOR_CONTROL, "ribcage alignment", "breathing + bracing drills"),
            ],
        ))

    if user_notes and user_notes.strip():
        observations.append(AssessmentObservation(
            id="notes-considerations",
            title="User notes highlight",
            description="Notes suggest a specific focus area; we'll adjust sessions accordingly.",
            confidence=Confidence.LOW,
            evidence=["Self-report: user notes"],
            likely_drivers=["individual preferences"],
            risk_if_ignored="Less personalized session feel.",
            primary_focus_tags=[FocusTag.POSTURE_ENDURANCE, FocusTag.CORE_STABILITY],
            recommended_interventions=[
                Intervention(InterventionType.MOTOR_CONTROL, "custom focus", "blend in preferred drills"),
            ],
        ))

    return observations


def baseline_observation(index: int) -> AssessmentObservation:
    return AssessmentObservation(
        id=f"baseline-{index}",
        title="Movement baseline",
        description="Pattern suggests we can build consistent movement quality with simple progressions.",
        confidence=Confidence.LOW,
        evidence=["Self-report: baseline program data"],
        likely_drivers=["general conditioning"],
        risk_if_ignored="Progress may feel slower.",
        primary_focus_tags=[FocusTag.POSTURE_ENDURANCE, FocusTag.CORE_STABILITY],
        recommended_interventions=[
            Intervention(InterventionType.MOTOR_CONTROL, "tempo", "slow, controlled reps"),
        ],
    )


def prioritize(observations: List[AssessmentObservation]) -> List[str]:
    """Observation ids ordered pain first, then pose, then the rest."""
    pain = [obs.id for obs in observations if obs.id.startswith("pain-")]
    pose = [obs.id for obs in observations if obs.id.startswith("pose-")]
    rest = [obs.id for obs in observations if obs.id not in pain and obs.id not in pose]
    return pain + pose + rest


def build_report(
    questionnaire: Questionnaire,
    pose_analysis: Optional[PoseAnalysis] = None,
    user_notes: Optional[str] = None
) -> AssessmentReport:
    """
    Build the assessment report.

    Args:
        questionnaire: Questionnaire answers
        pose_analysis: Combined pose analysis, if photos were analyzed
        user_notes: Free-text notes from the user

    Returns:
        AssessmentReport with 3 to 6 observations
    """
    observations = pose_observations(pose_analysis) if pose_analysis else []
    observations.extend(self_report_observations(questionnaire, user_notes))
    observations = observations[:MAX_OBSERVATIONS]

    while len(observations) < MIN_OBSERVATIONS:
        observations.append(baseline_observation(len(observations)))

    top_titles = [obs.title for obs in observations[:2]]
    summary = f"Key focus areas: {' + '.join(top_titles)}."

    logger.debug("Assessment built with %d observations", len(observations))
    return AssessmentReport(
        observations=observations,
        priorities=prioritize(observations),
        summary=summary,
    )
