"""Focus tags attached to assessment observations and program days."""

from enum import Enum


class FocusTag(Enum):
    TSPINE_ROTATION = "tspine_rotation"
    TSPINE_EXTENSION = "tspine_extension"
    SCAP_CONTROL = "scap_control"
    NECK_ENDURANCE = "neck_endurance"
    HIP_EXTENSION = "hip_extension"
    HIP_MOBILITY = "hip_mobility"
    SQUAT_PATTERN = "squat_pattern"
    HINGE_PATTERN = "hinge_pattern"
    CORE_ANTI_ROTATION = "core_anti_rotation"
    CORE_ANTI_EXTENSION = "core_anti_extension"
    CORE_STABILITY = "core_stability"
    ANKLE_MOBILITY = "ankle_mobility"
    GLUTE_MEDIUS = "glute_medius"
    POSTURE_ENDURANCE = "posture_endurance"
    PUSH_STRENGTH = "push_strength"
    PULL_STRENGTH = "pull_strength"
    BREATHING = "breathing"
    BALANCE = "balance"
