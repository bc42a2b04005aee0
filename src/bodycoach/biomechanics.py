"""
Biomechanical Vocabulary

Defines movement patterns, exercise categories and equipment tokens shared by
the catalog, the program builder and the assessment layer.
"""

from enum import Enum


class MovementPattern(Enum):
    """Fundamental movement patterns used for day-coverage balancing."""
    SQUAT = "squat"
    HINGE = "hinge"
    PUSH = "push"
    PULL = "pull"
    CORE = "core"
    MOBILITY = "mobility"
    LUNGE = "lunge"
    CARRY = "carry"
    BREATHING = "breathing"


# Every program day should touch each of these, in this order of priority.
REQUIRED_PATTERNS = [
    MovementPattern.SQUAT,
    MovementPattern.HINGE,
    MovementPattern.PUSH,
    MovementPattern.PULL,
    MovementPattern.CORE,
    MovementPattern.MOBILITY,
]


class ExerciseCategory(Enum):
    """Where an exercise sits inside a session."""
    WARMUP = "warmup"
    ACTIVATION = "activation"
    MAIN = "main"
    COOLDOWN = "cooldown"


class Equipment(Enum):
    """Canonical equipment tokens."""
    NONE = "none"
    BANDS = "bands"
    DUMBBELLS = "dumbbells"
    BARBELL = "barbell"
    KETTLEBELL = "kettlebell"
    CABLES = "cables"
    MACHINES = "machines"
    BENCH = "bench"
    PULLUP_BAR = "pullup_bar"
    FOAM_ROLLER = "foam_roller"


# "gym" is a selection shortcut, not an equipment token
GYM_EQUIPMENT = (
    Equipment.DUMBBELLS,
    Equipment.BARBELL,
    Equipment.CABLES,
    Equipment.MACHINES,
    Equipment.BENCH,
)
