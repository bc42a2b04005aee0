"""
Core Data Model

Internal Codename: T-800
Records for programs, sessions, exercise logs and progression state.

Records serialize to the camelCase dictionaries used by the local store and
the JSON export bundle. Timestamps are ISO-8601 strings in UTC so that
"newer updatedAt wins" is a plain string comparison.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Union


def format_iso(moment: datetime) -> str:
    """Render an aware datetime as a UTC ISO-8601 string with millisecond precision."""
    return moment.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def parse_iso(value: str) -> datetime:
    """Parse an ISO timestamp written by format_iso (or any aware/naive ISO string)."""
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


class LoadType(Enum):
    """How resistance is applied for an exercise."""
    WEIGHTED = "weighted"
    BODYWEIGHT = "bodyweight"
    TIMED = "timed"
    ASSISTED = "assisted"


class Felt(Enum):
    """Subjective post-exercise rating."""
    EASY = "easy"
    MODERATE = "moderate"
    HARD = "hard"
    PAIN = "pain"


class PainLocation(Enum):
    NECK = "neck"
    SHOULDER = "shoulder"
    UPPER_BACK = "upper back"
    LOWER_BACK = "lower back"
    HIPS = "hips"
    KNEES = "knees"
    OTHER = "other"


def _enum_or_none(enum_cls, value):
    if value is None or value == '':
        return None
    if isinstance(value, enum_cls):
        return value
    return enum_cls(str(value).strip().lower())


# =============================================================================
# Prescription ranges
# =============================================================================

@dataclass(frozen=True)
class Range:
    """Inclusive integer range used for prescribed sets and reps."""
    min: int
    max: int

    def __post_init__(self):
        if self.max < self.min:
            raise ValueError(f"Range max {self.max} is below min {self.min}")

    @classmethod
    def single(cls, value: int) -> 'Range':
        return cls(value, value)

    @classmethod
    def parse(cls, value: Union[str, int, float, 'Range', None]) -> Optional['Range']:
        """
        Parse free-text prescription values ("8-12", "3", "30 sec per side").

        Only the first two integers are considered. Returns None when the
        value carries no number at all.
        """
        if value is None:
            return None
        if isinstance(value, Range):
            return value
        if isinstance(value, (int, float)):
            return cls.single(int(value))
        numbers = [int(n) for n in re.findall(r'\d+', str(value))]
        if not numbers:
            return None
        if len(numbers) == 1:
            return cls.single(numbers[0])
        low, high = numbers[0], numbers[1]
        return cls(min(low, high), max(low, high))

    def clamp(self, value: int) -> int:
        return max(self.min, min(self.max, value))

    def __str__(self) -> str:
        if self.min == self.max:
            return str(self.min)
        return f"{self.min}-{self.max}"


def _range_or_none(value) -> Optional[Range]:
    return Range.parse(value)


def _range_text(value: Optional[Range]) -> Optional[str]:
    return str(value) if value is not None else None


# =============================================================================
# Load variants
# =============================================================================

@dataclass(frozen=True)
class Weighted:
    weight: float
    unit: str = 'lb'
    kind: ClassVar[LoadType] = LoadType.WEIGHTED


@dataclass(frozen=True)
class Bodyweight:
    kind: ClassVar[LoadType] = LoadType.BODYWEIGHT


@dataclass(frozen=True)
class Timed:
    duration_sec: Optional[int] = None
    kind: ClassVar[LoadType] = LoadType.TIMED


@dataclass(frozen=True)
class Assisted:
    kind: ClassVar[LoadType] = LoadType.ASSISTED


Load = Union[Weighted, Bodyweight, Timed, Assisted]


def load_to_fields(load: Load) -> Dict[str, Any]:
    """Flatten a load variant into the stored loadType/unit/weight/durationSec fields."""
    return {
        'loadType': load.kind.value,
        'unit': load.unit if isinstance(load, Weighted) else None,
        'weight': load.weight if isinstance(load, Weighted) else None,
        'durationSec': load.duration_sec if isinstance(load, Timed) else None,
    }


def load_from_fields(data: Dict[str, Any]) -> Load:
    """
    Rebuild a load variant from stored fields.

    A weighted record without a weight is treated as bodyweight; weight values
    on non-weighted records are ignored.
    """
    load_type = LoadType(data.get('loadType') or LoadType.BODYWEIGHT.value)
    if load_type == LoadType.WEIGHTED and data.get('weight') is not None:
        return Weighted(weight=float(data['weight']), unit=data.get('unit') or 'lb')
    if load_type == LoadType.TIMED:
        return Timed(duration_sec=data.get('durationSec'))
    if load_type == LoadType.ASSISTED:
        return Assisted()
    return Bodyweight()


# =============================================================================
# Questionnaire and feedback
# =============================================================================

VALID_DAYS_PER_WEEK = (3, 4, 5)


@dataclass
class Questionnaire:
    """Answers collected before a program is generated."""
    goals: str = "Improve posture"
    pain_areas: List[str] = field(default_factory=list)
    experience: str = "Beginner"
    equipment: List[str] = field(default_factory=lambda: ["none"])
    days_per_week: int = 3

    def __post_init__(self):
        if self.days_per_week not in VALID_DAYS_PER_WEEK:
            raise ValueError(f"days_per_week must be one of {VALID_DAYS_PER_WEEK}, got {self.days_per_week}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Questionnaire':
        return cls(
            goals=data.get('goals') or "Improve posture",
            pain_areas=list(data.get('painAreas') or []),
            experience=data.get('experience') or "Beginner",
            equipment=list(data.get('equipment') or ["none"]),
            days_per_week=int(data.get('daysPerWeek', 3)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'goals': self.goals,
            'painAreas': list(self.pain_areas),
            'experience': self.experience,
            'equipment': list(self.equipment),
            'daysPerWeek': self.days_per_week,
        }


@dataclass(frozen=True)
class ExerciseFeedback:
    rating: Felt
    pain_location: Optional[PainLocation] = None
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExerciseFeedback':
        return cls(
            rating=Felt(data['rating']),
            pain_location=_enum_or_none(PainLocation, data.get('painLocation')),
            notes=data.get('notes'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rating': self.rating.value,
            'painLocation': self.pain_location.value if self.pain_location else None,
            'notes': self.notes,
        }


# =============================================================================
# Program
# =============================================================================

@dataclass(frozen=True)
class Phase:
    name: str
    week_index: int
    week_count: int
    goal: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Phase':
        return cls(data['name'], int(data['weekIndex']), int(data['weekCount']), data['goal'])

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'weekIndex': self.week_index, 'weekCount': self.week_count, 'goal': self.goal}


@dataclass(frozen=True)
class NextWeekPlan:
    summary: str
    change: str
    reason: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NextWeekPlan':
        return cls(data['summary'], data['change'], data['reason'])

    def to_dict(self) -> Dict[str, Any]:
        return {'summary': self.summary, 'change': self.change, 'reason': self.reason}


@dataclass
class ProgramRoutineItem:
    """One prescribed exercise inside a program day."""
    exercise_id: str
    sets: Range
    reps: Optional[Range] = None
    reps_unit: Optional[str] = None
    duration_sec: Optional[int] = None
    rest_sec: int = 60
    load_type: LoadType = LoadType.BODYWEIGHT
    cues: List[str] = field(default_factory=list)
    notes: Optional[str] = None

    def reps_text(self) -> Optional[str]:
        if self.reps is None:
            return self.reps_unit
        if self.reps_unit:
            return f"{self.reps} {self.reps_unit}"
        return str(self.reps)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProgramRoutineItem':
        return cls(
            exercise_id=data['exerciseId'],
            sets=Range.parse(data.get('sets')) or Range.single(1),
            reps=_range_or_none(data.get('reps')),
            reps_unit=data.get('repsUnit'),
            duration_sec=data.get('durationSec'),
            rest_sec=data.get('restSec') if data.get('restSec') is not None else 60,
            load_type=LoadType(data.get('loadType') or LoadType.BODYWEIGHT.value),
            cues=list(data.get('cues') or []),
            notes=data.get('notes'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'exerciseId': self.exercise_id,
            'sets': str(self.sets),
            'reps': _range_text(self.reps),
            'repsUnit': self.reps_unit,
            'durationSec': self.duration_sec,
            'restSec': self.rest_sec,
            'loadType': self.load_type.value,
            'cues': list(self.cues),
            'notes': self.notes,
        }


@dataclass
class ProgramDay:
    day_index: int
    title: str
    focus_tags: List[str] = field(default_factory=list)
    routine: List[ProgramRoutineItem] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProgramDay':
        return cls(
            day_index=int(data['dayIndex']),
            title=data['title'],
            focus_tags=list(data.get('focusTags') or []),
            routine=[ProgramRoutineItem.from_dict(item) for item in data.get('routine') or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'dayIndex': self.day_index,
            'title': self.title,
            'focusTags': list(self.focus_tags),
            'routine': [item.to_dict() for item in self.routine],
        }


@dataclass
class Program:
    id: str
    created_at: str
    updated_at: str
    goal_track: Optional[str]
    days_per_week: int
    week: List[ProgramDay]
    phase: Optional[Phase] = None
    next_week_plan: Optional[NextWeekPlan] = None
    estimated_session_minutes: Range = Range(45, 60)
    source: str = 'local'
    deleted_at: Optional[str] = None

    def day(self, day_index: int) -> Optional[ProgramDay]:
        for day in self.week:
            if day.day_index == day_index:
                return day
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Program':
        minutes = data.get('estimatedSessionMinutesRange') or {'min': 45, 'max': 60}
        return cls(
            id=data['id'],
            created_at=data['createdAt'],
            updated_at=data['updatedAt'],
            goal_track=data.get('goalTrack'),
            days_per_week=int(data['daysPerWeek']),
            week=[ProgramDay.from_dict(day) for day in data.get('week') or []],
            phase=Phase.from_dict(data['phase']) if data.get('phase') else None,
            next_week_plan=NextWeekPlan.from_dict(data['nextWeekPlan']) if data.get('nextWeekPlan') else None,
            estimated_session_minutes=Range(int(minutes['min']), int(minutes['max'])),
            source=data.get('source') or 'local',
            deleted_at=data.get('deletedAt'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
            'goalTrack': self.goal_track,
            'daysPerWeek': self.days_per_week,
            'estimatedSessionMinutesRange': {
                'min': self.estimated_session_minutes.min,
                'max': self.estimated_session_minutes.max,
            },
            'phase': self.phase.to_dict() if self.phase else None,
            'nextWeekPlan': self.next_week_plan.to_dict() if self.next_week_plan else None,
            'week': [day.to_dict() for day in self.week],
            'source': self.source,
            'deletedAt': self.deleted_at,
        }


@dataclass
class ProgramProgress:
    """Cached round-robin position in a program; always rebuildable from sessions."""
    program_id: str
    last_completed_day_index: Optional[int]
    next_day_index: int
    completed_day_indices: List[int]
    updated_at: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProgramProgress':
        return cls(
            program_id=data['programId'],
            last_completed_day_index=data.get('lastCompletedDayIndex'),
            next_day_index=int(data.get('nextDayIndex') or 0),
            completed_day_indices=[int(i) for i in data.get('completedDayIndices') or []],
            updated_at=data['updatedAt'],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'programId': self.program_id,
            'lastCompletedDayIndex': self.last_completed_day_index,
            'nextDayIndex': self.next_day_index,
            'completedDayIndices': list(self.completed_day_indices),
            'updatedAt': self.updated_at,
        }


# =============================================================================
# Sessions and logs
# =============================================================================

DAY_INDEX_PATTERN = re.compile(r'dayIndex:(\d+)')


@dataclass
class SessionRecord:
    """One guided workout. The program day is encoded in notes as dayIndex:N."""
    id: str
    created_at: str
    updated_at: str
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    routine_id: Optional[str] = None
    duration_sec: Optional[int] = None
    notes: Optional[str] = None
    feedback: Optional[Felt] = None
    pain_location: Optional[PainLocation] = None
    feedback_notes: Optional[str] = None
    source: str = 'local'
    deleted_at: Optional[str] = None

    @staticmethod
    def notes_for_day(day_index: int) -> str:
        return f"dayIndex:{day_index}"

    @property
    def day_index(self) -> Optional[int]:
        if not self.notes:
            return None
        match = DAY_INDEX_PATTERN.search(self.notes)
        return int(match.group(1)) if match else None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SessionRecord':
        return cls(
            id=data['id'],
            created_at=data['createdAt'],
            updated_at=data['updatedAt'],
            started_at=data.get('startedAt'),
            completed_at=data.get('completedAt'),
            routine_id=data.get('routineId'),
            duration_sec=data.get('durationSec'),
            notes=data.get('notes'),
            feedback=_enum_or_none(Felt, data.get('sessionFeedback')),
            pain_location=_enum_or_none(PainLocation, data.get('sessionPainLocation')),
            feedback_notes=data.get('sessionFeedbackNotes'),
            source=data.get('source') or 'local',
            deleted_at=data.get('deletedAt'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
            'startedAt': self.started_at,
            'completedAt': self.completed_at,
            'routineId': self.routine_id,
            'durationSec': self.duration_sec,
            'notes': self.notes,
            'sessionFeedback': self.feedback.value if self.feedback else None,
            'sessionPainLocation': self.pain_location.value if self.pain_location else None,
            'sessionFeedbackNotes': self.feedback_notes,
            'source': self.source,
            'deletedAt': self.deleted_at,
        }


@dataclass
class ExerciseLog:
    """What was actually performed for one exercise in one session."""
    id: str
    session_id: str
    exercise_id: str
    created_at: str
    updated_at: str
    load: Load = field(default_factory=Bodyweight)
    reps: Optional[int] = None
    reps_by_set: Optional[List[int]] = None
    sets_planned: Optional[int] = None
    sets_completed: Optional[int] = None
    felt: Optional[Felt] = None
    pain_location: Optional[PainLocation] = None
    feedback_notes: Optional[str] = None
    notes: Optional[str] = None
    rpe: Optional[float] = None
    program_id: Optional[str] = None
    day_index: Optional[int] = None
    original_exercise_id: Optional[str] = None
    substituted_exercise_id: Optional[str] = None
    source: str = 'local'
    deleted_at: Optional[str] = None

    @property
    def load_type(self) -> LoadType:
        return self.load.kind

    @property
    def weight(self) -> Optional[float]:
        return self.load.weight if isinstance(self.load, Weighted) else None

    @property
    def total_reps(self) -> Optional[int]:
        """Sum of reps_by_set, or the single reps entry repeated for each completed set."""
        if self.reps_by_set:
            return sum(self.reps_by_set)
        if self.reps is None:
            return None
        return self.reps * max(1, self.sets_completed or 0)

    @property
    def reps_per_set(self) -> Optional[int]:
        if not self.reps_by_set:
            return self.reps
        sets = self.sets_completed or len(self.reps_by_set)
        return round_half_up(sum(self.reps_by_set) / sets)

    @property
    def computed_volume(self) -> Optional[float]:
        """Weight x total reps. Single rep entries count once per completed set."""
        weight = self.weight
        if not weight:
            return None
        total = self.total_reps
        return weight * total if total else None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExerciseLog':
        reps_by_set = data.get('repsBySet')
        return cls(
            id=data['id'],
            session_id=data['sessionId'],
            exercise_id=data['exerciseId'],
            created_at=data['createdAt'],
            updated_at=data['updatedAt'],
            load=load_from_fields(data),
            reps=data.get('reps'),
            reps_by_set=[int(r) for r in reps_by_set] if reps_by_set is not None else None,
            sets_planned=data.get('setsPlanned'),
            sets_completed=data.get('setsCompleted'),
            felt=_enum_or_none(Felt, data.get('felt')),
            pain_location=_enum_or_none(PainLocation, data.get('painLocation')),
            feedback_notes=data.get('feedbackNotes'),
            notes=data.get('notes'),
            rpe=data.get('rpe'),
            program_id=data.get('programId'),
            day_index=data.get('dayIndex'),
            original_exercise_id=data.get('originalExerciseId'),
            substituted_exercise_id=data.get('substitutedExerciseId'),
            source=data.get('source') or 'local',
            deleted_at=data.get('deletedAt'),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'sessionId': self.session_id,
            'exerciseId': self.exercise_id,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }
        data.update(load_to_fields(self.load))
        data.update({
            'reps': self.reps,
            'repsBySet': list(self.reps_by_set) if self.reps_by_set is not None else None,
            'setsPlanned': self.sets_planned,
            'setsCompleted': self.sets_completed,
            'felt': self.felt.value if self.felt else None,
            'painLocation': self.pain_location.value if self.pain_location else None,
            'feedbackNotes': self.feedback_notes,
            'notes': self.notes,
            'rpe': self.rpe,
            'computedVolume': self.computed_volume,
            'programId': self.program_id,
            'dayIndex': self.day_index,
            'originalExerciseId': self.original_exercise_id,
            'substitutedExerciseId': self.substituted_exercise_id,
            'source': self.source,
            'deletedAt': self.deleted_at,
        })
        return data


# =============================================================================
# Preferences
# =============================================================================

@dataclass
class TimerPrefs:
    work_seconds: int = 60
    rest_seconds: int = 60


@dataclass
class Prefs:
    """Timer defaults, last feedback and substitutions per exercise."""
    schema_version: int
    timer: Optional[TimerPrefs] = None
    feedback_by_exercise: Dict[str, ExerciseFeedback] = field(default_factory=dict)
    substitution_by_exercise: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Prefs':
        timer = data.get('timerPrefs')
        return cls(
            schema_version=int(data['schemaVersion']),
            timer=TimerPrefs(timer.get('workSeconds', 60), timer.get('restSeconds', 60)) if timer else None,
            feedback_by_exercise={
                exercise_id: ExerciseFeedback.from_dict(feedback)
                for exercise_id, feedback in (data.get('feedbackByExercise') or {}).items()
            },
            substitution_by_exercise=dict(data.get('substitutionByExercise') or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'schemaVersion': self.schema_version,
            'timerPrefs': {
                'workSeconds': self.timer.work_seconds,
                'restSeconds': self.timer.rest_seconds,
            } if self.timer else None,
            'feedbackByExercise': {
                exercise_id: feedback.to_dict()
                for exercise_id, feedback in self.feedback_by_exercise.items()
            },
            'substitutionByExercise': dict(self.substitution_by_exercise),
        }
