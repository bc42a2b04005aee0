"""
Weekly Program Builder

Internal Codename: JUDGMENT-DAY
"Judgment Day: The day the workout is decided."

Builds a one-week program from a questionnaire:
- Day templates keyed by days per week
- Equipment substitution (never drops an item)
- Movement-pattern back-fill so every day stays balanced
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

from ..biomechanics import REQUIRED_PATTERNS, Equipment, ExerciseCategory, MovementPattern
from ..catalog import Exercise, ExerciseCatalog
from ..models import (
    LoadType,
    Program,
    ProgramDay,
    ProgramRoutineItem,
    Questionnaire,
    Range,
    format_iso,
)
from .equipment import is_eligible, normalize_selection
from .phases import next_week_plan, phase_for

logger = logging.getLogger(__name__)

# Marker for template slots whose sets follow the questionnaire's intensity
INTENSITY = None

BAND_PREFERRED_PATTERNS = (MovementPattern.PULL, MovementPattern.PUSH, MovementPattern.CORE)


@dataclass(frozen=True)
class TemplateSlot:
    """One hand-authored template entry."""
    exercise_id: str
    sets: Optional[Range]
    reps: Range
    reps_unit: Optional[str] = None
    duration_sec: Optional[int] = None
    rest_sec: int = 60
    band_variant: Optional[str] = None


@dataclass(frozen=True)
class DayTemplate:
    title: str
    focus_tags: List[str]
    slots: List[TemplateSlot]


def _slot(exercise_id, sets, reps, duration_sec, rest_sec, unit=None, band_variant=None):
    return TemplateSlot(
        exercise_id=exercise_id,
        sets=Range.parse(sets) if sets is not None else INTENSITY,
        reps=Range.parse(reps),
        reps_unit=unit,
        duration_sec=duration_sec,
        rest_sec=rest_sec,
        band_variant=band_variant,
    )


CAT_COW = _slot("cat-cow", "2", "6-8", 60, 30)
WALL_SLIDES = _slot("wall-slides", "2", "8-10", 60, 30)
DUMBBELL_ROWS = _slot("dumbbell-rows", INTENSITY, "8-12", 90, 75, band_variant="band-rows")
FACE_PULL = _slot("face-pull", INTENSITY, "10-12", 90, 60, band_variant="band-face-pull")
HIP_FLEXOR_STRETCH = _slot("hip-flexor-stretch", "2", "30", 60, 30, unit="sec per side")
HAMSTRING_STRETCH = _slot("hamstring-stretch", "2", "30", 60, 30, unit="sec per side")
THREAD_THE_NEEDLE = _slot("thread-the-needle", "2", "5-6", 60, 30, unit="per side")
WALL_ANGEL_HOLD = _slot("wall-angel-hold", "2", "20-30", 60, 30, unit="sec")
BIRD_DOG = _slot("bird-dog", "2-3", "6-8", 75, 45, unit="per side")
DEAD_BUG = _slot("dead-bug", "3", "6-8", 75, 60, unit="per side")
PRONE_YTW = _slot("prone-ytw", "3", "6-8", 90, 60, unit="each")
PALLOF_PRESS = _slot("pallof-press", "3", "8-10", 90, 60, unit="per side")
BAND_PULL_APARTS = _slot("band-pull-aparts", INTENSITY, "10-12", 75, 60)
GLUTE_BRIDGES = _slot("glute-bridges", INTENSITY, "10-12", 75, 60)


def _with_sets(slot: TemplateSlot, sets: Optional[str]) -> TemplateSlot:
    """Copy of a shared slot with different sets (None = intensity)."""
    return TemplateSlot(
        exercise_id=slot.exercise_id,
        sets=Range.parse(sets) if sets is not None else INTENSITY,
        reps=slot.reps,
        reps_unit=slot.reps_unit,
        duration_sec=slot.duration_sec,
        rest_sec=slot.rest_sec,
        band_variant=slot.band_variant,
    )


DAY_TEMPLATES: Dict[int, List[DayTemplate]] = {
    3: [
        DayTemplate("Full Body A", ["strength", "posture", "upper"], [
            CAT_COW,
            WALL_SLIDES,
            DUMBBELL_ROWS,
            _with_sets(PALLOF_PRESS, INTENSITY),
            _with_sets(GLUTE_BRIDGES, "3"),
            HIP_FLEXOR_STRETCH,
        ]),
        DayTemplate("Full Body B", ["mobility", "core", "lower"], [
            _slot("thoracic-rotation", "2", "6-8", 60, 30, unit="per side"),
            BIRD_DOG,
            FACE_PULL,
            DEAD_BUG,
            HAMSTRING_STRETCH,
        ]),
        DayTemplate("Full Body C", ["strength", "upper", "core"], [
            CAT_COW,
            WALL_ANGEL_HOLD,
            _with_sets(PRONE_YTW, INTENSITY),
            BAND_PULL_APARTS,
            THREAD_THE_NEEDLE,
        ]),
    ],
    4: [
        DayTemplate("Upper A", ["upper", "scap", "strength"], [
            WALL_SLIDES,
            DUMBBELL_ROWS,
            FACE_PULL,
            PRONE_YTW,
        ]),
        DayTemplate("Lower A", ["lower", "core", "hips"], [
            GLUTE_BRIDGES,
            BIRD_DOG,
            PALLOF_PRESS,
            HIP_FLEXOR_STRETCH,
        ]),
        DayTemplate("Upper B", ["upper", "posture", "pull"], [
            CAT_COW,
            BAND_PULL_APARTS,
            DUMBBELL_ROWS,
            _slot("chin-tucks", "2", "8-10", 60, 30),
        ]),
        DayTemplate("Lower B", ["lower", "mobility", "core"], [
            DEAD_BUG,
            HAMSTRING_STRETCH,
            THREAD_THE_NEEDLE,
        ]),
    ],
    5: [
        DayTemplate("Upper", ["upper", "strength"], [
            WALL_SLIDES,
            DUMBBELL_ROWS,
            FACE_PULL,
        ]),
        DayTemplate("Lower", ["lower", "core"], [
            GLUTE_BRIDGES,
            PALLOF_PRESS,
        ]),
        DayTemplate("Push", ["upper", "push"], [
            WALL_ANGEL_HOLD,
            BAND_PULL_APARTS,
        ]),
        DayTemplate("Pull", ["upper", "pull"], [
            DUMBBELL_ROWS,
            PRONE_YTW,
        ]),
        DayTemplate("Legs + Core", ["lower", "core"], [
            GLUTE_BRIDGES,
            DEAD_BUG,
            HIP_FLEXOR_STRETCH,
        ]),
    ],
}

# Back-fill prescriptions: (sets, reps, duration_sec)
PATTERN_PRESCRIPTIONS = {
    MovementPattern.MOBILITY: (Range(2, 2), Range(6, 8), 60),
    MovementPattern.CORE: (Range(2, 3), Range(8, 12), 60),
}
DEFAULT_PRESCRIPTION = (Range(3, 3), Range(8, 12), 75)
BACKFILL_REST_SEC = 60


def intensity_for(questionnaire: Questionnaire) -> Range:
    """Sets range for the main work: light for pain relief, higher for advanced lifters."""
    if questionnaire.goals == "Reduce pain":
        return Range(2, 3)
    if questionnaire.experience == "Advanced":
        return Range(4, 5)
    return Range(3, 4)


class ProgramBuilder:
    """
    Builds a weekly program from questionnaire answers.

    Deterministic for a given catalog, questionnaire and clock.
    """

    def __init__(self, catalog: ExerciseCatalog):
        """
        Initialize program builder.

        Args:
            catalog: Exercise catalog; its order is the selection tie-break
        """
        self.catalog = catalog

    def build(
        self,
        questionnaire: Questionnaire,
        program_id: str,
        now: Optional[datetime] = None
    ) -> Program:
        """
        Build a program.

        Args:
            questionnaire: Validated questionnaire answers
            program_id: Id to assign
            now: Creation time (default: current UTC time)

        Returns:
            Program with one ProgramDay per training day
        """
        context = normalize_selection(questionnaire.equipment)
        available = context.available
        prefer_bands = Equipment.BANDS in available
        intensity = intensity_for(questionnaire)

        templates = DAY_TEMPLATES[questionnaire.days_per_week]
        week = []
        for day_index, template in enumerate(templates):
            routine = [
                self._item_for_slot(slot, intensity, available, prefer_bands)
                for slot in template.slots
            ]
            routine = self._substitute_ineligible(routine, available)
            day = ProgramDay(
                day_index=day_index,
                title=template.title,
                focus_tags=list(template.focus_tags),
                routine=routine,
            )
            self._ensure_pattern_coverage(day, available, prefer_bands)
            week.append(day)

        timestamp = format_iso(now or datetime.now(timezone.utc))
        phase = phase_for(1, questionnaire.goals or "Improve posture")
        plan = next_week_plan(
            compliance_rate=0.0,
            pain_flag=bool(questionnaire.pain_areas),
            fatigue_flag=False,
            phase_name=phase.name,
        )

        logger.info(
            "Built program %s: %d days, equipment=%s",
            program_id,
            len(week),
            sorted(item.value for item in available),
        )

        return Program(
            id=program_id,
            created_at=timestamp,
            updated_at=timestamp,
            goal_track=questionnaire.goals,
            days_per_week=questionnaire.days_per_week,
            week=week,
            phase=phase,
            next_week_plan=plan,
        )

    # -------------------------------------------------------------------------
    # Template items
    # -------------------------------------------------------------------------

    def _item_for_slot(
        self,
        slot: TemplateSlot,
        intensity: Range,
        available: Set[Equipment],
        prefer_bands: bool
    ) -> ProgramRoutineItem:
        exercise_id = slot.exercise_id
        if prefer_bands and slot.band_variant:
            base = self.catalog.by_id(exercise_id)
            variant = self.catalog.by_id(slot.band_variant)
            if base is not None and variant is not None and not is_eligible(base, available):
                exercise_id = variant.id

        return self._make_item(
            exercise_id,
            sets=slot.sets or intensity,
            reps=slot.reps,
            reps_unit=slot.reps_unit,
            duration_sec=slot.duration_sec,
            rest_sec=slot.rest_sec,
        )

    def _make_item(
        self,
        exercise_id: str,
        sets: Range,
        reps: Optional[Range],
        reps_unit: Optional[str] = None,
        duration_sec: Optional[int] = None,
        rest_sec: int = 60
    ) -> ProgramRoutineItem:
        exercise = self.catalog.by_id(exercise_id)
        return ProgramRoutineItem(
            exercise_id=exercise_id,
            sets=sets,
            reps=reps,
            reps_unit=reps_unit,
            duration_sec=duration_sec,
            rest_sec=rest_sec,
            load_type=exercise.load_type if exercise else LoadType.BODYWEIGHT,
            cues=list(exercise.cues) if exercise else [],
        )

    # -------------------------------------------------------------------------
    # Equipment substitution
    # -------------------------------------------------------------------------

    def _substitute_ineligible(
        self,
        routine: List[ProgramRoutineItem],
        available: Set[Equipment]
    ) -> List[ProgramRoutineItem]:
        result = []
        for item in routine:
            exercise = self.catalog.by_id(item.exercise_id)
            if exercise is None or is_eligible(exercise, available):
                result.append(item)
                continue

            fallback = self.pick_fallback(exercise.category, exercise.load_type, available)
            if fallback is None:
                logger.warning("No substitute for %s; keeping it", exercise.id)
                result.append(item)
                continue

            logger.debug("Substituting %s -> %s", exercise.id, fallback.id)
            item.exercise_id = fallback.id
            item.load_type = fallback.load_type
            item.cues = list(fallback.cues)
            result.append(item)
        return result

    def pick_fallback(
        self,
        category: ExerciseCategory,
        load_type: LoadType,
        available: Set[Equipment]
    ) -> Optional[Exercise]:
        """
        Pick a replacement for an ineligible exercise.

        Tiers: eligible + same category + same load type, then eligible + same
        category, then a no-equipment exercise in the category. The first
        exercise in catalog order wins, even if the day already has it.

        Returns:
            Replacement exercise, or None when the category is empty
        """
        in_category = [e for e in self.catalog if e.category == category]
        eligible = [e for e in in_category if is_eligible(e, available)]

        tiers = [
            [e for e in eligible if e.load_type == load_type],
            eligible,
            [e for e in in_category if e.requires(Equipment.NONE)],
        ]
        for tier in tiers:
            if tier:
                return tier[0]
        return None

    # -------------------------------------------------------------------------
    # Pattern coverage
    # -------------------------------------------------------------------------

    def _ensure_pattern_coverage(
        self,
        day: ProgramDay,
        available: Set[Equipment],
        prefer_bands: bool
    ) -> ProgramDay:
        used = {item.exercise_id for item in day.routine}
        covered = set()
        for item in day.routine:
            exercise = self.catalog.by_id(item.exercise_id)
            if exercise:
                covered.update(exercise.movement_patterns)

        for pattern in REQUIRED_PATTERNS:
            if pattern in covered:
                continue
            exercise = self.choose_for_pattern(pattern, available, prefer_bands, used)
            if exercise is None:
                logger.debug("Day %s: no exercise available for %s", day.title, pattern.value)
                continue

            used.add(exercise.id)
            covered.update(exercise.movement_patterns)
            sets, reps, duration = PATTERN_PRESCRIPTIONS.get(pattern, DEFAULT_PRESCRIPTION)
            day.routine.append(self._make_item(
                exercise.id,
                sets=sets,
                reps=reps,
                duration_sec=duration,
                rest_sec=BACKFILL_REST_SEC,
            ))
        return day

    def choose_for_pattern(
        self,
        pattern: MovementPattern,
        available: Set[Equipment],
        prefer_bands: bool,
        used: Set[str]
    ) -> Optional[Exercise]:
        """
        Pick an unused, eligible exercise that trains a movement pattern.

        Band exercises win for pull/push/core when bands are available.
        """
        eligible = [
            e for e in self.catalog
            if e.has_pattern(pattern) and is_eligible(e, available) and e.id not in used
        ]

        if prefer_bands and pattern in BAND_PREFERRED_PATTERNS:
            banded = [e for e in eligible if e.requires(Equipment.BANDS)]
            if banded:
                return banded[0]

        if eligible:
            return eligible[0]

        no_equipment = [
            e for e in self.catalog
            if e.has_pattern(pattern) and e.requires(Equipment.NONE) and e.id not in used
        ]
        return no_equipment[0] if no_equipment else None


def format_program_text(program: Program, catalog: ExerciseCatalog) -> str:
    """
    Format a program as readable text.

    Args:
        program: Program to render
        catalog: Catalog used for exercise names

    Returns:
        Formatted text string
    """
    lines = []

    lines.append("=" * 60)
    lines.append("Weekly Program")
    lines.append("=" * 60)
    lines.append(f"\nGoal: {program.goal_track or 'General'}")
    lines.append(f"Days per week: {program.days_per_week}")
    lines.append(f"Session length: {program.estimated_session_minutes} min")
    if program.phase:
        lines.append(f"Phase: {program.phase.name} (week {program.phase.week_index})")
        lines.append(f"  Focus: {program.phase.goal}")

    for day in program.week:
        lines.append(f"\n{'─' * 60}")
        lines.append(f"Day {day.day_index + 1}: {day.title}")
        if day.focus_tags:
            lines.append(f"Tags: {', '.join(day.focus_tags)}")
        lines.append('─' * 60)
        for i, item in enumerate(day.routine, 1):
            exercise = catalog.by_id(item.exercise_id)
            name = exercise.name if exercise else item.exercise_id
            reps = item.reps_text()
            prescription = f"{item.sets} x {reps}" if reps else f"{item.sets} sets"
            lines.append(f"{i}. {name}: {prescription}, rest {item.rest_sec}s")
            for cue in item.cues[:2]:
                lines.append(f"   - {cue}")

    if program.next_week_plan:
        lines.append(f"\n{'─' * 60}")
        lines.append("NEXT WEEK")
        lines.append('─' * 60)
        lines.append(program.next_week_plan.summary)
        lines.append(f"  Change: {program.next_week_plan.change}")
        lines.append(f"  Why: {program.next_week_plan.reason}")

    lines.append("\n" + "=" * 60)
    return "\n".join(lines)
