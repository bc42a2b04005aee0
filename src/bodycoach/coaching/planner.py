"""
Coach Planner

Internal Codename: JUDGMENT-DAY
"Judgment Day: The day the workout is decided."

Ties the coaching engines to the local store.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from ..catalog import ExerciseCatalog
from ..config import CoachConfig
from ..errors import CoachError
from ..history import current_progress, record_completion, start_session
from ..models import (
    Assisted,
    Bodyweight,
    ExerciseFeedback,
    ExerciseLog,
    Felt,
    LoadType,
    PainLocation,
    Program,
    ProgramDay,
    ProgramProgress,
    ProgramRoutineItem,
    Questionnaire,
    Timed,
    Weighted,
    format_iso,
)
from ..store import LocalStore, new_id
from .phases import PhasePlanner
from .program import ProgramBuilder
from .progression import Prescription, ProgressionEngine, ProgressionResult, default_recommendation
from .signals import WeeklySignals, compute_signals

logger = logging.getLogger(__name__)


class CoachPlanner:
    """
    Coaching service over the local store.

    Integrates:
    - Program building and reuse
    - Weekly signals and phase advancement
    - Round-robin day selection
    - Per-exercise progression
    """

    def __init__(self, store: LocalStore, catalog: ExerciseCatalog, config: Optional[CoachConfig] = None):
        """
        Initialize coach planner.

        Args:
            store: Local store
            catalog: Exercise catalog
            config: Runtime settings (default: CoachConfig())
        """
        self.store = store
        self.catalog = catalog
        self.config = config or CoachConfig()
        self.builder = ProgramBuilder(catalog)
        self.progression = ProgressionEngine()
        self.phases = PhasePlanner()

    # -------------------------------------------------------------------------
    # Programs
    # -------------------------------------------------------------------------

    def ensure_program(
        self,
        questionnaire: Questionnaire,
        now: Optional[datetime] = None
    ) -> Tuple[Program, bool]:
        """
        Reuse the latest program when it matches, else build and save a new one.

        A stored program matches when days per week and goal track are equal.

        Returns:
            (program, created)
        """
        latest = self.store.get_latest_program()
        if (
            latest is not None
            and latest.days_per_week == questionnaire.days_per_week
            and latest.goal_track == questionnaire.goals
        ):
            logger.debug("Reusing program %s", latest.id)
            return latest, False

        program = self.builder.build(questionnaire, new_id(), now=now)
        self.store.save_program(program)
        return program, True

    def require_program(self) -> Program:
        program = self.store.get_latest_program()
        if program is None:
            raise CoachError("No program yet. Run `bodycoach plan` first.")
        return program

    def weekly_signals(self, program: Program, now: Optional[datetime] = None) -> WeeklySignals:
        """Compliance, pain and fatigue over the configured rolling window."""
        now = now or datetime.now(timezone.utc)
        return compute_signals(
            sessions=self.store.list_sessions(self.config.session_list_limit),
            logs=self.store.list_all_exercise_logs(),
            days_per_week=program.days_per_week,
            now=now,
            window_days=self.config.recent_window_days,
            fatigue_min_samples=self.config.fatigue_min_samples,
            fatigue_hard_ratio=self.config.fatigue_hard_ratio,
        )

    def refresh_phase(self, program: Program, now: Optional[datetime] = None) -> Tuple[Program, WeeklySignals]:
        """Advance phase and next-week plan from recent history, then save."""
        now = now or datetime.now(timezone.utc)
        signals = self.weekly_signals(program, now)
        self.phases.advance(program, signals, now)
        self.store.save_program(program)
        return program, signals

    # -------------------------------------------------------------------------
    # Days and sessions
    # -------------------------------------------------------------------------

    def progress(self, program: Program) -> ProgramProgress:
        return current_progress(self.store, program)

    def next_day(self, program: Program) -> ProgramDay:
        """The program day to train next (round-robin)."""
        progress = self.progress(program)
        day = program.day(progress.next_day_index)
        return day if day is not None else program.week[0]

    def find_item(self, program: Program, exercise_id: str) -> Optional[Tuple[ProgramDay, ProgramRoutineItem]]:
        """First program item for an exercise, matching substitutions too."""
        substitutions = self.store.load_prefs().substitution_by_exercise
        for day in program.week:
            for item in day.routine:
                if exercise_id in (item.exercise_id, substitutions.get(item.exercise_id)):
                    return day, item
        return None

    def set_substitution(self, original_id: str, replacement_id: str) -> None:
        """Remember that the user swaps one exercise for another."""
        for exercise_id in (original_id, replacement_id):
            if exercise_id not in self.catalog:
                raise CoachError(f"Unknown exercise: {exercise_id}")
        prefs = self.store.load_prefs()
        prefs.substitution_by_exercise[original_id] = replacement_id
        self.store.save_prefs(prefs)

    def log_exercise(
        self,
        exercise_id: str,
        weight: Optional[float] = None,
        reps: Optional[int] = None,
        reps_by_set: Optional[List[int]] = None,
        sets_completed: Optional[int] = None,
        felt: Optional[Felt] = None,
        pain_location: Optional[PainLocation] = None,
        notes: Optional[str] = None,
        day_index: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> Tuple[ExerciseLog, ProgressionResult]:
        """
        Record a one-exercise session and return the next recommendation.

        Args:
            exercise_id: Catalog id
            weight: Load for weighted exercises
            reps: Reps per set (ignored when reps_by_set is given)
            reps_by_set: Reps for each completed set
            sets_completed: Sets done (default: len(reps_by_set))
            felt: How it felt
            pain_location: Where pain was felt
            notes: Free-text notes
            day_index: Program day (default: the next day in rotation)
            now: Completion time

        Returns:
            (saved log, recommendation for next time)
        """
        exercise = self.catalog.by_id(exercise_id)
        if exercise is None:
            raise CoachError(f"Unknown exercise: {exercise_id}")

        now = now or datetime.now(timezone.utc)
        timestamp = format_iso(now)
        program = self.require_program()

        found = self.find_item(program, exercise_id)
        if day_index is None:
            day_index = found[0].day_index if found else self.next_day(program).day_index
        if program.day(day_index) is None:
            raise CoachError(f"Program has no day {day_index + 1}")
        item = found[1] if found else None

        if exercise.load_type == LoadType.WEIGHTED and weight is not None:
            load = Weighted(weight=weight, unit=self.config.default_unit)
        elif exercise.load_type == LoadType.TIMED:
            load = Timed(duration_sec=item.duration_sec if item else None)
        elif exercise.load_type == LoadType.ASSISTED:
            load = Assisted()
        else:
            load = Bodyweight()

        if reps_by_set and sets_completed is None:
            sets_completed = len(reps_by_set)

        session = start_session(self.store, program, day_index, now=now)
        log = ExerciseLog(
            id=new_id(),
            session_id=session.id,
            exercise_id=exercise_id,
            created_at=timestamp,
            updated_at=timestamp,
            load=load,
            reps=None if reps_by_set else reps,
            reps_by_set=reps_by_set or None,
            sets_planned=item.sets.max if item else None,
            sets_completed=sets_completed,
            felt=felt,
            pain_location=pain_location,
            notes=notes,
        )
        if item is not None and item.exercise_id != exercise_id:
            log.original_exercise_id = item.exercise_id
            log.substituted_exercise_id = exercise_id

        record_completion(
            self.store, program, session, [log],
            feedback=felt, pain_location=pain_location, now=now,
        )

        prefs = self.store.load_prefs()
        if felt is not None:
            prefs.feedback_by_exercise[exercise_id] = ExerciseFeedback(
                rating=felt, pain_location=pain_location, notes=notes
            )
        else:
            prefs.feedback_by_exercise.pop(exercise_id, None)
        self.store.save_prefs(prefs)

        return log, self.recommend(exercise_id)

    # -------------------------------------------------------------------------
    # Progression
    # -------------------------------------------------------------------------

    def recommend(self, exercise_id: str) -> ProgressionResult:
        """
        Next target for an exercise.

        Uses the program's prescription when the exercise is in the current
        program, and the last explicit feedback saved for it.
        """
        exercise = self.catalog.by_id(exercise_id)
        if exercise is None:
            raise CoachError(f"Unknown exercise: {exercise_id}")

        logs = self.store.list_exercise_logs_by_exercise(exercise_id, limit=10)
        prefs = self.store.load_prefs()
        feedback = prefs.feedback_by_exercise.get(exercise_id)

        prescription = None
        program = self.store.get_latest_program()
        if program is not None:
            found = self.find_item(program, exercise_id)
            if found:
                prescription = Prescription.from_item(found[1])

        result = self.progression.recommend(exercise, logs, feedback=feedback, prescription=prescription)
        return result or default_recommendation()
