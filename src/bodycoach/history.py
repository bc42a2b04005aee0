"""
Training History

Internal Codename: JUDGMENT-DAY
Round-robin program progress, session completion and history analytics.

Progress is a cache: derive_progress() can always rebuild it from the
session history (day index lives in session notes as "dayIndex:N").
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

import pandas as pd

from .models import (
    ExerciseLog,
    Felt,
    PainLocation,
    Program,
    ProgramProgress,
    SessionRecord,
    format_iso,
    parse_iso,
)
from .store import LocalStore, new_id

logger = logging.getLogger(__name__)


def next_day_after(day_index: Optional[int], days_per_week: int) -> int:
    """Day after day_index, wrapping to 0 at the end of the week."""
    if day_index is None:
        return 0
    return day_index + 1 if day_index + 1 < days_per_week else 0


def derive_progress(
    program: Program,
    sessions: Iterable[SessionRecord],
    now: Optional[datetime] = None
) -> ProgramProgress:
    """
    Rebuild program progress from session history.

    Only completed, non-deleted sessions of this program that carry a day
    index count. The last completed day is the day of the most recently
    completed session.

    Args:
        program: Program the sessions belong to
        sessions: Candidate sessions (any order, any program)
        now: Timestamp for updated_at (default: current UTC time)

    Returns:
        ProgramProgress
    """
    completed = [
        s for s in sessions
        if s.routine_id == program.id
        and s.completed_at
        and not s.deleted_at
        and s.day_index is not None
    ]
    completed.sort(key=lambda s: parse_iso(s.completed_at))

    completed_days = sorted({s.day_index for s in completed})
    last = completed[-1].day_index if completed else None

    return ProgramProgress(
        program_id=program.id,
        last_completed_day_index=last,
        next_day_index=next_day_after(last, program.days_per_week),
        completed_day_indices=completed_days,
        updated_at=format_iso(now or datetime.now(timezone.utc)),
    )


def start_session(
    store: LocalStore,
    program: Program,
    day_index: int,
    now: Optional[datetime] = None
) -> SessionRecord:
    """Create an in-progress session for a program day."""
    timestamp = format_iso(now or datetime.now(timezone.utc))
    session = SessionRecord(
        id=new_id(),
        created_at=timestamp,
        updated_at=timestamp,
        started_at=timestamp,
        routine_id=program.id,
        notes=SessionRecord.notes_for_day(day_index),
    )
    return store.create_session(session)


def record_completion(
    store: LocalStore,
    program: Program,
    session: SessionRecord,
    logs: List[ExerciseLog],
    feedback: Optional[Felt] = None,
    pain_location: Optional[PainLocation] = None,
    feedback_notes: Optional[str] = None,
    now: Optional[datetime] = None
) -> ProgramProgress:
    """
    Finalize a session: stamp completion, save its logs, advance progress.

    Args:
        store: Local store
        program: Program the session ran
        session: Session started with start_session()
        logs: Exercise logs performed in the session
        feedback: Session-level rating
        pain_location: Where pain was felt, if any
        feedback_notes: Free-text session notes
        now: Completion time (default: current UTC time)

    Returns:
        Updated ProgramProgress (also saved)
    """
    moment = now or datetime.now(timezone.utc)
    timestamp = format_iso(moment)

    started = parse_iso(session.started_at) if session.started_at else moment
    session.completed_at = timestamp
    session.updated_at = timestamp
    session.duration_sec = max(0, int((moment - started).total_seconds()))
    session.feedback = feedback
    session.pain_location = pain_location
    session.feedback_notes = feedback_notes
    store.update_session(session)

    for log in logs:
        log.session_id = session.id
        log.program_id = program.id
        log.day_index = session.day_index
    store.save_exercise_logs(logs)

    previous = store.get_program_progress(program.id)
    completed_days = set(previous.completed_day_indices) if previous else set()
    day_index = session.day_index
    if day_index is not None:
        completed_days.add(day_index)
    else:
        day_index = previous.last_completed_day_index if previous else None

    progress = ProgramProgress(
        program_id=program.id,
        last_completed_day_index=day_index,
        next_day_index=next_day_after(day_index, program.days_per_week),
        completed_day_indices=sorted(completed_days),
        updated_at=timestamp,
    )
    store.save_program_progress(progress)

    logger.info(
        "Completed session %s (program %s, day %s, %d logs)",
        session.id, program.id, session.day_index, len(logs)
    )
    return progress


def current_progress(store: LocalStore, program: Program) -> ProgramProgress:
    """
    Progress rebuilt from the program's session history.

    The stored record is only a cache: sessions may have changed since it
    was written (import, soft delete), so it is re-derived and saved again whenever the two disagree.
    """
    progress = derive_progress(program, store.list_sessions_by_program_id(program.id))
    cached = store.get_program_progress(program.id)
    if cached is not None and (
        cached.last_completed_day_index == progress.last_completed_day_index
        and cached.next_day_index == progress.next_day_index
        and cached.completed_day_indices == progress.completed_day_indices
    ):
        return cached

    if cached is not None:
        logger.info("Rebuilt stale progress for program %s", program.id)
    store.save_program_progress(progress)
    return progress


# =============================================================================
# Analytics
# =============================================================================

@dataclass
class PersonalRecord:
    exercise_id: str
    max_weight: Optional[float]
    max_volume: Optional[float]
    max_reps: Optional[int]
    last_performed: str


def logs_to_frame(logs: Iterable[ExerciseLog]) -> pd.DataFrame:
    """
    Flatten logs into a DataFrame.

    Columns: exercise_id, date, updated_at, weight, total_reps, volume, felt.
    """
    rows = [
        {
            'exercise_id': log.exercise_id,
            'date': parse_iso(log.updated_at).date(),
            'updated_at': log.updated_at,
            'weight': log.weight,
            'total_reps': log.total_reps,
            'volume': log.computed_volume,
            'felt': log.felt.value if log.felt else None,
        }
        for log in logs
        if not log.deleted_at
    ]
    columns = ['exercise_id', 'date', 'updated_at', 'weight', 'total_reps', 'volume', 'felt']
    df = pd.DataFrame(rows, columns=columns)
    for column in ('weight', 'total_reps', 'volume'):
        df[column] = pd.to_numeric(df[column], errors='coerce')
    return df


def personal_records(logs: Iterable[ExerciseLog]) -> Dict[str, PersonalRecord]:
    """
    Best weight, volume and rep count per exercise.

    Returns:
        Dict of exercise_id -> PersonalRecord
    """
    df = logs_to_frame(logs)
    if df.empty:
        return {}

    records = {}
    for exercise_id, group in df.groupby('exercise_id'):
        max_weight = group['weight'].max()
        max_volume = group['volume'].max()
        max_reps = group['total_reps'].max()
        records[exercise_id] = PersonalRecord(
            exercise_id=exercise_id,
            max_weight=None if pd.isna(max_weight) else float(max_weight),
            max_volume=None if pd.isna(max_volume) else float(max_volume),
            max_reps=None if pd.isna(max_reps) else int(max_reps),
            last_performed=group['updated_at'].max(),
        )
    return records


def volume_by_date(logs: Iterable[ExerciseLog], exercise_id: Optional[str] = None) -> pd.Series:
    """
    Total computed volume per calendar day (UTC), oldest first.

    Args:
        logs: Exercise logs
        exercise_id: Restrict to one exercise

    Returns:
        Series indexed by date; days without weighted work are omitted
    """
    df = logs_to_frame(logs)
    if exercise_id is not None:
        df = df[df['exercise_id'] == exercise_id]
    df = df.dropna(subset=['volume'])
    if df.empty:
        return pd.Series(dtype=float, name='volume')
    return df.groupby('date')['volume'].sum().sort_index().rename('volume')


def top_exercises(logs: Iterable[ExerciseLog], limit: int = 5) -> List[Dict]:
    """Most frequently logged exercises with their log counts."""
    df = logs_to_frame(logs)
    if df.empty:
        return []
    counts = df['exercise_id'].value_counts().head(limit)
    return [{'exercise_id': exercise_id, 'count': int(count)} for exercise_id, count in counts.items()]
