"""
Weekly Training Signals

Internal Codename: JUDGMENT-DAY
Derives compliance, pain and fatigue signals from recent sessions and logs.

Checks:
- Completed sessions vs planned days in the rolling window
- Any "pain" rating (session or exercise level)
- Share of "hard" ratings once enough ratings exist
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from ..models import ExerciseLog, Felt, SessionRecord, parse_iso


@dataclass(frozen=True)
class WeeklySignals:
    """Aggregate signals for the most recent window."""
    compliance_rate: float
    pain_flag: bool
    fatigue_flag: bool
    completed_sessions: int = 0
    feedback_samples: int = 0
    hard_ratio: float = 0.0
    signals: List[str] = field(default_factory=list)


def _in_window(timestamp: Optional[str], start: datetime, end: datetime) -> bool:
    if not timestamp:
        return False
    moment = parse_iso(timestamp)
    return start <= moment <= end


def compliance_rate(completed_sessions: int, days_per_week: int) -> float:
    """min(1, completed / planned); zero planned days yields 0."""
    if days_per_week <= 0:
        return 0.0
    return min(1.0, completed_sessions / days_per_week)


def compute_signals(
    sessions: Iterable[SessionRecord],
    logs: Iterable[ExerciseLog],
    days_per_week: int,
    now: datetime,
    window_days: int = 7,
    fatigue_min_samples: int = 3,
    fatigue_hard_ratio: float = 0.5
) -> WeeklySignals:
    """
    Compute weekly signals.

    Session feedback and exercise-log ratings share one pool, so a session
    with many logged exercises weighs more than one with a single rating.

    Args:
        sessions: Session history (any order, soft-deleted ones are ignored)
        logs: Exercise logs (any order, soft-deleted ones are ignored)
        days_per_week: Planned sessions per week
        now: End of the window (timezone-aware)
        window_days: Window length in days
        fatigue_min_samples: Ratings required before fatigue can be flagged
        fatigue_hard_ratio: Share of "hard" ratings that flags fatigue

    Returns:
        WeeklySignals
    """
    start = now - timedelta(days=window_days)

    recent_sessions = [
        s for s in sessions
        if not s.deleted_at and s.completed_at and _in_window(s.completed_at, start, now)
    ]
    recent_logs = [
        log for log in logs
        if not log.deleted_at and _in_window(log.updated_at, start, now)
    ]

    ratings: List[Felt] = [s.feedback for s in recent_sessions if s.feedback is not None]
    ratings.extend(log.felt for log in recent_logs if log.felt is not None)

    completed = len(recent_sessions)
    rate = compliance_rate(completed, days_per_week)
    pain_flag = Felt.PAIN in ratings

    hard_count = sum(1 for rating in ratings if rating == Felt.HARD)
    hard_ratio = hard_count / len(ratings) if ratings else 0.0
    fatigue_flag = len(ratings) >= fatigue_min_samples and hard_ratio >= fatigue_hard_ratio

    signals = []
    if pain_flag:
        signals.append("Pain reported in the last week")
    if fatigue_flag:
        signals.append(f"High share of hard ratings: {hard_ratio*100:.0f}%")
    if rate < 0.5:
        signals.append(f"Low compliance: {completed}/{days_per_week} sessions")

    return WeeklySignals(
        compliance_rate=rate,
        pain_flag=pain_flag,
        fatigue_flag=fatigue_flag,
        completed_sessions=completed,
        feedback_samples=len(ratings),
        hard_ratio=hard_ratio,
        signals=signals,
    )
