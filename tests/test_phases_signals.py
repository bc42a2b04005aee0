"""Tests for phase planning and weekly signals."""

from datetime import timedelta

import pytest

from bodycoach.coaching.phases import PhasePlanner, next_week_plan, phase_for, week_index_for
from bodycoach.coaching.signals import WeeklySignals, compliance_rate, compute_signals
from bodycoach.models import Felt, SessionRecord, format_iso

from conftest import NOW, make_log


@pytest.mark.parametrize("week,name,week_count", [
    (-3, "Phase 1: Restore & Control", 2),
    (1, "Phase 1: Restore & Control", 2),
    (2, "Phase 1: Restore & Control", 2),
    (3, "Phase 2: Strength & Capacity", 4),
    (6, "Phase 2: Strength & Capacity", 4),
    (7, "Phase 3: Performance & Aesthetics", 0),
    (30, "Phase 3: Performance & Aesthetics", 0),
])
def test_phase_for_week(week, name, week_count):
    phase = phase_for(week)
    assert phase.name == name
    assert phase.week_count == week_count
    assert phase.week_index == max(1, week)


def test_phase_goal_defaults_and_overrides():
    assert phase_for(1).goal == "mobility, activation, motor control, pain reduction"
    assert phase_for(1, "").goal == "mobility, activation, motor control, pain reduction"
    assert phase_for(4, "Build strength").goal == "Build strength"


def test_next_week_plan_priority():
    pain = next_week_plan(1.0, pain_flag=True, fatigue_flag=True, phase_name="Phase 2")
    assert pain.summary == "Next week: regress intensity and prioritize comfortable movement."

    fatigue = next_week_plan(1.0, pain_flag=False, fatigue_flag=True, phase_name="Phase 2")
    assert fatigue.summary == "Next week: hold load and focus on control."

    progress = next_week_plan(0.75, pain_flag=False, fatigue_flag=False, phase_name="Phase 2")
    assert progress.summary == "Next week: progress one variable on 1-2 lifts."
    assert progress.reason == "Strong compliance in Phase 2."

    repeat = next_week_plan(0.74, pain_flag=False, fatigue_flag=False, phase_name="Phase 2")
    assert repeat.summary == "Next week: repeat this week and build consistency."


def test_week_index_counts_whole_weeks(program):
    assert week_index_for(program, NOW) == 1
    assert week_index_for(program, NOW + timedelta(days=6, hours=23)) == 1
    assert week_index_for(program, NOW + timedelta(days=7)) == 2
    assert week_index_for(program, NOW + timedelta(days=15)) == 3
    assert week_index_for(program, NOW - timedelta(days=3)) == 1


def test_advance_moves_phase_and_plan(program):
    later = NOW + timedelta(days=15)
    signals = WeeklySignals(compliance_rate=1.0, pain_flag=False, fatigue_flag=False)

    PhasePlanner().advance(program, signals, later)

    assert program.phase.name == "Phase 2: Strength & Capacity"
    assert program.phase.week_index == 3
    assert program.phase.goal == "Improve posture"
    assert program.next_week_plan.reason == "Strong compliance in Phase 2: Strength & Capacity."
    assert program.updated_at == format_iso(later)


def _session(session_id, days_ago=1, completed=True, feedback=None, deleted=False):
    when = format_iso(NOW - timedelta(days=days_ago))
    return SessionRecord(
        id=session_id,
        created_at=when,
        updated_at=when,
        started_at=when,
        completed_at=when if completed else None,
        routine_id="program-1",
        notes=SessionRecord.notes_for_day(0),
        feedback=feedback,
        deleted_at=when if deleted else None,
    )


def test_compliance_rate_is_capped():
    assert compliance_rate(2, 4) == 0.5
    assert compliance_rate(6, 3) == 1.0
    assert compliance_rate(1, 0) == 0.0


def test_only_recent_completed_sessions_count():
    sessions = [
        _session("a", days_ago=1),
        _session("b", days_ago=6),
        _session("old", days_ago=8),
        _session("open", days_ago=1, completed=False),
        _session("gone", days_ago=1, deleted=True),
    ]
    signals = compute_signals(sessions, [], days_per_week=3, now=NOW)
    assert signals.completed_sessions == 2
    assert signals.compliance_rate == pytest.approx(2 / 3)
    assert signals.pain_flag is False
    assert signals.fatigue_flag is False


def test_any_pain_rating_sets_pain_flag():
    logs = [make_log("pushup", when=NOW - timedelta(days=2), felt=Felt.PAIN)]
    signals = compute_signals([], logs, days_per_week=3, now=NOW)
    assert signals.pain_flag is True
    assert "Pain reported in the last week" in signals.signals


def test_old_pain_is_ignored():
    logs = [make_log("pushup", when=NOW - timedelta(days=9), felt=Felt.PAIN)]
    assert compute_signals([], logs, days_per_week=3, now=NOW).pain_flag is False


def test_fatigue_needs_enough_samples():
    two_hard = [_session("a", feedback=Felt.HARD), _session("b", feedback=Felt.HARD)]
    assert compute_signals(two_hard, [], days_per_week=3, now=NOW).fatigue_flag is False

    logs = [make_log("pushup", log_id="l1", when=NOW - timedelta(days=1), felt=Felt.EASY)]
    signals = compute_signals(two_hard, logs, days_per_week=3, now=NOW)
    assert signals.feedback_samples == 3
    assert signals.hard_ratio == pytest.approx(2 / 3)
    assert signals.fatigue_flag is True


def test_mostly_easy_ratings_are_not_fatigue():
    sessions = [
        _session("a", feedback=Felt.HARD),
        _session("b", feedback=Felt.EASY),
        _session("c", feedback=Felt.EASY),
        _session("d", feedback=Felt.MODERATE),
    ]
    signals = compute_signals(sessions, [], days_per_week=4, now=NOW)
    assert signals.fatigue_flag is False
    assert signals.compliance_rate == 1.0
    assert signals.signals == []


def test_low_compliance_signal():
    signals = compute_signals([_session("a")], [], days_per_week=3, now=NOW)
    assert "Low compliance: 1/3 sessions" in signals.signals
