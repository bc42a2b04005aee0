"""Tests for the coach planner service."""

from datetime import timedelta

import pytest

from bodycoach.coaching.planner import CoachPlanner
from bodycoach.errors import CoachError
from bodycoach.models import Felt, LoadType, PainLocation

from conftest import NOW


@pytest.fixture
def planner(store, catalog):
    return CoachPlanner(store, catalog)


def test_require_program_without_one(planner):
    with pytest.raises(CoachError):
        planner.require_program()


def test_ensure_program_reuses_matching_program(planner, make_questionnaire):
    program, created = planner.ensure_program(make_questionnaire(), now=NOW)
    assert created is True

    again, created = planner.ensure_program(make_questionnaire(equipment=["bands"]), now=NOW)
    assert created is False
    assert again.id == program.id

    other, created = planner.ensure_program(make_questionnaire(days_per_week=4), now=NOW + timedelta(seconds=1))
    assert created is True
    assert other.id != program.id
    assert planner.require_program().id == other.id


def test_log_exercise_records_session_and_progress(planner, make_questionnaire):
    planner.ensure_program(make_questionnaire(), now=NOW)

    log, result = planner.log_exercise(
        "doorway-row", reps=10, sets_completed=3, felt=Felt.EASY, now=NOW,
    )

    assert log.day_index == 0
    assert log.load_type == LoadType.BODYWEIGHT
    assert log.sets_planned == 4
    assert result.recommended_next.reps == 11

    program = planner.require_program()
    assert planner.progress(program).next_day_index == 1
    assert planner.next_day(program).title == "Full Body B"
    assert planner.store.load_prefs().feedback_by_exercise["doorway-row"].rating == Felt.EASY


def test_log_weighted_exercise(planner, make_questionnaire):
    planner.ensure_program(make_questionnaire(equipment=["dumbbells"]), now=NOW)

    log, result = planner.log_exercise(
        "dumbbell-rows", weight=50, reps_by_set=[12, 12, 12, 12], felt=Felt.MODERATE, now=NOW,
    )

    assert log.weight == 50
    assert log.sets_completed == 4
    assert log.computed_volume == 2400
    assert result.recommended_next.weight == 55
    assert result.recommended_next.reps == 8
    assert result.recommended_next.sets == 3


def test_log_without_rating_clears_saved_feedback(planner, make_questionnaire):
    planner.ensure_program(make_questionnaire(), now=NOW)
    planner.log_exercise(
        "bird-dog", reps=8, sets_completed=2, felt=Felt.PAIN,
        pain_location=PainLocation.LOWER_BACK, now=NOW,
    )
    assert planner.recommend("bird-dog").safety_flag is True

    planner.log_exercise("bird-dog", reps=8, sets_completed=2, now=NOW + timedelta(minutes=5))
    assert "bird-dog" not in planner.store.load_prefs().feedback_by_exercise
    assert planner.recommend("bird-dog").safety_flag is False


def test_log_errors(planner, make_questionnaire):
    with pytest.raises(CoachError):
        planner.log_exercise("pushup", reps=10)

    planner.ensure_program(make_questionnaire(), now=NOW)
    with pytest.raises(CoachError):
        planner.log_exercise("moonwalk", reps=10)
    with pytest.raises(CoachError):
        planner.log_exercise("pushup", reps=10, day_index=7)


def test_recommend_without_history(planner):
    result = planner.recommend("pushup")
    assert result.reason.startswith("No history yet")
    with pytest.raises(CoachError):
        planner.recommend("moonwalk")


def test_substitution_is_found_in_program(planner, make_questionnaire):
    program, _ = planner.ensure_program(make_questionnaire(), now=NOW)
    planner.set_substitution("doorway-row", "incline-pushup")

    day, item = planner.find_item(program, "incline-pushup")
    assert item.exercise_id == "doorway-row"

    log, _ = planner.log_exercise("incline-pushup", reps=10, sets_completed=3, now=NOW)
    assert log.original_exercise_id == "doorway-row"
    assert log.substituted_exercise_id == "incline-pushup"

    with pytest.raises(CoachError):
        planner.set_substitution("doorway-row", "moonwalk")


def test_refresh_phase_saves_plan(planner, make_questionnaire):
    program, _ = planner.ensure_program(make_questionnaire(), now=NOW)
    for i in range(3):
        planner.log_exercise("doorway-row", reps=10, sets_completed=3, felt=Felt.EASY,
                             now=NOW + timedelta(days=i))

    later = NOW + timedelta(days=3)
    program, signals = planner.refresh_phase(program, now=later)

    assert signals.completed_sessions == 3
    assert signals.compliance_rate == 1.0
    stored = planner.require_program()
    assert stored.next_week_plan.summary == "Next week: progress one variable on 1-2 lifts."
    assert stored.updated_at == program.updated_at
