"""Shared fixtures for bodycoach tests."""

from datetime import datetime, timezone

import pytest

from bodycoach.catalog import ExerciseCatalog
from bodycoach.coaching.program import ProgramBuilder
from bodycoach.models import ExerciseLog, Questionnaire, Weighted, format_iso
from bodycoach.store import LocalStore

NOW = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def catalog():
    return ExerciseCatalog.from_yaml()


@pytest.fixture
def store(tmp_path):
    return LocalStore(tmp_path / "data")


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def builder(catalog):
    return ProgramBuilder(catalog)


@pytest.fixture
def make_questionnaire():
    def _make(**overrides):
        values = dict(
            goals="Improve posture",
            pain_areas=[],
            experience="Beginner",
            equipment=["none"],
            days_per_week=3,
        )
        values.update(overrides)
        return Questionnaire(**values)
    return _make


@pytest.fixture
def program(builder, make_questionnaire):
    return builder.build(make_questionnaire(), "program-1", now=NOW)


def make_log(exercise_id="dumbbell-rows", when=NOW, log_id="log-1", **fields):
    """ExerciseLog with sensible defaults; `when` sets created/updated timestamps."""
    timestamp = format_iso(when)
    values = dict(
        id=log_id,
        session_id="session-1",
        exercise_id=exercise_id,
        created_at=timestamp,
        updated_at=timestamp,
    )
    values.update(fields)
    return ExerciseLog(**values)


def weighted_log(weight, **fields):
    return make_log(load=Weighted(weight=weight), **fields)
