"""Tests for the local store, program progress and history analytics."""

from datetime import timedelta

import pytest

from bodycoach.history import (
    current_progress,
    derive_progress,
    next_day_after,
    personal_records,
    record_completion,
    start_session,
    top_exercises,
    volume_by_date,
)
from bodycoach.models import Felt, Prefs, SessionRecord, format_iso
from bodycoach.store import PROGRAMS, SCHEMA_VERSION, SESSIONS

from conftest import NOW, make_log, weighted_log


def _session(session_id, day_index, completed_at=None, program_id="program-1", deleted=False):
    stamp = format_iso(completed_at or NOW)
    return SessionRecord(
        id=session_id,
        created_at=stamp,
        updated_at=stamp,
        started_at=stamp,
        completed_at=format_iso(completed_at) if completed_at else None,
        routine_id=program_id,
        notes=SessionRecord.notes_for_day(day_index),
        deleted_at=stamp if deleted else None,
    )


def test_program_round_trip(store, program):
    store.save_program(program)
    loaded = store.get_program(program.id)
    assert loaded.to_dict() == program.to_dict()
    assert store.get_latest_program().id == program.id


def test_soft_deleted_records_are_hidden(store, program):
    store.save_program(program)
    record = program.to_dict()
    record["deletedAt"] = format_iso(NOW)
    store.put_records(PROGRAMS, [record])

    assert store.get_program(program.id) is None
    assert store.get_latest_program() is None
    assert store.list_all_programs() == []
    assert program.id in store.raw_records(PROGRAMS)


def test_sessions_listed_newest_first(store):
    for i in range(3):
        store.create_session(_session(f"s{i}", 0, completed_at=NOW + timedelta(hours=i)))
    store.create_session(_session("gone", 0, completed_at=NOW + timedelta(days=1), deleted=True))

    assert [s.id for s in store.list_sessions()] == ["s2", "s1", "s0"]
    assert [s.id for s in store.list_sessions(limit=1)] == ["s2"]
    assert store.get_session("gone") is None


def test_sessions_by_program_day(store):
    store.create_session(_session("a", 0, completed_at=NOW))
    store.create_session(_session("b", 1, completed_at=NOW))
    store.create_session(_session("c", 0, completed_at=NOW, program_id="other"))

    assert {s.id for s in store.list_sessions_by_program_id("program-1")} == {"a", "b"}
    assert [s.id for s in store.list_sessions_by_program_day("program-1", 0)] == ["a"]


def test_exercise_logs_queries(store):
    store.save_exercise_logs([
        make_log("pushup", log_id="l1", session_id="s1", when=NOW),
        make_log("pushup", log_id="l2", session_id="s2", when=NOW + timedelta(hours=1)),
        make_log("dead-bug", log_id="l3", session_id="s2", when=NOW),
    ])

    assert [log.id for log in store.list_exercise_logs_by_exercise("pushup")] == ["l2", "l1"]
    assert store.get_latest_exercise_log("pushup").id == "l2"
    assert store.get_latest_exercise_log("squat") is None
    assert {log.id for log in store.list_exercise_logs_by_session("s2")} == {"l2", "l3"}


def test_prefs_default_and_save(store):
    prefs = store.load_prefs()
    assert prefs.schema_version == SCHEMA_VERSION
    assert prefs.feedback_by_exercise == {}

    prefs.substitution_by_exercise["dumbbell-rows"] = "band-rows"
    store.save_prefs(prefs)
    assert store.load_prefs() == prefs
    assert isinstance(store.load_prefs(), Prefs)


def test_writes_leave_no_temp_files(store, program):
    store.save_program(program)
    store.save_program(program)
    assert sorted(p.name for p in store.data_dir.iterdir()) == ["programs.json"]


@pytest.mark.parametrize("day,days,expected", [(None, 3, 0), (0, 3, 1), (2, 3, 0), (3, 5, 4), (4, 5, 0)])
def test_next_day_after(day, days, expected):
    assert next_day_after(day, days) == expected


def test_derive_progress_uses_most_recent_completion(program):
    sessions = [
        _session("a", 2, completed_at=NOW - timedelta(days=2)),
        _session("b", 0, completed_at=NOW - timedelta(days=1)),
        _session("open", 1),
        _session("other", 1, completed_at=NOW, program_id="other"),
        _session("gone", 1, completed_at=NOW, deleted=True),
    ]
    progress = derive_progress(program, sessions, now=NOW)
    assert progress.last_completed_day_index == 0
    assert progress.next_day_index == 1
    assert progress.completed_day_indices == [0, 2]


def test_derive_progress_wraps_and_starts_at_zero(program):
    wrapped = derive_progress(program, [_session("a", 2, completed_at=NOW)], now=NOW)
    assert wrapped.next_day_index == 0

    fresh = derive_progress(program, [], now=NOW)
    assert fresh.last_completed_day_index is None
    assert fresh.next_day_index == 0
    assert fresh.completed_day_indices == []


def test_record_completion(store, program):
    store.save_program(program)
    session = start_session(store, program, 1, now=NOW)
    log = make_log("pushup", session_id="placeholder", reps=10, sets_completed=3, felt=Felt.EASY)

    progress = record_completion(
        store, program, session, [log], feedback=Felt.MODERATE, now=NOW + timedelta(minutes=40),
    )

    saved = store.get_session(session.id)
    assert saved.completed_at == format_iso(NOW + timedelta(minutes=40))
    assert saved.duration_sec == 2400
    assert saved.feedback == Felt.MODERATE
    assert saved.day_index == 1

    stored_log = store.list_exercise_logs_by_session(session.id)[0]
    assert stored_log.program_id == program.id
    assert stored_log.day_index == 1

    assert progress.last_completed_day_index == 1
    assert progress.next_day_index == 2
    assert store.get_program_progress(program.id) == progress


def test_current_progress_rebuilds_from_sessions(store, program):
    store.create_session(_session("a", 1, completed_at=NOW, program_id=program.id))
    progress = current_progress(store, program)
    assert progress.next_day_index == 2
    assert store.get_program_progress(program.id) is not None


def test_current_progress_replaces_stale_cache(store, program):
    store.save_program_progress(derive_progress(program, [], now=NOW))
    assert current_progress(store, program).next_day_index == 0

    store.create_session(_session("a", 1, completed_at=NOW, program_id=program.id))
    progress = current_progress(store, program)
    assert progress.last_completed_day_index == 1
    assert progress.next_day_index == 2
    assert store.get_program_progress(program.id).next_day_index == 2


def test_personal_records():
    logs = [
        weighted_log(50, log_id="a", reps_by_set=[10, 10, 10], sets_completed=3),
        weighted_log(55, log_id="b", reps=8, sets_completed=3, when=NOW + timedelta(days=2)),
        make_log("pushup", log_id="c", reps=12),
    ]
    records = personal_records(logs)

    rows = records["dumbbell-rows"]
    assert rows.max_weight == 55
    assert rows.max_volume == 1500
    assert rows.max_reps == 30
    assert rows.last_performed == format_iso(NOW + timedelta(days=2))

    pushup = records["pushup"]
    assert pushup.max_weight is None
    assert pushup.max_volume is None
    assert pushup.max_reps == 12


def test_volume_by_date():
    logs = [
        weighted_log(50, log_id="a", reps=10, sets_completed=3),
        weighted_log(20, log_id="b", reps=10, sets_completed=1, when=NOW + timedelta(hours=2)),
        weighted_log(60, log_id="c", reps=5, sets_completed=2, when=NOW + timedelta(days=1)),
        make_log("pushup", log_id="d", reps=12),
    ]
    trend = volume_by_date(logs)
    assert list(trend.values) == [1700.0, 600.0]
    assert trend.name == "volume"

    assert volume_by_date(logs, exercise_id="pushup").empty
    assert volume_by_date([]).empty


def test_top_exercises():
    logs = [
        make_log("pushup", log_id="a"),
        make_log("pushup", log_id="b"),
        make_log("dead-bug", log_id="c"),
    ]
    assert top_exercises(logs) == [
        {"exercise_id": "pushup", "count": 2},
        {"exercise_id": "dead-bug", "count": 1},
    ]
    assert top_exercises([]) == []
