"""
Local Training Store

Internal Codename: CYBERDYNE-CORE
JSON-file persistence for programs, sessions, exercise logs and preferences.

One file per collection under the data directory:
    programs.json, program_progress.json, sessions.json,
    exercise_logs.json, prefs.json

Collections are keyed by record id. Soft-deleted records (deletedAt set) stay
on disk but are hidden from every get/list call. Lists are newest first by
updatedAt.
"""

import json
import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from .models import (
    ExerciseLog,
    Prefs,
    Program,
    ProgramProgress,
    SessionRecord,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2

PROGRAMS = 'programs'
PROGRESS = 'program_progress'
SESSIONS = 'sessions'
EXERCISE_LOGS = 'exercise_logs'
PREFS = 'prefs'

T = TypeVar('T')


def new_id() -> str:
    """Random record id."""
    return str(uuid.uuid4())


class LocalStore:
    """
    Single-user JSON store.

    Every save rewrites its collection through a temp file and an atomic
    replace, so a crash never leaves a half-written file behind.
    """

    def __init__(self, data_dir):
        """
        Initialize the store.

        Args:
            data_dir: Directory for the collection files (created if missing)
        """
        self.data_dir = Path(data_dir).expanduser()
        self.data_dir.mkdir(parents=True, exist_ok=True)

    # -------------------------------------------------------------------------
    # File plumbing
    # -------------------------------------------------------------------------

    def _path(self, collection: str) -> Path:
        return self.data_dir / f"{collection}.json"

    def _read(self, collection: str) -> Dict[str, Any]:
        path = self._path(collection)
        if not path.exists():
            return {}
        with open(path, encoding='utf-8') as f:
            return json.load(f)

    def _write(self, collection: str, data: Dict[str, Any]) -> None:
        path = self._path(collection)
        fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{collection}.", suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def _put(self, collection: str, record_id: str, record: Dict[str, Any]) -> None:
        data = self._read(collection)
        data[record_id] = record
        self._write(collection, data)

    def put_records(self, collection: str, records: Iterable[Dict[str, Any]], key: str = 'id') -> None:
        data = self._read(collection)
        for record in records:
            data[record[key]] = record
        self._write(collection, data)

    def _live(self, collection: str, factory: Callable[[Dict[str, Any]], T]) -> List[T]:
        items = [
            factory(raw) for raw in self._read(collection).values()
            if not raw.get('deletedAt')
        ]
        items.sort(key=lambda item: item.updated_at or '', reverse=True)
        return items

    def raw_records(self, collection: str) -> Dict[str, Dict[str, Any]]:
        """All stored records of a collection, soft-deleted included."""
        return self._read(collection)

    # -------------------------------------------------------------------------
    # Programs
    # -------------------------------------------------------------------------

    def get_program(self, program_id: str) -> Optional[Program]:
        raw = self._read(PROGRAMS).get(program_id)
        if raw is None or raw.get('deletedAt'):
            return None
        return Program.from_dict(raw)

    def get_latest_program(self) -> Optional[Program]:
        programs = self.list_all_programs()
        return programs[0] if programs else None

    def save_program(self, program: Program) -> None:
        self._put(PROGRAMS, program.id, program.to_dict())
        logger.debug("Saved program %s", program.id)

    def list_all_programs(self) -> List[Program]:
        return self._live(PROGRAMS, Program.from_dict)

    # -------------------------------------------------------------------------
    # Program progress
    # -------------------------------------------------------------------------

    def get_program_progress(self, program_id: str) -> Optional[ProgramProgress]:
        raw = self._read(PROGRESS).get(program_id)
        return ProgramProgress.from_dict(raw) if raw else None

    def save_program_progress(self, progress: ProgramProgress) -> None:
        self._put(PROGRESS, progress.program_id, progress.to_dict())

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    def create_session(self, session: SessionRecord) -> SessionRecord:
        self._put(SESSIONS, session.id, session.to_dict())
        logger.debug("Created session %s", session.id)
        return session

    def update_session(self, session: SessionRecord) -> SessionRecord:
        self._put(SESSIONS, session.id, session.to_dict())
        return session

    def get_session(self, session_id: str) -> Optional[SessionRecord]:
        raw = self._read(SESSIONS).get(session_id)
        if raw is None or raw.get('deletedAt'):
            return None
        return SessionRecord.from_dict(raw)

    def list_sessions(self, limit: int = 20) -> List[SessionRecord]:
        return self._live(SESSIONS, SessionRecord.from_dict)[:limit]

    def list_sessions_by_program_id(self, program_id: str, limit: int = 500) -> List[SessionRecord]:
        return [s for s in self.list_sessions(limit) if s.routine_id == program_id]

    def list_sessions_by_program_day(self, program_id: str, day_index: int) -> List[SessionRecord]:
        return [
            s for s in self.list_sessions_by_program_id(program_id)
            if s.day_index == day_index
        ]

    # -------------------------------------------------------------------------
    # Exercise logs
    # -------------------------------------------------------------------------

    def save_exercise_log(self, log: ExerciseLog) -> ExerciseLog:
        self._put(EXERCISE_LOGS, log.id, log.to_dict())
        return log

    def save_exercise_logs(self, logs: Iterable[ExerciseLog]) -> None:
        self.put_records(EXERCISE_LOGS, (log.to_dict() for log in logs))

    def list_exercise_logs_by_exercise(self, exercise_id: str, limit: int = 10) -> List[ExerciseLog]:
        logs = [log for log in self.list_all_exercise_logs() if log.exercise_id == exercise_id]
        return logs[:limit]

    def get_latest_exercise_log(self, exercise_id: str) -> Optional[ExerciseLog]:
        logs = self.list_exercise_logs_by_exercise(exercise_id, limit=1)
        return logs[0] if logs else None

    def list_exercise_logs_by_session(self, session_id: str) -> List[ExerciseLog]:
        return self.list_exercise_logs_by_session_ids([session_id])

    def list_exercise_logs_by_session_ids(self, session_ids: Iterable[str]) -> List[ExerciseLog]:
        wanted = set(session_ids)
        return [log for log in self.list_all_exercise_logs() if log.session_id in wanted]

    def list_exercise_logs_by_program_day(self, program_id: str, day_index: int) -> List[ExerciseLog]:
        sessions = self.list_sessions_by_program_day(program_id, day_index)
        return self.list_exercise_logs_by_session_ids(s.id for s in sessions)

    def list_all_exercise_logs(self) -> List[ExerciseLog]:
        return self._live(EXERCISE_LOGS, ExerciseLog.from_dict)

    # -------------------------------------------------------------------------
    # Preferences
    # -------------------------------------------------------------------------

    def load_prefs(self) -> Prefs:
        raw = self._read(PREFS)
        if not raw:
            return Prefs(schema_version=SCHEMA_VERSION)
        return Prefs.from_dict(raw)

    def save_prefs(self, prefs: Prefs) -> None:
        self._write(PREFS, prefs.to_dict())
