"""
Backup Export / Import

Internal Codename: SKYNET-READER
Portable JSON bundle of the local store:

    {schemaVersion, exportedAt, sessions, exerciseLogs, programs, prefs}

Import merges record by record: an incoming record replaces the stored one
only when its updatedAt is strictly newer, so re-importing the same bundle
changes nothing.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .errors import InvalidBundleError, SchemaVersionError
from .models import ExerciseLog, Prefs, Program, SessionRecord, format_iso
from .store import EXERCISE_LOGS, PROGRAMS, SCHEMA_VERSION, SESSIONS, LocalStore

logger = logging.getLogger(__name__)

SESSION_REQUIRED = ('id', 'createdAt', 'updatedAt')
LOG_REQUIRED = ('id', 'sessionId', 'exerciseId', 'createdAt', 'updatedAt')
PROGRAM_REQUIRED = ('id', 'createdAt', 'updatedAt')


@dataclass
class ImportResult:
    """Records written per collection, plus records skipped as invalid."""
    sessions: int = 0
    exercise_logs: int = 0
    programs: int = 0
    prefs_replaced: bool = False
    skipped: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sessions': self.sessions,
            'exerciseLogs': self.exercise_logs,
            'programs': self.programs,
            'prefsReplaced': self.prefs_replaced,
            'skipped': self.skipped,
        }


def export_bundle(store: LocalStore, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Snapshot the store as an export bundle.

    Soft-deleted records are included so deletions survive a restore.
    """
    prefs = store.load_prefs()
    return {
        'schemaVersion': prefs.schema_version or SCHEMA_VERSION,
        'exportedAt': format_iso(now or datetime.now(timezone.utc)),
        'sessions': list(store.raw_records(SESSIONS).values()),
        'exerciseLogs': list(store.raw_records(EXERCISE_LOGS).values()),
        'programs': list(store.raw_records(PROGRAMS).values()),
        'prefs': prefs.to_dict(),
    }


def _valid_records(
    items: List[Any],
    required: tuple,
    factory: Callable[[Dict[str, Any]], Any]
) -> List[Dict[str, Any]]:
    valid = []
    for item in items:
        if not isinstance(item, dict) or not all(item.get(key) for key in required):
            continue
        try:
            factory(item)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping unreadable record %s: %s", item.get('id'), e)
            continue
        valid.append(item)
    return valid


def _newer(incoming: List[Dict[str, Any]], existing: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Incoming records that are new or strictly newer than the stored copy."""
    winners = {}
    for record in incoming:
        current = winners.get(record['id']) or existing.get(record['id'])
        if current is None or record['updatedAt'] > current.get('updatedAt', ''):
            winners[record['id']] = record
    return list(winners.values())


def import_bundle(store: LocalStore, payload: Any) -> ImportResult:
    """
    Merge an export bundle into the store.

    The whole bundle is validated before anything is written; on error the
    store is left untouched.

    Args:
        store: Destination store
        payload: Parsed bundle

    Returns:
        ImportResult with counts of records written

    Raises:
        InvalidBundleError: Missing schemaVersion, sessions or exerciseLogs
            arrays, or unreadable prefs
        SchemaVersionError: schemaVersion differs from SCHEMA_VERSION
    """
    if (
        not isinstance(payload, dict)
        or not payload.get('schemaVersion')
        or not isinstance(payload.get('sessions'), list)
        or not isinstance(payload.get('exerciseLogs'), list)
    ):
        raise InvalidBundleError()

    if payload['schemaVersion'] != SCHEMA_VERSION:
        raise SchemaVersionError(SCHEMA_VERSION, payload['schemaVersion'])

    programs_raw = payload.get('programs') or []
    if not isinstance(programs_raw, list):
        raise InvalidBundleError()

    sessions = _valid_records(payload['sessions'], SESSION_REQUIRED, SessionRecord.from_dict)
    logs = _valid_records(payload['exerciseLogs'], LOG_REQUIRED, ExerciseLog.from_dict)
    programs = _valid_records(programs_raw, PROGRAM_REQUIRED, Program.from_dict)

    prefs = None
    if payload.get('prefs'):
        try:
            prefs = Prefs.from_dict(payload['prefs'])
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise InvalidBundleError() from e

    result = ImportResult(
        skipped=(
            len(payload['sessions']) - len(sessions)
            + len(payload['exerciseLogs']) - len(logs)
            + len(programs_raw) - len(programs)
        )
    )

    sessions = _newer(sessions, store.raw_records(SESSIONS))
    logs = _newer(logs, store.raw_records(EXERCISE_LOGS))
    programs = _newer(programs, store.raw_records(PROGRAMS))

    if sessions:
        store.put_records(SESSIONS, sessions)
    if logs:
        store.put_records(EXERCISE_LOGS, logs)
    if programs:
        store.put_records(PROGRAMS, programs)
    if prefs is not None:
        store.save_prefs(prefs)

    result.sessions = len(sessions)
    result.exercise_logs = len(logs)
    result.programs = len(programs)
    result.prefs_replaced = prefs is not None

    logger.info(
        "Imported %d sessions, %d logs, %d programs (%d skipped)",
        result.sessions, result.exercise_logs, result.programs, result.skipped
    )
    return result


def write_bundle(path, bundle: Dict[str, Any]) -> Path:
    """Write a bundle as pretty-printed JSON."""
    path = Path(path).expanduser()
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(bundle, f, indent=2)
    return path


def read_bundle(path) -> Dict[str, Any]:
    """
    Read a bundle file.

    Raises:
        InvalidBundleError: File is not valid JSON
    """
    path = Path(path).expanduser()
    try:
        with open(path, encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidBundleError() from e
