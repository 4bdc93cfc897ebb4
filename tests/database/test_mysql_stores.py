from __future__ import annotations

from datetime import datetime, timezone

import pytest
from mysql.connector import errors as mysql_errors

from src.attendance_admission.attendance_admission.core.enums import EndpointClass
from src.attendance_admission.attendance_admission.core.exceptions import CollaboratorUnavailable, LedgerInvariantError
from src.attendance_admission.attendance_admission.ratelimit.mysql_counter_store import MySQLCounterStore
from src.attendance_admission.attendance_admission.sessions.model import AttendanceSession
from src.attendance_admission.attendance_admission.sessions.mysql_session_repository import MySQLSessionStore
from src.attendance_admission.attendance_admission.sessions.repository import OpenSessionConflict

START = datetime(2024, 3, 4, 1, 0)
END = datetime(2024, 3, 4, 2, 0, tzinfo=timezone.utc)
GENERAL = EndpointClass.GENERAL


class ScriptedCursor:
    def __init__(self, db):
        self._db = db
        self._rows = []
        self.rowcount = 0

    def execute(self, sql, params=()):
        self._db.executed.append((" ".join(sql.split()), tuple(params)))
        step = self._db.steps.pop(0)
        if isinstance(step, Exception):
            raise step
        self._rows, self.rowcount = step

    def fetchone(self):
        return self._rows[0] if self._rows else None

    def fetchall(self):
        return list(self._rows)

    def close(self):
        pass


class ScriptedConnection:
    def __init__(self, db):
        self._db = db

    def cursor(self, dictionary=True):
        return ScriptedCursor(self._db)

    def commit(self):
        self._db.commits += 1

    def rollback(self):
        self._db.rollbacks += 1

    def close(self):
        pass


class ScriptedDatabase:
    """Stands in for DatabaseConnection; each execute consumes one step.

    A step is ``(rows, rowcount)`` or an exception to raise.
    """

    def __init__(self, *steps, connect_error=None):
        self.steps = list(steps)
        self.connect_error = connect_error
        self.executed = []
        self.commits = 0
        self.rollbacks = 0

    def connect(self):
        if self.connect_error is not None:
            raise self.connect_error
        return ScriptedConnection(self)


def _session_row(session_id="s-1", end_time=None, total_seconds=None, end_evidence=None):
    return {
        "session_id": session_id,
        "user_id": "emp-1",
        "location_id": "loc-1",
        "start_time": START,
        "end_time": end_time,
        "start_evidence": "checkin/emp-1/a.jpg",
        "end_evidence": end_evidence,
        "break_seconds": 0,
        "total_seconds": total_seconds,
        "note": None,
        "created_at": START,
    }


def _rate_row(**overrides):
    row = {
        "identifier": "1.2.3.4|general",
        "endpoint_class": "general",
        "request_count": 2,
        "window_start_ms": 1_000,
        "last_seen_ms": 2_000,
        "locked_out": 0,
        "lockout_until_ms": None,
    }
    row.update(overrides)
    return row


def _close(store, session_id=None):
    return store.close_open(
        user_id="emp-1",
        end_time=END,
        end_evidence="checkout/emp-1/b.jpg",
        total_seconds=lambda session, end: 3600,
        session_id=session_id,
    )


def test_duplicate_key_becomes_conflict_with_existing_session():
    db = ScriptedDatabase(
        mysql_errors.IntegrityError(msg="Duplicate entry 'emp-1'", errno=1062),
        ([_session_row("s-open")], 1),
    )
    candidate = AttendanceSession(
        session_id="s-new", user_id="emp-1", location_id="loc-1", start_time=END, created_at=END
    )

    with pytest.raises(OpenSessionConflict) as info:
        MySQLSessionStore(db).insert_open(candidate)

    assert info.value.existing.session_id == "s-open"
    assert info.value.existing.start_time == START.replace(tzinfo=timezone.utc)
    assert db.rollbacks == 1
    assert db.executed[0][1][3] == END.replace(tzinfo=None)


def test_other_integrity_errors_propagate():
    db = ScriptedDatabase(mysql_errors.IntegrityError(msg="Cannot add a foreign key", errno=1452))
    candidate = AttendanceSession(
        session_id="s-new", user_id="emp-1", location_id="missing", start_time=END, created_at=END
    )

    with pytest.raises(mysql_errors.IntegrityError):
        MySQLSessionStore(db).insert_open(candidate)
    assert len(db.executed) == 1


def test_close_with_nothing_open_returns_none():
    db = ScriptedDatabase(([], 0))

    assert _close(MySQLSessionStore(db)) is None
    assert "FOR UPDATE" in db.executed[0][0]


def test_close_with_two_open_rows_is_an_invariant_error():
    db = ScriptedDatabase(([_session_row("s-1"), _session_row("s-2")], 2))

    with pytest.raises(LedgerInvariantError):
        _close(MySQLSessionStore(db))
    assert db.rollbacks == 1
    assert db.commits == 0


def test_close_losing_the_update_returns_none():
    db = ScriptedDatabase(([_session_row()], 1), ([], 0))

    assert _close(MySQLSessionStore(db), session_id="s-1") is None
    assert len(db.executed) == 2


def test_close_writes_naive_utc_and_reads_back():
    closed_row = _session_row(
        end_time=END.replace(tzinfo=None), total_seconds=3600, end_evidence="checkout/emp-1/b.jpg"
    )
    db = ScriptedDatabase(([_session_row()], 1), ([], 1), ([closed_row], 1))

    closed = _close(MySQLSessionStore(db))

    assert db.executed[1][1] == (END.replace(tzinfo=None), "checkout/emp-1/b.jpg", 3600, "s-1")
    assert closed.end_time == END
    assert closed.total_seconds == 3600
    assert closed.total_hours == 1.0
    assert db.commits == 1


def test_connection_failure_is_collaborator_unavailable():
    db = ScriptedDatabase(connect_error=mysql_errors.InterfaceError(msg="Can't connect", errno=2003))

    with pytest.raises(CollaboratorUnavailable):
        MySQLSessionStore(db).find_open("emp-1")


def test_counter_store_writes_the_mutated_record_back():
    db = ScriptedDatabase(([], 1), ([_rate_row()], 1), ([], 1))
    store = MySQLCounterStore(db)

    with store.locked("1.2.3.4|general", GENERAL) as record:
        assert record.count == 2
        record.count = 3
        record.last_seen_ms = 5_000
        record.locked_out = True
        record.lockout_until_ms = 65_000

    assert db.executed[0][0].startswith("INSERT IGNORE INTO rate_windows")
    assert db.executed[1][0].endswith("FOR UPDATE")
    assert db.executed[2][1] == (3, 1_000, 5_000, 1, 65_000, "1.2.3.4|general")
    assert db.commits == 1


def test_counter_store_rolls_back_when_the_block_fails():
    db = ScriptedDatabase(([], 1), ([_rate_row()], 1))
    store = MySQLCounterStore(db)

    with pytest.raises(RuntimeError):
        with store.locked("1.2.3.4|general", GENERAL) as record:
            record.count = 99
            raise RuntimeError("boom")

    assert len(db.executed) == 2
    assert db.rollbacks == 1
    assert db.commits == 0


def test_counter_store_sweep_passes_bounds_and_reports_rowcount():
    db = ScriptedDatabase(([], 4))

    removed = MySQLCounterStore(db).sweep(GENERAL, 10_000, 50_000)

    assert removed == 4
    assert db.executed[0][1] == ("general", 10_000, 50_000)
