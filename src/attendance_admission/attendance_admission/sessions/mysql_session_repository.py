from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from ..core.exceptions import LedgerInvariantError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import AttendanceSession
from .repository import OpenSessionConflict, SessionStore, TotalSeconds

logger = logging.getLogger(__name__)

_COLUMNS = (
    "session_id, user_id, location_id, start_time, end_time, start_evidence, end_evidence, "
    "break_seconds, total_seconds, note, created_at"
)


def _to_db(value: Optional[datetime]) -> Optional[datetime]:
    # DATETIME columns hold naive UTC.
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _from_db(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc)


def _to_session(r: dict) -> AttendanceSession:
    return AttendanceSession(
        session_id=str(r["session_id"]),
        user_id=str(r["user_id"]),
        location_id=str(r["location_id"]),
        start_time=_from_db(r["start_time"]),
        end_time=_from_db(r.get("end_time")),
        start_evidence=r.get("start_evidence"),
        end_evidence=r.get("end_evidence"),
        break_seconds=int(r.get("break_seconds") or 0),
        total_seconds=None if r.get("total_seconds") is None else int(r["total_seconds"]),
        note=r.get("note"),
        created_at=_from_db(r["created_at"]),
    )


class MySQLSessionStore(SessionStore):
    """time_entries access.

    The one-open-session rule is the ``uq_time_entries_one_open`` unique index
    on the generated ``open_user_id`` column; this class never checks before
    writing.
    """

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def insert_open(self, session: AttendanceSession) -> None:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO time_entries(
                        session_id, user_id, location_id, start_time, start_evidence,
                        break_seconds, note, created_at
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        session.session_id,
                        session.user_id,
                        session.location_id,
                        _to_db(session.start_time),
                        session.start_evidence,
                        int(session.break_seconds),
                        session.note,
                        _to_db(session.created_at),
                    ),
                )
        except Exception as exc:
            if not is_duplicate_key(exc):
                raise
            existing = self.find_open(session.user_id)
            raise OpenSessionConflict(existing[0] if existing else None) from exc

    def close_open(
        self,
        *,
        user_id: str,
        end_time: datetime,
        end_evidence: Optional[str],
        total_seconds: TotalSeconds,
        session_id: Optional[str] = None,
    ) -> Optional[AttendanceSession]:
        clauses = ["user_id=%s", "end_time IS NULL"]
        params: list[object] = [str(user_id)]
        if session_id is not None:
            clauses.append("session_id=%s")
            params.append(str(session_id))
        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM time_entries WHERE {where} FOR UPDATE", tuple(params))
            rows = fetchall(cur)
            if not rows:
                return None
            if len(rows) > 1:
                raise LedgerInvariantError(f"user {user_id} has {len(rows)} open sessions")

            current = _to_session(rows[0])
            seconds = int(total_seconds(current, end_time))
            cur.execute(
                """
                UPDATE time_entries
                SET end_time=%s, end_evidence=%s, total_seconds=%s
                WHERE session_id=%s AND end_time IS NULL
                """,
                (_to_db(end_time), end_evidence, seconds, current.session_id),
            )
            if cur.rowcount != 1:
                return None

            cur.execute(f"SELECT {_COLUMNS} FROM time_entries WHERE session_id=%s", (current.session_id,))
            return _to_session(fetchone(cur))

    def find_open(self, user_id: str) -> Sequence[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM time_entries WHERE user_id=%s AND end_time IS NULL ORDER BY start_time DESC",
                (str(user_id),),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def list_open(self, *, limit: int = 200) -> Sequence[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM time_entries WHERE end_time IS NULL ORDER BY start_time ASC LIMIT %s",
                (int(limit),),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def list_closed_between(self, user_id: str, start: datetime, end: datetime) -> Sequence[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM time_entries
                WHERE user_id=%s AND end_time IS NOT NULL AND start_time >= %s AND start_time < %s
                ORDER BY start_time DESC
                """,
                (str(user_id), _to_db(start), _to_db(end)),
            )
            return [_to_session(r) for r in fetchall(cur)]
