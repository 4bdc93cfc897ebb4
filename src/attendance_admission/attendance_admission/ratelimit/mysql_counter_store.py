from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from ..core.enums import EndpointClass
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import RateWindowRecord

_COLUMNS = "identifier, endpoint_class, request_count, window_start_ms, last_seen_ms, locked_out, lockout_until_ms"


def _row_to_record(row: Dict[str, Any]) -> RateWindowRecord:
    return RateWindowRecord(
        identifier=str(row["identifier"]),
        endpoint_class=EndpointClass(row["endpoint_class"]),
        count=int(row["request_count"]),
        window_start_ms=int(row["window_start_ms"]),
        last_seen_ms=int(row["last_seen_ms"]),
        locked_out=bool(row["locked_out"]),
        lockout_until_ms=int(row["lockout_until_ms"]) if row.get("lockout_until_ms") is not None else None,
    )


class MySQLCounterStore:
    """Counter state shared by every process pointed at the same database.

    ``locked`` holds the row lock (``SELECT ... FOR UPDATE``) for the whole
    read-modify-write, so concurrent hits on one key serialize in MySQL.
    """

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @contextmanager
    def locked(self, identifier: str, endpoint_class: EndpointClass) -> Iterator[RateWindowRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT IGNORE INTO rate_windows(identifier, endpoint_class, request_count, window_start_ms, last_seen_ms)
                VALUES(%s,%s,0,0,0)
                """,
                (identifier, endpoint_class.value),
            )
            cur.execute(
                f"SELECT {_COLUMNS} FROM rate_windows WHERE identifier=%s FOR UPDATE",
                (identifier,),
            )
            record = _row_to_record(fetchone(cur))
            yield record
            cur.execute(
                """
                UPDATE rate_windows
                SET request_count=%s, window_start_ms=%s, last_seen_ms=%s, locked_out=%s, lockout_until_ms=%s
                WHERE identifier=%s
                """,
                (
                    record.count,
                    record.window_start_ms,
                    record.last_seen_ms,
                    1 if record.locked_out else 0,
                    record.lockout_until_ms,
                    identifier,
                ),
            )

    def peek(self, identifier: str) -> Optional[RateWindowRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM rate_windows WHERE identifier=%s", (identifier,))
            row = fetchone(cur)
        return _row_to_record(row) if row else None

    def sweep(self, endpoint_class: EndpointClass, stale_before_ms: int, now_ms: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                DELETE FROM rate_windows
                WHERE endpoint_class=%s AND (
                    (locked_out=0 AND last_seen_ms < %s)
                    OR (locked_out=1 AND (lockout_until_ms IS NULL OR lockout_until_ms <= %s))
                )
                """,
                (endpoint_class.value, stale_before_ms, now_ms),
            )
            return int(cur.rowcount or 0)

    def records(self) -> List[RateWindowRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM rate_windows ORDER BY last_seen_ms DESC")
            return [_row_to_record(r) for r in fetchall(cur)]
