from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errors as mysql_errors

from ..core.constants import MYSQL_DUPLICATE_KEY
from ..core.exceptions import CollaboratorUnavailable
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)

# Connection loss, timeouts and server-side failures; integrity and
# programming errors are not in this list and propagate unchanged.
_TRANSIENT_ERRORS = (
    mysql_errors.InterfaceError,
    mysql_errors.OperationalError,
    mysql_errors.InternalError,
)


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Yield ``(conn, cursor)`` inside one transaction.

    Commits on success, rolls back on any error. Driver-level transient
    failures are re-raised as ``CollaboratorUnavailable``.
    """
    try:
        conn = conn_factory.connect()
    except _TRANSIENT_ERRORS as exc:
        logger.error("database connect failed: %s", exc, exc_info=True)
        raise CollaboratorUnavailable("database", str(exc)) from exc

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except _TRANSIENT_ERRORS as exc:
        _safe_rollback(conn)
        logger.error("database operation failed: %s", exc, exc_info=True)
        raise CollaboratorUnavailable("database", str(exc)) from exc
    except Exception:
        _safe_rollback(conn)
        raise
    finally:
        conn.close()


def _safe_rollback(conn) -> None:
    try:
        conn.rollback()
    except mysql.connector.Error:
        logger.warning("rollback failed on a broken connection", exc_info=True)


def is_duplicate_key(exc: BaseException) -> bool:
    return isinstance(exc, mysql_errors.IntegrityError) and getattr(exc, "errno", None) == MYSQL_DUPLICATE_KEY


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])
