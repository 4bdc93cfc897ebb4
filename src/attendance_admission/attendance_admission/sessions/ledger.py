from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence, Union

from ..common.datetime_utils import now_utc
from ..core.exceptions import LedgerInvariantError
from .model import AttendanceSession
from .repository import OpenSessionConflict, SessionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Begun:
    session: AttendanceSession


@dataclass(frozen=True)
class Closed:
    session: AttendanceSession


@dataclass(frozen=True)
class AlreadyOnDuty:
    """Conflict: the principal already holds an open session.

    Fields are None only when the conflicting session was closed between the
    rejected insert and the follow-up read.
    """

    session_id: Optional[str]
    start_time: Optional[datetime]


@dataclass(frozen=True)
class NotOnDuty:
    pass


BeginOutcome = Union[Begun, AlreadyOnDuty]
EndOutcome = Union[Closed, NotOnDuty]


def worked_seconds(session: AttendanceSession, end_time: datetime) -> int:
    """(end - start) - break, whole seconds, never below zero."""
    seconds = int((end_time - session.start_time).total_seconds())
    seconds -= int(session.break_seconds or 0)
    return max(seconds, 0)


class SessionLedger:
    """Sole writer of attendance sessions.

    Off -> On via ``begin``, On -> Off via ``end``. Both transitions are a
    single conditional write in the store; a lost race comes back as the same
    AlreadyOnDuty / NotOnDuty a sequential conflict would produce.
    """

    def __init__(
        self,
        store: SessionStore,
        *,
        clock: Callable[[], datetime] = now_utc,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self._store = store
        self._clock = clock
        self._new_id = id_factory

    def now(self) -> datetime:
        return self._clock()

    def begin(
        self,
        principal_id: str,
        location_id: str,
        evidence: Optional[str],
        *,
        note: Optional[str] = None,
    ) -> BeginOutcome:
        now = self._clock()
        session = AttendanceSession(
            session_id=self._new_id(),
            user_id=str(principal_id),
            location_id=str(location_id),
            start_time=now,
            created_at=now,
            start_evidence=evidence,
            note=note,
        )
        try:
            self._store.insert_open(session)
        except OpenSessionConflict as conflict:
            existing = conflict.existing
            logger.info("begin rejected: user=%s already on duty (session=%s)",
                        principal_id, existing.session_id if existing else "?")
            return AlreadyOnDuty(
                session_id=existing.session_id if existing else None,
                start_time=existing.start_time if existing else None,
            )

        logger.info("session %s opened for user=%s at location=%s", session.session_id, principal_id, location_id)
        return Begun(session)

    def end(
        self,
        principal_id: str,
        evidence: Optional[str],
        *,
        session_id: Optional[str] = None,
    ) -> EndOutcome:
        try:
            closed = self._store.close_open(
                user_id=str(principal_id),
                end_time=self._clock(),
                end_evidence=evidence,
                total_seconds=worked_seconds,
                session_id=session_id,
            )
        except LedgerInvariantError:
            logger.critical("ledger invariant broken while closing for user=%s", principal_id, exc_info=True)
            raise
        if closed is None:
            logger.info("end rejected: user=%s not on duty", principal_id)
            return NotOnDuty()

        logger.info("session %s closed for user=%s (%ss)", closed.session_id, principal_id, closed.total_seconds)
        return Closed(closed)

    def current(self, principal_id: str) -> Optional[AttendanceSession]:
        open_sessions = list(self._store.find_open(str(principal_id)))
        if len(open_sessions) > 1:
            logger.critical(
                "ledger invariant broken: user=%s has %d open sessions (%s)",
                principal_id,
                len(open_sessions),
                ", ".join(s.session_id for s in open_sessions),
            )
            raise LedgerInvariantError(f"user {principal_id} has {len(open_sessions)} open sessions")
        return open_sessions[0] if open_sessions else None

    def closed_between(self, principal_id: str, start: datetime, end: datetime) -> Sequence[AttendanceSession]:
        return self._store.list_closed_between(str(principal_id), start, end)

    def closed_today(self, principal_id: str) -> Sequence[AttendanceSession]:
        """Closed sessions started since UTC midnight."""
        start = self._clock().replace(hour=0, minute=0, second=0, microsecond=0)
        return self.closed_between(principal_id, start, start + timedelta(days=1))

    def open_sessions(self, *, limit: int = 200) -> Sequence[AttendanceSession]:
        return self._store.list_open(limit=limit)
