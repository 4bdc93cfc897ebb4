from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional, Protocol, Sequence

from .model import AttendanceSession


class OpenSessionConflict(Exception):
    """Store-level signal: the user already has an open session.

    Raised by ``insert_open`` when the one-open-session constraint rejects the
    row. ``existing`` is the conflicting session when the store can read it.
    """

    def __init__(self, existing: Optional[AttendanceSession] = None):
        self.existing = existing
        super().__init__("open session already exists")


TotalSeconds = Callable[[AttendanceSession, datetime], int]


class SessionStore(Protocol):
    def insert_open(self, session: AttendanceSession) -> None:
        """Conditional insert: must fail with OpenSessionConflict atomically."""
        raise NotImplementedError

    def close_open(
        self,
        *,
        user_id: str,
        end_time: datetime,
        end_evidence: Optional[str],
        total_seconds: TotalSeconds,
        session_id: Optional[str] = None,
    ) -> Optional[AttendanceSession]:
        """Close the user's open session in one transaction; None if nothing was open."""
        raise NotImplementedError

    def find_open(self, user_id: str) -> Sequence[AttendanceSession]:
        raise NotImplementedError

    def list_open(self, *, limit: int = 200) -> Sequence[AttendanceSession]:
        raise NotImplementedError

    def list_closed_between(self, user_id: str, start: datetime, end: datetime) -> Sequence[AttendanceSession]:
        raise NotImplementedError
