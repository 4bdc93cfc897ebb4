from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ..core.constants import HOURS_PRECISION, SECONDS_PER_HOUR


def hours_from_seconds(seconds: int) -> float:
    """Presentation rounding: whole seconds -> decimal hours (2 places, half up)."""
    hours = Decimal(int(seconds)) / Decimal(SECONDS_PER_HOUR)
    return float(hours.quantize(Decimal(HOURS_PRECISION), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class AttendanceSession:
    """Domain entity: a time entry. Open while ``end_time`` is None."""

    session_id: str
    user_id: str
    location_id: str
    start_time: datetime
    created_at: datetime
    end_time: Optional[datetime] = None
    start_evidence: Optional[str] = None
    end_evidence: Optional[str] = None
    break_seconds: int = 0
    total_seconds: Optional[int] = None
    note: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    @property
    def total_hours(self) -> Optional[float]:
        if self.total_seconds is None:
            return None
        return hours_from_seconds(self.total_seconds)

    def elapsed_seconds(self, now: datetime) -> int:
        return max(int((now - self.start_time).total_seconds()), 0)
