from __future__ import annotations

import time
from datetime import datetime, timezone


def now_utc() -> datetime:
    """Current UTC time, second precision.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now(timezone.utc).replace(microsecond=0)


def epoch_ms() -> int:
    return int(time.time() * 1000)


def isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def from_epoch_ms(value: float) -> datetime:
    return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
