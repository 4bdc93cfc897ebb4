from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Optional

from ..core.enums import EndpointClass


@dataclass(frozen=True)
class RatePolicy:
    window_ms: int
    max_requests: int
    lockout_ms: int

    def __post_init__(self):
        if self.window_ms <= 0 or self.max_requests <= 0 or self.lockout_ms < 0:
            raise ValueError(f"invalid rate policy: {self}")


# Production defaults per endpoint class.
DEFAULT_POLICIES: Dict[EndpointClass, RatePolicy] = {
    EndpointClass.AUTH: RatePolicy(window_ms=15 * 60_000, max_requests=10, lockout_ms=30 * 60_000),
    EndpointClass.PAYROLL_CRITICAL: RatePolicy(window_ms=60_000, max_requests=20, lockout_ms=10 * 60_000),
    EndpointClass.ADMINISTRATIVE: RatePolicy(window_ms=60_000, max_requests=50, lockout_ms=5 * 60_000),
    EndpointClass.GENERAL: RatePolicy(window_ms=60_000, max_requests=200, lockout_ms=3 * 60_000),
    EndpointClass.PUBLIC: RatePolicy(window_ms=60_000, max_requests=500, lockout_ms=2 * 60_000),
}


@dataclass
class RateWindowRecord:
    """Mutable counter state for one (identity, endpoint class) key.

    Only ever mutated while the owning CounterStore holds the key's lock.
    """

    identifier: str
    endpoint_class: EndpointClass
    count: int = 0
    window_start_ms: int = 0
    last_seen_ms: int = 0
    locked_out: bool = False
    lockout_until_ms: Optional[int] = None


@dataclass(frozen=True)
class RateDecision:
    admitted: bool
    limit: int
    remaining: int
    reset_at_ms: int
    locked_out: bool = False
    retry_after_ms: int = 0

    @property
    def retry_after_seconds(self) -> int:
        return max(1, math.ceil(self.retry_after_ms / 1000)) if not self.admitted else 0


@dataclass(frozen=True)
class RateStatus:
    endpoint_class: EndpointClass
    count: int
    limit: int
    remaining: int
    reset_at_ms: int
    locked_out: bool

    def to_dict(self) -> dict:
        return {
            "endpoint_class": self.endpoint_class.value,
            "count": self.count,
            "limit": self.limit,
            "remaining": self.remaining,
            "reset_at": self.reset_at_ms,
            "locked_out": self.locked_out,
        }


def policies_from_config(raw: Optional[dict]) -> Dict[EndpointClass, RatePolicy]:
    """Merge ``{"auth": {"window_ms": .., "max_requests": .., "lockout_ms": ..}}`` over the defaults."""
    policies = dict(DEFAULT_POLICIES)
    for key, values in (raw or {}).items():
        endpoint_class = EndpointClass(key)
        base = policies[endpoint_class]
        policies[endpoint_class] = RatePolicy(
            window_ms=int(values.get("window_ms", base.window_ms)),
            max_requests=int(values.get("max_requests", base.max_requests)),
            lockout_ms=int(values.get("lockout_ms", base.lockout_ms)),
        )
    return policies
