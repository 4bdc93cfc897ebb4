from __future__ import annotations

import logging
from typing import Callable, Dict, Mapping, Optional

from ..audit.model import RATE_LIMIT_LOCKOUT, AuditEvent
from ..audit.trail import AuditTrail
from ..common.datetime_utils import epoch_ms, from_epoch_ms
from ..core.constants import DEFAULT_STALE_WINDOWS
from ..core.enums import EndpointClass
from .model import DEFAULT_POLICIES, RateDecision, RatePolicy, RateStatus
from .store import CounterStore

logger = logging.getLogger(__name__)


def rate_key(client_identity: str, endpoint_class: EndpointClass) -> str:
    return f"{client_identity or 'unknown'}|{EndpointClass(endpoint_class).value}"


class RateGovernor:
    """Fixed-window request counter with lockout escalation.

    State per (client identity, endpoint class):
      * locked, lockout not expired -> deny, count untouched
      * locked, lockout expired     -> unlock, fresh window, admit
      * new or window elapsed       -> fresh window, admit
      * otherwise                   -> count += 1; over the limit -> lock, deny
    """

    def __init__(
        self,
        store: CounterStore,
        *,
        policies: Optional[Mapping[EndpointClass, RatePolicy]] = None,
        audit: Optional[AuditTrail] = None,
        clock_ms: Callable[[], int] = epoch_ms,
        stale_windows: int = DEFAULT_STALE_WINDOWS,
    ):
        self._store = store
        self._policies: Dict[EndpointClass, RatePolicy] = dict(DEFAULT_POLICIES)
        self._policies.update(policies or {})
        self._audit = audit
        self._clock_ms = clock_ms
        self._stale_windows = max(1, int(stale_windows))

    def policy_for(self, endpoint_class: EndpointClass) -> RatePolicy:
        return self._policies[EndpointClass(endpoint_class)]

    def hit(self, client_identity: str, endpoint_class: EndpointClass) -> RateDecision:
        endpoint_class = EndpointClass(endpoint_class)
        policy = self._policies[endpoint_class]
        key = rate_key(client_identity, endpoint_class)
        now = int(self._clock_ms())
        newly_locked = False

        with self._store.locked(key, endpoint_class) as record:
            record.last_seen_ms = now

            if record.locked_out:
                until = record.lockout_until_ms or now
                if now < until:
                    return RateDecision(
                        admitted=False,
                        limit=policy.max_requests,
                        remaining=0,
                        reset_at_ms=until,
                        locked_out=True,
                        retry_after_ms=until - now,
                    )
                record.locked_out = False
                record.lockout_until_ms = None
                record.count = 0

            if record.count == 0 or now - record.window_start_ms > policy.window_ms:
                record.count = 1
                record.window_start_ms = now
            else:
                record.count += 1

            if record.count > policy.max_requests:
                record.locked_out = True
                record.lockout_until_ms = now + policy.lockout_ms
                newly_locked = True
                decision = RateDecision(
                    admitted=False,
                    limit=policy.max_requests,
                    remaining=0,
                    reset_at_ms=record.lockout_until_ms,
                    locked_out=True,
                    retry_after_ms=policy.lockout_ms,
                )
            else:
                decision = RateDecision(
                    admitted=True,
                    limit=policy.max_requests,
                    remaining=policy.max_requests - record.count,
                    reset_at_ms=record.window_start_ms + policy.window_ms,
                )

        if newly_locked:
            self._report_lockout(client_identity, endpoint_class, decision, now)
        return decision

    def status(self, client_identity: str, endpoint_class: EndpointClass) -> RateStatus:
        """Current counters for the key; never changes state."""
        endpoint_class = EndpointClass(endpoint_class)
        policy = self._policies[endpoint_class]
        now = int(self._clock_ms())
        record = self._store.peek(rate_key(client_identity, endpoint_class))

        if record is not None and record.locked_out and (record.lockout_until_ms or 0) > now:
            return RateStatus(endpoint_class, record.count, policy.max_requests, 0, record.lockout_until_ms, True)

        if (
            record is None
            or record.locked_out
            or record.count == 0
            or now - record.window_start_ms > policy.window_ms
        ):
            return RateStatus(endpoint_class, 0, policy.max_requests, policy.max_requests, now + policy.window_ms, False)

        return RateStatus(
            endpoint_class,
            record.count,
            policy.max_requests,
            max(0, policy.max_requests - record.count),
            record.window_start_ms + policy.window_ms,
            False,
        )

    def sweep(self, now_ms: Optional[int] = None) -> int:
        """Evict records idle for ``stale_windows`` windows of their class, and expired lockouts."""
        now = int(self._clock_ms() if now_ms is None else now_ms)
        removed = 0
        for endpoint_class, policy in self._policies.items():
            stale_before = now - self._stale_windows * policy.window_ms
            removed += self._store.sweep(endpoint_class, stale_before, now)
        if removed:
            logger.info("rate-limit sweep removed %d stale record(s)", removed)
        return removed

    def analytics(self) -> dict:
        now = int(self._clock_ms())
        per_class = {c.value: {"tracked": 0, "locked_out": 0, "requests": 0} for c in self._policies}
        locked = []
        for record in self._store.records():
            bucket = per_class.setdefault(
                record.endpoint_class.value, {"tracked": 0, "locked_out": 0, "requests": 0}
            )
            bucket["tracked"] += 1
            bucket["requests"] += record.count
            if record.locked_out and (record.lockout_until_ms or 0) > now:
                bucket["locked_out"] += 1
                locked.append(
                    {
                        "identifier": record.identifier,
                        "endpoint_class": record.endpoint_class.value,
                        "lockout_until": record.lockout_until_ms,
                    }
                )
        return {
            "generated_at": now,
            "classes": per_class,
            "locked_out": locked,
            "policies": {
                c.value: {"window_ms": p.window_ms, "max_requests": p.max_requests, "lockout_ms": p.lockout_ms}
                for c, p in self._policies.items()
            },
        }

    def _report_lockout(
        self, client_identity: str, endpoint_class: EndpointClass, decision: RateDecision, now: int
    ) -> None:
        logger.warning(
            "client=%s locked out of %s until %s",
            client_identity,
            endpoint_class.value,
            decision.reset_at_ms,
        )
        if self._audit is None:
            return
        self._audit.record(
            AuditEvent(
                action=RATE_LIMIT_LOCKOUT,
                user_id=None,
                occurred_at=from_epoch_ms(now),
                client_address=client_identity,
                detail={"endpoint_class": endpoint_class.value, "lockout_until_ms": decision.reset_at_ms},
            )
        )
