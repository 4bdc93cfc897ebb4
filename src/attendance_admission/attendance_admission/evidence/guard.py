"""Evidence ownership checks for check-in/check-out photo references.

Evidence references are opaque URLs minted by object storage. The only
binding between a reference and a principal is the storage path layout
``.../<namespace>/<principal_id>/<file>``, so the guard matches that layout
segment by segment rather than by substring.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional
from urllib.parse import unquote, urlsplit

from ..audit.model import EVIDENCE_OWNERSHIP_VIOLATION, AuditEvent
from ..audit.trail import AuditTrail, LoggingAuditTrail
from ..common.datetime_utils import now_utc
from ..core.constants import DEFAULT_EVIDENCE_PATH_TEMPLATES
from ..core.enums import EvidenceStatus, Operation

logger = logging.getLogger(__name__)

PRINCIPAL_PLACEHOLDER = "{principal_id}"


@dataclass(frozen=True)
class EvidencePolicy:
    allow_missing_checkin: bool = False
    allow_missing_checkout: bool = False

    def allows_missing(self, operation: Operation) -> bool:
        if operation is Operation.CHECK_IN:
            return self.allow_missing_checkin
        return self.allow_missing_checkout


@dataclass(frozen=True)
class EvidenceVerdict:
    status: EvidenceStatus

    @property
    def approved(self) -> bool:
        return self.status in (EvidenceStatus.OWNED, EvidenceStatus.MISSING_ALLOWED)

    @property
    def is_violation(self) -> bool:
        return self.status in (EvidenceStatus.FOREIGN, EvidenceStatus.WRONG_NAMESPACE, EvidenceStatus.MALFORMED)


def _split_segments(path: str) -> Optional[List[str]]:
    segments = [unquote(s) for s in path.split("/") if s]
    if any(s in (".", "..") or "/" in s for s in segments):
        return None
    return segments


def _contains_run(segments: List[str], run: List[str]) -> bool:
    # The run must be followed by at least one segment (the file itself).
    width = len(run)
    for start in range(0, len(segments) - width):
        if segments[start:start + width] == run:
            return True
    return False


class EvidenceOwnershipGuard:
    def __init__(
        self,
        *,
        templates: Mapping[str, str] | None = None,
        policy: EvidencePolicy | None = None,
        audit: AuditTrail | None = None,
        clock: Callable = now_utc,
    ):
        templates = dict(templates or DEFAULT_EVIDENCE_PATH_TEMPLATES)
        self._templates = {}
        for op in Operation:
            template = templates.get(op.value)
            if not template or PRINCIPAL_PLACEHOLDER not in template:
                raise ValueError(f"evidence template for {op.value!r} must contain {PRINCIPAL_PLACEHOLDER}")
            self._templates[op] = [s for s in template.split("/") if s]
        self._policy = policy or EvidencePolicy()
        self._audit = audit or LoggingAuditTrail()
        self._clock = clock

    @property
    def policy(self) -> EvidencePolicy:
        return self._policy

    def _run_for(self, operation: Operation, principal_id: str) -> List[str]:
        return [principal_id if s == PRINCIPAL_PLACEHOLDER else s for s in self._templates[operation]]

    def classify(self, evidence_ref: Optional[str], principal_id: str, operation: Operation) -> EvidenceStatus:
        """Pure classification, no side effects."""
        if evidence_ref is None or not str(evidence_ref).strip():
            return EvidenceStatus.MISSING_ALLOWED if self._policy.allows_missing(operation) else EvidenceStatus.MISSING

        principal_id = str(principal_id)
        if not principal_id or "/" in principal_id:
            return EvidenceStatus.MALFORMED

        try:
            path = urlsplit(str(evidence_ref).strip()).path
        except ValueError:
            return EvidenceStatus.MALFORMED
        segments = _split_segments(path)
        if not segments:
            return EvidenceStatus.MALFORMED

        if _contains_run(segments, self._run_for(operation, principal_id)):
            return EvidenceStatus.OWNED
        for other in Operation:
            if other is not operation and _contains_run(segments, self._run_for(other, principal_id)):
                return EvidenceStatus.WRONG_NAMESPACE
        return EvidenceStatus.FOREIGN

    def verify(
        self,
        evidence_ref: Optional[str],
        principal_id: str,
        operation: Operation,
        *,
        client_address: str | None = None,
    ) -> EvidenceVerdict:
        verdict = EvidenceVerdict(self.classify(evidence_ref, principal_id, operation))

        if verdict.status is EvidenceStatus.MISSING_ALLOWED:
            logger.info("%s accepted without evidence for user=%s (policy allows)", operation.value, principal_id)
        elif verdict.is_violation:
            self._audit.record(
                AuditEvent(
                    action=EVIDENCE_OWNERSHIP_VIOLATION,
                    user_id=str(principal_id),
                    occurred_at=self._clock(),
                    client_address=client_address,
                    detail={
                        "operation": operation.value,
                        "status": verdict.status.value,
                        "evidence_ref": str(evidence_ref)[:512],
                    },
                )
            )
        return verdict
