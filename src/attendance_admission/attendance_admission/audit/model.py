from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class AuditEvent:
    """Security-relevant event (possible tampering, lockouts)."""

    action: str
    user_id: Optional[str]
    occurred_at: datetime
    client_address: Optional[str] = None
    detail: Dict[str, Any] = field(default_factory=dict)


EVIDENCE_OWNERSHIP_VIOLATION = "EVIDENCE_OWNERSHIP_VIOLATION"
RATE_LIMIT_LOCKOUT = "RATE_LIMIT_LOCKOUT"
