from __future__ import annotations

import json
import logging
from typing import Protocol

from ..common.datetime_utils import isoformat
from .model import AuditEvent

audit_logger = logging.getLogger("attendance_admission.audit")


class AuditTrail(Protocol):
    def record(self, event: AuditEvent) -> None:
        raise NotImplementedError


class LoggingAuditTrail:
    """Emit audit events on the dedicated audit logger only."""

    def record(self, event: AuditEvent) -> None:
        audit_logger.warning(
            "%s user=%s client=%s at=%s detail=%s",
            event.action,
            event.user_id,
            event.client_address,
            isoformat(event.occurred_at),
            json.dumps(event.detail, sort_keys=True, default=str),
        )
