from __future__ import annotations

import json
import logging

from ..core.exceptions import CollaboratorUnavailable
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor
from .model import AuditEvent
from .trail import LoggingAuditTrail

logger = logging.getLogger(__name__)


class MySQLAuditTrail(LoggingAuditTrail):
    """Log the event, then persist it to ``audit_logs``.

    A failed insert never turns the audited request into a failure: the log
    line has already been written.
    """

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def record(self, event: AuditEvent) -> None:
        super().record(event)
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO audit_logs(action, user_id, client_address, detail, occurred_at)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (
                        event.action,
                        event.user_id,
                        event.client_address,
                        json.dumps(event.detail, default=str),
                        event.occurred_at.replace(tzinfo=None),
                    ),
                )
        except CollaboratorUnavailable:
            logger.error("audit event %s not persisted", event.action, exc_info=True)
