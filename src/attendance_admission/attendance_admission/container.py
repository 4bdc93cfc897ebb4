from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.admission import AdmissionController
from .audit.mysql_audit_trail import MySQLAuditTrail
from .audit.trail import AuditTrail
from .database.connection import DBConfig, DatabaseConnection
from .evidence.guard import EvidenceOwnershipGuard, EvidencePolicy
from .geofence.validator import GeoFenceValidator
from .locations.mysql_location_repository import MySQLLocationRepository
from .locations.service import LocationService
from .ratelimit.governor import RateGovernor
from .ratelimit.mysql_counter_store import MySQLCounterStore
from .ratelimit.store import InMemoryCounterStore
from .sessions.ledger import SessionLedger
from .sessions.mysql_session_repository import MySQLSessionStore
from .settings import AdmissionSettings
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService, IdentityProvider, UserIdentityProvider


@dataclass(frozen=True)
class Container:
    settings: AdmissionSettings

    auth_service: AuthService
    identity: IdentityProvider
    location_service: LocationService
    ledger: SessionLedger
    admission: AdmissionController
    rate_governor: RateGovernor
    audit: AuditTrail

    conn: Optional[DatabaseConnection] = None


def build_container(settings: AdmissionSettings) -> Container:
    conn = DatabaseConnection(DBConfig.from_dict(settings.db_config))

    users_repo = MySQLUserRepository(conn)
    locations_repo = MySQLLocationRepository(conn)
    session_store = MySQLSessionStore(conn)
    audit = MySQLAuditTrail(conn)

    if settings.rate_limit_store == "mysql":
        counter_store = MySQLCounterStore(conn)
    else:
        counter_store = InMemoryCounterStore()

    geofence = GeoFenceValidator(radius_m=settings.geofence_radius_m)
    evidence = EvidenceOwnershipGuard(
        templates=settings.evidence_path_templates,
        policy=EvidencePolicy(
            allow_missing_checkin=settings.allow_missing_checkin_evidence,
            allow_missing_checkout=settings.allow_missing_checkout_evidence,
        ),
        audit=audit,
    )
    identity = UserIdentityProvider(users_repo)
    ledger = SessionLedger(session_store)

    admission = AdmissionController(
        identity=identity,
        locations=locations_repo,
        geofence=geofence,
        evidence=evidence,
        ledger=ledger,
        eligible_role=settings.eligible_role,
        require_checkout_coordinates=settings.require_checkout_coordinates,
    )
    rate_governor = RateGovernor(
        counter_store,
        policies=settings.rate_limits,
        audit=audit,
        stale_windows=settings.rate_limit_stale_windows,
    )

    return Container(
        settings=settings,
        auth_service=AuthService(users_repo),
        identity=identity,
        location_service=LocationService(locations_repo, geofence),
        ledger=ledger,
        admission=admission,
        rate_governor=rate_governor,
        audit=audit,
        conn=conn,
    )
