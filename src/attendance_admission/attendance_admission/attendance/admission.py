from __future__ import annotations

import logging
from typing import Optional

from ..core.constants import ELIGIBLE_ROLE
from ..core.enums import DenialReason, EvidenceStatus, Operation, Role
from ..core.exceptions import DataIntegrityError, InvalidCoordinates
from ..evidence.guard import EvidenceOwnershipGuard
from ..geofence.validator import GeoFenceValidator, GeoPoint
from ..locations.model import Location
from ..locations.repository import LocationRepository
from ..sessions.ledger import AlreadyOnDuty, Closed, SessionLedger
from ..users.model import Principal
from ..users.service import IdentityProvider
from .model import AdmissionResult, CheckInCommand, CheckInSummary, CheckOutCommand, CheckOutSummary

logger = logging.getLogger(__name__)


class AdmissionController:
    """Orchestrates check-in / check-out.

    Every step before the ledger call is a guard with no side effects, so a
    denied attempt never touches the ledger. Expected denials come back as
    ``AdmissionResult`` values; malformed input and collaborator failures
    raise.
    """

    def __init__(
        self,
        *,
        identity: IdentityProvider,
        locations: LocationRepository,
        geofence: GeoFenceValidator,
        evidence: EvidenceOwnershipGuard,
        ledger: SessionLedger,
        eligible_role: Role | str = ELIGIBLE_ROLE,
        require_checkout_coordinates: bool = False,
    ):
        self._identity = identity
        self._locations = locations
        self._geofence = geofence
        self._evidence = evidence
        self._ledger = ledger
        self._eligible_role = Role(eligible_role)
        self._require_checkout_coordinates = bool(require_checkout_coordinates)

    def check_in(self, claimed_user_id: Optional[str], command: CheckInCommand) -> AdmissionResult:
        principal, denied = self._authorize(claimed_user_id)
        if denied:
            return denied

        location = self._locations.get_by_id(command.location_id)
        if not location:
            return AdmissionResult.denied(
                DenialReason.LOCATION_NOT_FOUND, "Location not found", location_id=command.location_id
            )

        denied = self._check_fence(location, command.point)
        if denied:
            return denied

        denied = self._check_evidence(principal, command.evidence_ref, Operation.CHECK_IN, command.client_address)
        if denied:
            return denied

        outcome = self._ledger.begin(principal.user_id, location.location_id, command.evidence_ref)
        if isinstance(outcome, AlreadyOnDuty):
            return AdmissionResult.denied(
                DenialReason.ALREADY_ON_DUTY,
                "An open session already exists; check out first",
                active_session={
                    "session_id": outcome.session_id,
                    "start_time": outcome.start_time.isoformat() if outcome.start_time else None,
                },
            )

        return AdmissionResult.admitted(
            CheckInSummary(
                session_id=outcome.session.session_id,
                start_time=outcome.session.start_time,
                location_id=location.location_id,
                location_name=location.name,
            )
        )

    def check_out(self, claimed_user_id: Optional[str], command: CheckOutCommand) -> AdmissionResult:
        principal, denied = self._authorize(claimed_user_id)
        if denied:
            return denied

        session = self._ledger.current(principal.user_id)
        if session is None:
            return _not_on_duty()

        location = self._locations.get_by_id(session.location_id)
        if not location:
            return AdmissionResult.denied(
                DenialReason.LOCATION_NOT_FOUND, "Location not found", location_id=session.location_id
            )

        if command.point is not None:
            denied = self._check_fence(location, command.point)
            if denied:
                return denied
        elif self._require_checkout_coordinates:
            return AdmissionResult.denied(
                DenialReason.MISSING_FIELDS, "Coordinates are required to check out", fields=["latitude", "longitude"]
            )

        denied = self._check_evidence(principal, command.evidence_ref, Operation.CHECK_OUT, command.client_address)
        if denied:
            return denied

        outcome = self._ledger.end(principal.user_id, command.evidence_ref, session_id=session.session_id)
        if not isinstance(outcome, Closed):
            return _not_on_duty()

        closed = outcome.session
        return AdmissionResult.admitted(
            CheckOutSummary(
                session_id=closed.session_id,
                start_time=closed.start_time,
                end_time=closed.end_time,
                total_seconds=int(closed.total_seconds or 0),
                total_duration_hours=closed.total_hours or 0.0,
                location_id=location.location_id,
                location_name=location.name,
            )
        )

    def _authorize(self, claimed_user_id: Optional[str]):
        principal = self._identity.verify(claimed_user_id)
        if principal is None:
            return None, AdmissionResult.denied(DenialReason.UNAUTHENTICATED, "Authentication required")
        if principal.role != self._eligible_role:
            logger.info("user=%s with role=%s refused self-service attendance", principal.user_id, principal.role.value)
            return None, AdmissionResult.denied(
                DenialReason.ROLE_NOT_PERMITTED, f"{self._eligible_role.value.capitalize()} access required"
            )
        return principal, None

    def _check_fence(self, location: Location, point: GeoPoint) -> Optional[AdmissionResult]:
        try:
            origin = location.point
        except InvalidCoordinates as exc:
            # Client input was already validated; a bad stored point is a data fault.
            logger.critical("location %s has invalid stored coordinates", location.location_id)
            raise DataIntegrityError(f"location {location.location_id} has invalid coordinates") from exc

        fence = self._geofence.check(origin, point)
        if fence.within:
            return None
        logger.info(
            "out of range: %.1fm from location=%s (radius %.0fm)", fence.distance_m, location.location_id, fence.radius_m
        )
        return AdmissionResult.denied(
            DenialReason.OUT_OF_RANGE,
            f"You are {round(fence.distance_m)} m from {location.name} (maximum {fence.radius_m:g} m)",
            distance=round(fence.distance_m, 1),
            max_distance=fence.radius_m,
        )

    def _check_evidence(
        self, principal: Principal, evidence_ref: Optional[str], operation: Operation, client_address: Optional[str]
    ) -> Optional[AdmissionResult]:
        verdict = self._evidence.verify(evidence_ref, principal.user_id, operation, client_address=client_address)
        if verdict.approved:
            return None
        if verdict.status is EvidenceStatus.MISSING:
            return AdmissionResult.denied(
                DenialReason.MISSING_FIELDS, "Evidence photo is required", fields=["evidence_ref"]
            )
        return AdmissionResult.denied(
            DenialReason.EVIDENCE_OWNERSHIP_VIOLATION, "Evidence reference does not belong to the current user"
        )


def _not_on_duty() -> AdmissionResult:
    return AdmissionResult.denied(DenialReason.NOT_ON_DUTY, "No open session to check out from")
