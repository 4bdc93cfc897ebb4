from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from src.attendance_admission.attendance_admission.attendance.admission import AdmissionController
from src.attendance_admission.attendance_admission.attendance.model import CheckInCommand, CheckOutCommand
from src.attendance_admission.attendance_admission.core.enums import DenialReason, Role
from src.attendance_admission.attendance_admission.core.exceptions import (
    AdmissionDenied,
    DataIntegrityError,
    InvalidCoordinates,
    MissingFields,
)
from src.attendance_admission.attendance_admission.evidence.guard import EvidenceOwnershipGuard, EvidencePolicy
from src.attendance_admission.attendance_admission.geofence.validator import GeoFenceValidator, GeoPoint
from src.attendance_admission.attendance_admission.locations.model import Location
from src.attendance_admission.attendance_admission.sessions.ledger import SessionLedger
from src.attendance_admission.attendance_admission.sessions.repository import OpenSessionConflict
from src.attendance_admission.attendance_admission.users.model import Principal

T0 = datetime(2024, 3, 4, 8, 0, tzinfo=timezone.utc)
SILOM = Location("loc-silom", "Silom Branch", 13.7262, 100.5234)
AT_SILOM = GeoPoint(13.7263, 100.5234)
FAR_AWAY = GeoPoint(13.7999, 100.5500)


@dataclass
class FakeIdentity:
    principals: dict

    def verify(self, claimed_user_id: Optional[str]):
        return self.principals.get(claimed_user_id)


@dataclass
class InMemoryLocations:
    by_id: dict

    def get_by_id(self, location_id):
        return self.by_id.get(location_id)

    def list_all(self):
        return list(self.by_id.values())


class InMemorySessionStore:
    def __init__(self):
        self._lock = threading.Lock()
        self.sessions = {}

    def insert_open(self, session):
        with self._lock:
            existing = [s for s in self.sessions.values() if s.user_id == session.user_id and s.is_open]
            if existing:
                raise OpenSessionConflict(existing[0])
            self.sessions[session.session_id] = session

    def close_open(self, *, user_id, end_time, end_evidence, total_seconds, session_id=None):
        with self._lock:
            rows = [s for s in self.sessions.values() if s.user_id == user_id and s.is_open]
            if session_id is not None:
                rows = [s for s in rows if s.session_id == session_id]
            if not rows:
                return None
            closed = replace(
                rows[0], end_time=end_time, end_evidence=end_evidence, total_seconds=total_seconds(rows[0], end_time)
            )
            self.sessions[closed.session_id] = closed
            return closed

    def find_open(self, user_id):
        return [s for s in self.sessions.values() if s.user_id == user_id and s.is_open]

    def list_open(self, *, limit=200):
        return [s for s in self.sessions.values() if s.is_open][:limit]

    def list_closed_between(self, user_id, start, end):
        return []


class ListAuditTrail:
    def __init__(self):
        self.events = []

    def record(self, event):
        self.events.append(event)


class Clock:
    def __init__(self):
        self.now = T0

    def __call__(self):
        return self.now


class World:
    def __init__(self, *, policy=None, require_checkout_coordinates=False, locations=None):
        self.clock = Clock()
        self.store = InMemorySessionStore()
        self.audit = ListAuditTrail()
        self.identity = FakeIdentity(
            {
                "emp-1": Principal("emp-1", Role.EMPLOYEE, "Somchai"),
                "emp-2": Principal("emp-2", Role.EMPLOYEE, "Malee"),
                "adm-1": Principal("adm-1", Role.ADMIN, "Boss"),
            }
        )
        self.controller = AdmissionController(
            identity=self.identity,
            locations=InMemoryLocations(locations or {SILOM.location_id: SILOM}),
            geofence=GeoFenceValidator(100),
            evidence=EvidenceOwnershipGuard(policy=policy, audit=self.audit, clock=self.clock),
            ledger=SessionLedger(self.store, clock=self.clock),
            require_checkout_coordinates=require_checkout_coordinates,
        )

    def check_in(self, user="emp-1", point=AT_SILOM, evidence="checkin/emp-1/a.jpg", location_id=SILOM.location_id):
        return self.controller.check_in(user, CheckInCommand(location_id, point, evidence))

    def check_out(self, user="emp-1", point=AT_SILOM, evidence="checkout/emp-1/b.jpg"):
        return self.controller.check_out(user, CheckOutCommand(point, evidence))


def test_check_in_opens_a_session():
    world = World()

    result = world.check_in()

    assert result.ok
    body = result.summary.to_dict()
    assert body["location_id"] == "loc-silom"
    assert body["location_name"] == "Silom Branch"
    assert body["start_time"] == T0.isoformat()
    assert len(world.store.find_open("emp-1")) == 1


@pytest.mark.parametrize("user", [None, "", "ghost"])
def test_unverified_claims_are_unauthenticated(user):
    world = World()
    result = world.check_in(user=user)
    assert result.denial.reason is DenialReason.UNAUTHENTICATED
    assert world.store.sessions == {}


def test_admin_cannot_self_check_in():
    world = World()
    result = world.check_in(user="adm-1", evidence="checkin/adm-1/a.jpg")
    assert result.denial.reason is DenialReason.ROLE_NOT_PERMITTED
    assert world.store.sessions == {}


def test_unknown_location():
    world = World()
    result = world.check_in(location_id="nope")
    assert result.denial.reason is DenialReason.LOCATION_NOT_FOUND
    assert world.store.sessions == {}


def test_out_of_range_reports_distance():
    world = World()

    result = world.check_in(point=FAR_AWAY)

    assert result.denial.reason is DenialReason.OUT_OF_RANGE
    assert result.denial.detail["max_distance"] == 100.0
    assert result.denial.detail["distance"] > 8000
    assert world.store.sessions == {}


def test_foreign_evidence_is_a_violation_and_audited():
    world = World()

    result = world.check_in(evidence="https://cdn.example.com/checkin/emp-2/a.jpg")

    assert result.denial.reason is DenialReason.EVIDENCE_OWNERSHIP_VIOLATION
    assert world.store.sessions == {}
    assert [e.user_id for e in world.audit.events] == ["emp-1"]


def test_missing_evidence_when_required():
    world = World()
    result = world.check_in(evidence=None)
    assert result.denial.reason is DenialReason.MISSING_FIELDS
    assert result.denial.detail["fields"] == ["evidence_ref"]


def test_missing_evidence_when_policy_allows():
    world = World(policy=EvidencePolicy(allow_missing_checkin=True))
    assert world.check_in(evidence=None).ok


def test_second_check_in_is_already_on_duty():
    world = World()
    first = world.check_in()

    second = world.check_in()

    assert second.denial.reason is DenialReason.ALREADY_ON_DUTY
    assert second.denial.detail["active_session"]["session_id"] == first.summary.session_id
    assert second.denial.to_dict()["error"] == "AlreadyOnDuty"


def test_check_out_closes_with_rounded_hours():
    world = World()
    opened = world.check_in()
    world.clock.now = T0 + timedelta(hours=9, seconds=30)

    result = world.check_out()

    assert result.ok
    assert result.summary.session_id == opened.summary.session_id
    assert result.summary.total_duration_hours == 9.01
    assert result.summary.to_dict()["end_time"] == world.clock.now.isoformat()
    assert world.store.find_open("emp-1") == []


def test_check_out_without_session():
    world = World()
    assert world.check_out().denial.reason is DenialReason.NOT_ON_DUTY


def test_check_out_out_of_range_keeps_session_open():
    world = World()
    world.check_in()

    result = world.check_out(point=FAR_AWAY)

    assert result.denial.reason is DenialReason.OUT_OF_RANGE
    assert len(world.store.find_open("emp-1")) == 1


def test_check_out_with_someone_elses_photo_keeps_session_open():
    world = World()
    world.check_in()

    result = world.check_out(evidence="checkout/emp-2/b.jpg")

    assert result.denial.reason is DenialReason.EVIDENCE_OWNERSHIP_VIOLATION
    assert len(world.store.find_open("emp-1")) == 1


def test_check_out_coordinates_optional_by_default():
    world = World()
    world.check_in()
    assert world.check_out(point=None).ok


def test_check_out_coordinates_can_be_required():
    world = World(require_checkout_coordinates=True)
    world.check_in()

    result = world.check_out(point=None)

    assert result.denial.reason is DenialReason.MISSING_FIELDS
    assert len(world.store.find_open("emp-1")) == 1


def test_corrupt_stored_location_is_fatal():
    broken = Location("loc-bad", "Broken", 123.0, 100.0)
    world = World(locations={"loc-bad": broken})

    with pytest.raises(DataIntegrityError):
        world.check_in(location_id="loc-bad")
    assert world.store.sessions == {}


def test_unwrap_raises_admission_denied():
    world = World()
    with pytest.raises(AdmissionDenied) as exc_info:
        world.check_out().unwrap()
    assert exc_info.value.denial.reason is DenialReason.NOT_ON_DUTY


def test_check_in_payload_parsing():
    command = CheckInCommand.from_payload(
        {"location_id": " loc-silom ", "latitude": "13.7262", "longitude": 100.5234, "evidence_ref": ""},
        client_address="10.0.0.1",
    )
    assert command.location_id == "loc-silom"
    assert command.point == GeoPoint(13.7262, 100.5234)
    assert command.evidence_ref is None
    assert command.client_address == "10.0.0.1"


def test_check_in_payload_lists_missing_fields():
    with pytest.raises(MissingFields) as exc_info:
        CheckInCommand.from_payload({"latitude": 1})
    assert exc_info.value.fields == ("location_id", "longitude")


def test_check_in_payload_rejects_bad_coordinates():
    with pytest.raises(InvalidCoordinates):
        CheckInCommand.from_payload({"location_id": "x", "latitude": 95, "longitude": 0})


def test_check_out_payload_needs_both_coordinates_or_none():
    assert CheckOutCommand.from_payload(None).point is None
    with pytest.raises(MissingFields):
        CheckOutCommand.from_payload({"latitude": 13.7})
