from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Union

from ..common.datetime_utils import isoformat
from ..common.validators import optional_text, require_fields
from ..core.enums import DenialReason
from ..core.exceptions import AdmissionDenied, MissingFields
from ..geofence.validator import GeoPoint


@dataclass(frozen=True)
class CheckInCommand:
    location_id: str
    point: GeoPoint
    evidence_ref: Optional[str] = None
    client_address: Optional[str] = None

    @classmethod
    def from_payload(cls, body: Mapping[str, Any] | None, *, client_address: str | None = None) -> "CheckInCommand":
        body = require_fields(body, ("location_id", "latitude", "longitude"))
        return cls(
            location_id=str(body["location_id"]).strip(),
            point=GeoPoint.of(body["latitude"], body["longitude"]),
            evidence_ref=optional_text(body.get("evidence_ref")),
            client_address=client_address,
        )


@dataclass(frozen=True)
class CheckOutCommand:
    point: Optional[GeoPoint] = None
    evidence_ref: Optional[str] = None
    client_address: Optional[str] = None

    @classmethod
    def from_payload(cls, body: Mapping[str, Any] | None, *, client_address: str | None = None) -> "CheckOutCommand":
        body = body if isinstance(body, Mapping) else {}
        lat, lng = body.get("latitude"), body.get("longitude")
        if (lat is None) != (lng is None):
            raise MissingFields(["latitude" if lat is None else "longitude"])
        return cls(
            point=None if lat is None else GeoPoint.of(lat, lng),
            evidence_ref=optional_text(body.get("evidence_ref")),
            client_address=client_address,
        )


@dataclass(frozen=True)
class Denial:
    """Expected negative outcome with enough detail for the caller to act."""

    reason: DenialReason
    message: str
    detail: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.reason.value, "message": self.message, **self.detail}


@dataclass(frozen=True)
class CheckInSummary:
    session_id: str
    start_time: datetime
    location_id: str
    location_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "start_time": isoformat(self.start_time),
            "location_id": self.location_id,
            "location_name": self.location_name,
        }


@dataclass(frozen=True)
class CheckOutSummary:
    session_id: str
    start_time: datetime
    end_time: datetime
    total_seconds: int
    total_duration_hours: float
    location_id: str
    location_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "start_time": isoformat(self.start_time),
            "end_time": isoformat(self.end_time),
            "total_duration_hours": self.total_duration_hours,
            "location_id": self.location_id,
            "location_name": self.location_name,
        }


Summary = Union[CheckInSummary, CheckOutSummary]


@dataclass(frozen=True)
class AdmissionResult:
    summary: Optional[Summary] = None
    denial: Optional[Denial] = None

    @property
    def ok(self) -> bool:
        return self.denial is None

    @classmethod
    def admitted(cls, summary: Summary) -> "AdmissionResult":
        return cls(summary=summary)

    @classmethod
    def denied(cls, reason: DenialReason, message: str, **detail) -> "AdmissionResult":
        return cls(denial=Denial(reason=reason, message=message, detail=detail))

    def unwrap(self) -> Summary:
        if self.denial is not None:
            raise AdmissionDenied(self.denial)
        return self.summary
