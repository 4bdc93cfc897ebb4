from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..geofence.validator import GeoPoint


@dataclass(frozen=True)
class Location:
    """Branch a worker checks in at. Read-only for this service."""

    location_id: str
    name: str
    latitude: float
    longitude: float
    address: Optional[str] = None

    @property
    def point(self) -> GeoPoint:
        return GeoPoint.of(self.latitude, self.longitude)
