from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from ..core.exceptions import InvalidCoordinates
from ..geofence.validator import GeoFenceValidator, GeoPoint
from .model import Location
from .repository import LocationRepository

logger = logging.getLogger(__name__)

MAX_LOOKUP_RADIUS_M = 5000.0


@dataclass(frozen=True)
class NearbyLocation:
    location: Location
    distance_m: float


class LocationService:
    """Use case: branch lookup for the check-in screen."""

    def __init__(self, locations: LocationRepository, geofence: GeoFenceValidator):
        self._locations = locations
        self._geofence = geofence

    def nearby(self, target: GeoPoint, *, radius_m: float | None = None) -> List[NearbyLocation]:
        radius = self._geofence.radius_m if radius_m is None else min(float(radius_m), MAX_LOOKUP_RADIUS_M)
        candidates = []
        for loc in self._locations.list_all():
            try:
                candidates.append((loc, loc.point))
            except InvalidCoordinates:
                logger.error("location %s has invalid stored coordinates; skipped", loc.location_id)
        return [NearbyLocation(loc, dist) for loc, dist in self._geofence.nearby(target, candidates, radius_m=radius)]
