from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple, TypeVar

from ..core.constants import DEFAULT_GEOFENCE_RADIUS_M, EARTH_RADIUS_M
from ..core.exceptions import InvalidCoordinates

T = TypeVar("T")


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float

    def __post_init__(self):
        _require_coordinate(self.latitude, "latitude", 90.0)
        _require_coordinate(self.longitude, "longitude", 180.0)

    @classmethod
    def of(cls, latitude, longitude) -> "GeoPoint":
        """Build a point from loosely typed input (JSON numbers, DB decimals, strings)."""
        return cls(_coerce(latitude, "latitude"), _coerce(longitude, "longitude"))


@dataclass(frozen=True)
class FenceCheck:
    distance_m: float
    radius_m: float
    within: bool


def _coerce(value, name: str) -> float:
    if isinstance(value, bool) or value is None:
        raise InvalidCoordinates(f"{name} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidCoordinates(f"{name} must be a number") from None


def _require_coordinate(value: float, name: str, bound: float) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidCoordinates(f"{name} must be a number")
    if not math.isfinite(value):
        raise InvalidCoordinates(f"{name} must be finite")
    if not -bound <= value <= bound:
        raise InvalidCoordinates(f"{name} must be between {-bound:g} and {bound:g} degrees")


def haversine_distance(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle surface distance in meters."""
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    dphi = math.radians(b.latitude - a.latitude)
    dlmb = math.radians(b.longitude - a.longitude)

    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    # Clamp against float drift just above 1 for antipodal points.
    h = min(1.0, max(0.0, h))
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


class GeoFenceValidator:
    """Circular admission fence: a point is admitted when distance <= radius."""

    def __init__(self, radius_m: float = DEFAULT_GEOFENCE_RADIUS_M):
        radius_m = float(radius_m)
        if not math.isfinite(radius_m) or radius_m < 0:
            raise ValueError("radius_m must be a non-negative finite number")
        self._radius_m = radius_m

    @property
    def radius_m(self) -> float:
        return self._radius_m

    def check(self, origin: GeoPoint, target: GeoPoint, *, radius_m: float | None = None) -> FenceCheck:
        radius = self._radius_m if radius_m is None else float(radius_m)
        distance = haversine_distance(origin, target)
        return FenceCheck(distance_m=distance, radius_m=radius, within=distance <= radius)

    def nearby(
        self,
        target: GeoPoint,
        candidates: Iterable[Tuple[T, GeoPoint]],
        *,
        radius_m: float | None = None,
    ) -> List[Tuple[T, float]]:
        """Candidates inside the fence around ``target``, nearest first."""
        radius = self._radius_m if radius_m is None else float(radius_m)
        hits: Sequence[Tuple[T, float]] = [
            (item, haversine_distance(point, target)) for item, point in candidates
        ]
        return sorted((h for h in hits if h[1] <= radius), key=lambda h: h[1])
