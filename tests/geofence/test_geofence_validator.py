from __future__ import annotations

import math

import pytest

from src.attendance_admission.attendance_admission.core.exceptions import InvalidCoordinates
from src.attendance_admission.attendance_admission.geofence.validator import (
    GeoFenceValidator,
    GeoPoint,
    haversine_distance,
)

SILOM = GeoPoint(13.7262, 100.5234)


def test_identical_points_are_zero_apart():
    assert haversine_distance(SILOM, SILOM) == 0.0


def test_distance_is_symmetric():
    other = GeoPoint(13.7373, 100.5601)
    assert haversine_distance(SILOM, other) == pytest.approx(haversine_distance(other, SILOM))


def test_one_degree_of_latitude_is_about_111_km():
    d = haversine_distance(GeoPoint(0.0, 0.0), GeoPoint(1.0, 0.0))
    assert d == pytest.approx(111_195, rel=0.01)


def test_antipodal_points_do_not_overflow():
    d = haversine_distance(GeoPoint(0.0, 0.0), GeoPoint(0.0, 180.0))
    assert d == pytest.approx(math.pi * 6_371_000, rel=1e-9)


def test_fence_boundary_is_inclusive():
    target = GeoPoint(13.7270, 100.5234)
    distance = haversine_distance(SILOM, target)
    fence = GeoFenceValidator()

    assert fence.check(SILOM, target, radius_m=distance).within
    assert not fence.check(SILOM, target, radius_m=distance - 1).within


def test_default_radius_is_100_m():
    fence = GeoFenceValidator()
    near = GeoPoint(13.7262 + 0.0008, 100.5234)  # ~89 m
    far = GeoPoint(13.7262 + 0.0010, 100.5234)  # ~111 m

    assert fence.radius_m == 100.0
    assert fence.check(SILOM, near).within
    result = fence.check(SILOM, far)
    assert not result.within
    assert result.distance_m == pytest.approx(111.2, abs=0.5)


def test_nearby_sorts_by_distance_and_drops_outside():
    fence = GeoFenceValidator(radius_m=5000)
    candidates = [
        ("sukhumvit", GeoPoint(13.7373, 100.5601)),
        ("silom", SILOM),
        ("chatuchak", GeoPoint(13.7999, 100.5500)),
    ]

    found = fence.nearby(GeoPoint(13.7265, 100.5240), candidates)

    assert [name for name, _ in found] == ["silom", "sukhumvit"]
    assert found[0][1] < found[1][1]


@pytest.mark.parametrize(
    "lat,lng",
    [
        (91, 0),
        (-90.0001, 0),
        (0, 180.5),
        (float("nan"), 0),
        (0, float("inf")),
        (True, 0),
    ],
)
def test_out_of_range_or_non_numeric_coordinates_are_rejected(lat, lng):
    with pytest.raises(InvalidCoordinates):
        GeoPoint(lat, lng)


@pytest.mark.parametrize("lat,lng", [(None, 1), ("abc", 1), ("", 1), (1, "nan")])
def test_loose_input_is_validated(lat, lng):
    with pytest.raises(InvalidCoordinates):
        GeoPoint.of(lat, lng)


def test_loose_input_accepts_numeric_strings():
    assert GeoPoint.of("13.5", "100.25") == GeoPoint(13.5, 100.25)


def test_negative_radius_is_a_configuration_error():
    with pytest.raises(ValueError):
        GeoFenceValidator(radius_m=-1)
