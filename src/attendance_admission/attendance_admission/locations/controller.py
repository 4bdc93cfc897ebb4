from __future__ import annotations

from flask import Flask, jsonify, request

from ..container import Container
from ..core.exceptions import MissingFields
from ..geofence.validator import GeoPoint


def register(app: Flask, container: Container) -> None:
    locations = container.location_service

    @app.route("/api/location/nearby-branches", methods=["GET"], endpoint="nearby_branches")
    def nearby_branches():
        lat, lng = request.args.get("latitude"), request.args.get("longitude")
        missing = [name for name, value in (("latitude", lat), ("longitude", lng)) if not value]
        if missing:
            raise MissingFields(missing)
        target = GeoPoint.of(lat, lng)
        radius = request.args.get("radius", type=float)

        found = locations.nearby(target, radius_m=radius)
        return jsonify(
            {
                "count": len(found),
                "branches": [
                    {
                        "location_id": n.location.location_id,
                        "name": n.location.name,
                        "address": n.location.address,
                        "latitude": n.location.latitude,
                        "longitude": n.location.longitude,
                        "distance_m": round(n.distance_m, 1),
                    }
                    for n in found
                ],
            }
        )
