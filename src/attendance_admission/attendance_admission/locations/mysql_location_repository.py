from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Location
from .repository import LocationRepository


def _to_location(r: dict) -> Location:
    return Location(
        location_id=str(r["location_id"]),
        name=r["name"],
        latitude=float(r["latitude"]),
        longitude=float(r["longitude"]),
        address=r.get("address"),
    )


class MySQLLocationRepository(LocationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, location_id: str) -> Optional[Location]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT location_id, name, address, latitude, longitude FROM locations WHERE location_id=%s",
                (str(location_id),),
            )
            r = fetchone(cur)
            return _to_location(r) if r else None

    def list_all(self) -> Sequence[Location]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT location_id, name, address, latitude, longitude FROM locations ORDER BY name")
            return [_to_location(r) for r in fetchall(cur)]
