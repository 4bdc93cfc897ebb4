"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

EARTH_RADIUS_M = 6_371_000.0
DEFAULT_GEOFENCE_RADIUS_M = 100.0

SECONDS_PER_HOUR = 3600
HOURS_PRECISION = "0.01"

DEFAULT_STALE_WINDOWS = 3
DEFAULT_SWEEP_SECONDS = 60

ELIGIBLE_ROLE = "employee"

EVIDENCE_NAMESPACE_CHECKIN = "checkin"
EVIDENCE_NAMESPACE_CHECKOUT = "checkout"
DEFAULT_EVIDENCE_PATH_TEMPLATES = {
    EVIDENCE_NAMESPACE_CHECKIN: "checkin/{principal_id}",
    EVIDENCE_NAMESPACE_CHECKOUT: "checkout/{principal_id}",
}

MYSQL_DUPLICATE_KEY = 1062
