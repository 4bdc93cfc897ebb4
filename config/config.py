"""Shared helpers for the per-environment settings modules."""
import json
import os


def env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def env_json(name: str, default):
    raw = os.getenv(name)
    return json.loads(raw) if raw else default


def db_config_from_env(default_password: str = "") -> dict:
    return {
        "host": os.getenv("DB_HOST", "localhost"),
        "port": int(os.getenv("DB_PORT", "3306")),
        "user": os.getenv("DB_USER", "root"),
        "password": os.getenv("DB_PASSWORD", default_password),
        "database": os.getenv("DB_NAME", "attendance_admission"),
        "timeout_seconds": int(os.getenv("DB_TIMEOUT_SECONDS", "5")),
    }


GEOFENCE_RADIUS_M = float(os.getenv("GEOFENCE_RADIUS_M", "100"))

# {"checkin": "checkin/{principal_id}", "checkout": "checkout/{principal_id}"}
EVIDENCE_PATH_TEMPLATES = env_json("EVIDENCE_PATH_TEMPLATES", None)

ELIGIBLE_ROLE = os.getenv("ELIGIBLE_ROLE", "employee")
TRUSTED_PROXY_HOPS = int(os.getenv("TRUSTED_PROXY_HOPS", "0"))

RATE_LIMIT_SWEEP_SECONDS = int(os.getenv("RATE_LIMIT_SWEEP_SECONDS", "60"))
RATE_LIMIT_STALE_WINDOWS = int(os.getenv("RATE_LIMIT_STALE_WINDOWS", "3"))
