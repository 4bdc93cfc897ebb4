import os

from config.config import *  # noqa: F401,F403
from config.config import db_config_from_env, env_flag, env_json

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = db_config_from_env(default_password="root")

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# Generous limits and short lockouts while developing.
RATE_LIMITS = env_json(
    "RATE_LIMITS",
    {
        "auth": {"window_ms": 60_000, "max_requests": 50, "lockout_ms": 60_000},
        "payroll_critical": {"window_ms": 60_000, "max_requests": 100, "lockout_ms": 30_000},
        "administrative": {"window_ms": 60_000, "max_requests": 200, "lockout_ms": 30_000},
        "general": {"window_ms": 60_000, "max_requests": 1000, "lockout_ms": 10_000},
        "public": {"window_ms": 60_000, "max_requests": 1000, "lockout_ms": 10_000},
    },
)
RATE_LIMIT_STORE = os.getenv("RATE_LIMIT_STORE", "memory")

ALLOW_MISSING_CHECKIN_EVIDENCE = env_flag("ALLOW_MISSING_CHECKIN_EVIDENCE", "1")
ALLOW_MISSING_CHECKOUT_EVIDENCE = env_flag("ALLOW_MISSING_CHECKOUT_EVIDENCE", "1")
REQUIRE_CHECKOUT_COORDINATES = env_flag("REQUIRE_CHECKOUT_COORDINATES", "0")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = env_flag("AUTO_INIT_DB", "1")
# Optional: also seed demo data on startup
AUTO_SEED_DB = env_flag("AUTO_SEED_DB", "0")
