import os

from config.config import *  # noqa: F401,F403
from config.config import db_config_from_env

SECRET_KEY = "test-secret"

DB_CONFIG = db_config_from_env(default_password="12345")

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

RATE_LIMITS = None
RATE_LIMIT_STORE = "memory"
RATE_LIMIT_SWEEP_SECONDS = 0

ALLOW_MISSING_CHECKIN_EVIDENCE = False
ALLOW_MISSING_CHECKOUT_EVIDENCE = False
REQUIRE_CHECKOUT_COORDINATES = False

AUTO_INIT_DB = False
AUTO_SEED_DB = False
