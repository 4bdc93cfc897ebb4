import os

from config.config import *  # noqa: F401,F403
from config.config import db_config_from_env, env_flag, env_json

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = db_config_from_env()

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# None -> built-in production policies
RATE_LIMITS = env_json("RATE_LIMITS", None)
RATE_LIMIT_STORE = os.getenv("RATE_LIMIT_STORE", "mysql")

ALLOW_MISSING_CHECKIN_EVIDENCE = env_flag("ALLOW_MISSING_CHECKIN_EVIDENCE", "0")
ALLOW_MISSING_CHECKOUT_EVIDENCE = env_flag("ALLOW_MISSING_CHECKOUT_EVIDENCE", "0")
REQUIRE_CHECKOUT_COORDINATES = env_flag("REQUIRE_CHECKOUT_COORDINATES", "0")

AUTO_INIT_DB = env_flag("AUTO_INIT_DB", "0")
AUTO_SEED_DB = env_flag("AUTO_SEED_DB", "0")
