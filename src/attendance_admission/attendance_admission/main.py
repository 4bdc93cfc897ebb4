from __future__ import annotations

import atexit
import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify
from werkzeug.middleware.proxy_fix import ProxyFix

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .common.datetime_utils import isoformat, now_utc
from .common.http import register_error_handlers
from .container import Container, build_container
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_users, list_tables
from .locations.controller import register as register_locations
from .ratelimit.controller import register as register_rate_limit
from .ratelimit.sweeper import start_sweeper, stop_sweeper
from .settings import AdmissionSettings
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

DATABASE_DIR = Path(__file__).resolve().parents[3] / "database"


def load_settings(settings_module: Optional[str] = None) -> AdmissionSettings:
    load_dotenv(override=False)
    module = importlib.import_module(settings_module or get_settings_module())
    return AdmissionSettings.from_module(module)


def _bootstrap_database(settings: AdmissionSettings) -> None:
    db_config = settings.db_config
    if settings.auto_init_db:
        apply_schema(db_config, schema_path=DATABASE_DIR / "schema.sql")
        logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
    if settings.auto_seed_db:
        apply_seed_sql(db_config, seed_path=DATABASE_DIR / "seed.sql")
        ensure_demo_users(db_config)
        logger.info("demo seed ready")


def create_app(container: Optional[Container] = None, *, settings_module: Optional[str] = None) -> Flask:
    """Application factory.

    Tests pass a prebuilt ``container`` (with in-memory stores); in that case
    the database is neither bootstrapped nor contacted here.
    """
    settings = container.settings if container is not None else load_settings(settings_module)

    logging.basicConfig(
        level=settings.log_level_value,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = Flask(__name__)
    app.secret_key = settings.secret_key
    app.config["DEBUG"] = settings.debug
    app.config["TESTING"] = settings.testing

    if settings.trusted_proxy_hops > 0:
        hops = settings.trusted_proxy_hops
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops, x_proto=hops, x_host=hops)

    if container is None:
        db = settings.db_config
        logger.info(
            "settings=%s db=%s@%s:%s/%s rate_store=%s",
            settings_module or get_settings_module(),
            db.get("user"),
            db.get("host"),
            db.get("port", 3306),
            db.get("database"),
            settings.rate_limit_store,
        )
        _bootstrap_database(settings)
        container = build_container(settings)

    app.extensions["attendance_admission"] = container

    register_error_handlers(app)
    register_rate_limit(app, container)
    register_users(app, container)
    register_attendance(app, container)
    register_locations(app, container)

    @app.route("/health", methods=["GET"], endpoint="health")
    def health():
        return jsonify({"status": "ok", "time": isoformat(now_utc())})

    if settings.rate_limit_sweep_seconds > 0:
        scheduler = start_sweeper(container.rate_governor, interval_seconds=settings.rate_limit_sweep_seconds)
        app.extensions["rate_limit_sweeper"] = scheduler
        atexit.register(stop_sweeper, scheduler)

    return app
