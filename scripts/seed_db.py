"""Load branch locations from database/seed.sql and upsert the demo accounts."""
from __future__ import annotations

import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from src.attendance_admission.attendance_admission.database.bootstrap import (
    apply_seed_sql,
    demo_user_id,
    ensure_demo_users,
)
from src.attendance_admission.attendance_admission.main import load_settings

logger = logging.getLogger("scripts.seed_db")


def main() -> None:
    settings = load_settings()
    logging.basicConfig(level=settings.log_level_value, format="%(levelname)s %(message)s")
    db_config = settings.db_config

    apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
    ensure_demo_users(db_config)

    logger.info("seeded %s@%s/%s", db_config.get("user"), db_config.get("host"), db_config.get("database"))
    # Evidence refs must live under checkin/<id>/ and checkout/<id>/ for this user.
    logger.info("demo employee id: %s", demo_user_id("employee@example.com"))


if __name__ == "__main__":
    main()
