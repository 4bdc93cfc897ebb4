"""Create the database (if missing) and apply database/schema.sql."""
from __future__ import annotations

import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from src.attendance_admission.attendance_admission.database.bootstrap import apply_schema, list_tables
from src.attendance_admission.attendance_admission.main import load_settings

logger = logging.getLogger("scripts.init_db")


def main() -> None:
    settings = load_settings()
    logging.basicConfig(level=settings.log_level_value, format="%(levelname)s %(message)s")
    db_config = settings.db_config

    apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")
    tables = list_tables(db_config)
    logger.info(
        "applied schema.sql -> %s@%s:%s/%s (tables=%d: %s)",
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
        len(tables),
        ", ".join(tables),
    )


if __name__ == "__main__":
    main()
