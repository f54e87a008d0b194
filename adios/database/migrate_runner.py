"""Database migration runner for production.

Runs `alembic upgrade head`. On PostgreSQL the upgrade is serialized with a
session advisory lock so concurrent deploys never migrate at the same time.

Run as `python -m adios.database.migrate_runner` during deploys.
"""

from __future__ import annotations

import logging
import os
import sys

from alembic import command
from alembic.config import Config
from sqlalchemy import text

from adios.database.database import DATABASE_URL, _is_sqlite_url, build_engine

logger = logging.getLogger(__name__)

MIGRATION_LOCK_NAME = "adios-db-migration-lock"


def _alembic_cfg() -> Config:
    cfg = Config(os.getenv("ALEMBIC_INI", "alembic.ini"))
    # Alembic's ini parser interpolates '%'; percent-encoded passwords must be escaped.
    cfg.set_main_option("sqlalchemy.url", DATABASE_URL.replace("%", "%%"))
    return cfg


def run_upgrade() -> None:
    """Bring the database to the latest schema revision."""
    cfg = _alembic_cfg()
    if _is_sqlite_url(DATABASE_URL):
        # Single process in dev/test; no lock needed.
        command.upgrade(cfg, "head")
        return

    engine = build_engine(DATABASE_URL)
    try:
        with engine.connect() as lock_conn:
            lock_conn.execute(text("SELECT pg_advisory_lock(hashtext(:name))"), {"name": MIGRATION_LOCK_NAME})
            logger.info("Migration lock acquired")
            try:
                command.upgrade(cfg, "head")
            finally:
                lock_conn.execute(text("SELECT pg_advisory_unlock(hashtext(:name))"), {"name": MIGRATION_LOCK_NAME})
                logger.info("Migration lock released")
    finally:
        engine.dispose()


def main() -> int:
    logging.basicConfig(level=logging.INFO)
    run_upgrade()
    return 0


if __name__ == "__main__":
    sys.exit(main())
