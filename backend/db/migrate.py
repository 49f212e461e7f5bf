#  Voice Tutor - Schema Migrations
#
#  Brings the learner database up to the latest Alembic revision before
#  the server accepts requests. Databases created by the inline schema
#  (tests, early installs) have the tables but no version row; those are
#  marked as revision 001 instead of being recreated.
#
#  Depends on: backend/migrations/
#  Used by:    backend/db/connection.py

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from sqlalchemy import create_engine, inspect

logger = logging.getLogger("tutor.migrate")

_MIGRATIONS_DIR = Path(__file__).parent.parent / "migrations"
_BASELINE_REVISION = "001"
_BASELINE_TABLES = {"users", "conversations"}


def _alembic_config(url: str) -> Config:
    alembic_cfg = Config(str(_MIGRATIONS_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("sqlalchemy.url", url)
    alembic_cfg.set_main_option("script_location", str(_MIGRATIONS_DIR))
    return alembic_cfg


def current_revision(db_path: str | Path) -> str | None:
    """Revision recorded in the database, or None if it was never migrated."""
    engine = create_engine(f"sqlite:///{Path(db_path)}")
    try:
        with engine.connect() as conn:
            return MigrationContext.configure(conn).get_current_revision()
    finally:
        engine.dispose()


def run_migrations(db_path: str | Path) -> None:
    """Upgrade the database at db_path to head, stamping unversioned baselines first."""
    url = f"sqlite:///{Path(db_path)}"
    alembic_cfg = _alembic_config(url)

    engine = create_engine(url)
    try:
        tables = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()

    if "alembic_version" not in tables and _BASELINE_TABLES & tables:
        logger.info("Unversioned learner database found, marking it as revision %s",
                    _BASELINE_REVISION)
        command.stamp(alembic_cfg, _BASELINE_REVISION)

    command.upgrade(alembic_cfg, "head")
    logger.info("Learner database at revision %s", current_revision(db_path))
