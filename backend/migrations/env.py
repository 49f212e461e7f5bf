#  Voice Tutor - Alembic Environment
#
#  Entry point Alembic executes for every command. Targets the learner
#  database through a synchronous SQLite engine; migrate.py calls in from
#  inside the running server's event loop, so no async engine here.
#
#  Depends on: backend/db/models_metadata.py
#  Used by:    alembic CLI, backend/db/migrate.py

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from backend.db.models_metadata import metadata as target_metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

# SQLite cannot ALTER most columns in place; batch mode rebuilds the table
_SQLITE_OPTS = {"target_metadata": target_metadata, "render_as_batch": True}


def run_migrations_offline() -> None:
    """Emit the upgrade as SQL on stdout (alembic upgrade --sql)."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_SQLITE_OPTS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        context.configure(connection=connection, **_SQLITE_OPTS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
