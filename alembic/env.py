"""Alembic environment for the CityForge schema.

The database comes from ``DATABASE_URL`` (``.env``) when set, otherwise from
``sqlalchemy.url`` in ``alembic.ini``.  Online runs reuse
:func:`cityforge.database.engine.create_db_engine`, so SQLite migrations get
the same pragmas as the bot.  SQLite has almost no ALTER TABLE, so its
migrations run in batch mode.
"""

from __future__ import annotations

import os
from logging.config import fileConfig

from dotenv import load_dotenv

from alembic import context

load_dotenv()

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

from cityforge.database.engine import create_db_engine  # noqa: E402
from cityforge.database.models import Base  # noqa: E402

target_metadata = Base.metadata


def _database_url() -> str | None:
    return os.getenv("DATABASE_URL") or config.get_main_option("sqlalchemy.url")


def run_migrations_offline() -> None:
    """Emit SQL for the target database without connecting to it."""
    url = _database_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=bool(url) and url.startswith("sqlite"),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations over a live connection."""
    engine = create_db_engine(_database_url())
    try:
        with engine.connect() as connection:
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                render_as_batch=connection.dialect.name == "sqlite",
            )
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
