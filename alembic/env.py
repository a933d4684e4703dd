# alembic/env.py
"""
Alembic environment for the billing tables.

The database URL is not read from alembic.ini: it is resolved by the
application's config module (DATABASE_URL, then the DB_* parts, then the
local SQLite file), so migrations always target the database the API uses.
alembic.ini puts the project root on sys.path.
"""
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

import config as app_config
from models import Base

alembic_config = context.config

if alembic_config.config_file_name is not None:
    fileConfig(alembic_config.config_file_name)

target_metadata = Base.metadata

COMPARE_OPTIONS = {
    "compare_type": True,
    "compare_server_default": True,
}


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def run_migrations_offline() -> None:
    """Emit the migration SQL for DATABASE_URL without connecting."""
    url = app_config.DATABASE_URL
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=_is_sqlite(url),
        **COMPARE_OPTIONS,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Connect to DATABASE_URL and apply the migrations."""
    engine = create_engine(app_config.DATABASE_URL, poolclass=pool.NullPool)

    try:
        with engine.connect() as connection:
            # SQLite cannot ALTER most constraints in place
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                render_as_batch=connection.dialect.name == "sqlite",
                **COMPARE_OPTIONS,
            )

            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
