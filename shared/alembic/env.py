"""Alembic environment for the dispatch log schema.

The DSN comes from ``-x dsn=...`` when given, otherwise from
shared.config.PostgresConfig, so migrations and the SQL result sink read
the same POSTGRES_* variables:

    alembic -c shared/alembic.ini upgrade head
    alembic -c shared/alembic.ini -x dsn=sqlite:///dispatch.db upgrade head
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import Connection, engine_from_config, pool

from shared.config import PostgresConfig
from shared.db.base import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _database_url() -> str:
    override = context.get_x_argument(as_dictionary=True).get("dsn")
    return override or PostgresConfig().dsn


def _configure(**kwargs: object) -> None:
    context.configure(target_metadata=Base.metadata, compare_type=True, **kwargs)


def _run(connection: Connection | None = None) -> None:
    if connection is None:
        # Offline: emit SQL to stdout.
        _configure(
            url=_database_url(),
            literal_binds=True,
            dialect_opts={"paramstyle": "named"},
        )
    else:
        # SQLite cannot ALTER most things in place.
        _configure(
            connection=connection,
            render_as_batch=connection.dialect.name == "sqlite",
        )
    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    _run()
else:
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = _database_url()
    engine = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with engine.connect() as conn:
        _run(conn)
