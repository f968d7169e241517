from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from stackr.config import get_settings
from stackr.infrastructure.db import models  # noqa: F401
from stackr.infrastructure.db.session import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configure_sqlalchemy_url() -> None:
    """Take the database URL from Settings (DATABASE_URL / .env)."""
    config.set_main_option("sqlalchemy.url", get_settings().get_sqlalchemy_url())


def run_migrations_offline() -> None:
    _configure_sqlalchemy_url()
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    _configure_sqlalchemy_url()
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
