"""Alembic environment for the document and chunk schema."""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from backend.app.config import get_settings
from backend.app.db.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# Alembic runs on sync drivers; map the app's async URLs back
_SYNC_DRIVERS = {
    "sqlite+aiosqlite://": "sqlite://",
    "postgresql+asyncpg://": "postgresql://",
}


def sync_database_url() -> str:
    """DATABASE_URL from settings with any async driver swapped for a sync one."""
    database_url = get_settings().database_url or "sqlite:///./review.db"

    for async_prefix, sync_prefix in _SYNC_DRIVERS.items():
        if database_url.startswith(async_prefix):
            return database_url.replace(async_prefix, sync_prefix, 1)

    return database_url


config.set_main_option("sqlalchemy.url", sync_database_url())


def run_migrations_offline() -> None:
    """Emit migration SQL without connecting."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations over a live connection."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
