import asyncio
import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import create_async_engine

from bloodlink.config import settings
from bloodlink.db.base import Base
from bloodlink import models  # noqa: F401  ensure all models are registered

# Alembic Config
config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)
target_metadata = Base.metadata

# Get the database URL from the env or the application settings
db_url = os.getenv("DATABASE_URL") or settings.DATABASE_URL or config.get_main_option("sqlalchemy.url")

# Ensure async format for PostgreSQL
if db_url and db_url.startswith("postgresql://"):
    db_url = db_url.replace("postgresql://", "postgresql+asyncpg://")

connect_args = {}
if db_url.startswith("postgresql+asyncpg://"):
    connect_args = {
        "server_settings": {
            "application_name": "alembic_migration",
        },
        "command_timeout": 60,
    }


async def run_async_migrations():
    """Run migrations in 'online' mode using async engine."""
    connectable = create_async_engine(db_url, connect_args=connect_args)

    try:
        async with connectable.connect() as connection:
            async with connection.begin():
                def do_migrations(sync_connection):
                    context.configure(
                        connection=sync_connection,
                        target_metadata=target_metadata,
                        compare_type=True,
                        render_as_batch=True,
                    )
                    context.run_migrations()

                await connection.run_sync(do_migrations)
    finally:
        await connectable.dispose()


def run_migrations_offline():
    """Run migrations in 'offline' mode."""
    url = make_url(db_url)
    # Offline SQL is rendered with the sync driver of the same backend
    offline_url = url.set(drivername=url.get_backend_name())

    context.configure(
        url=offline_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    """Entry point for Alembic command."""
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
