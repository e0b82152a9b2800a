"""
Alembic migration environment for the booking schema.

Migrations run through the synchronous driver (DATABASE_URL_SYNC). The
partial unique index on active holds is PostgreSQL-only; SQLite dev
databases get batch mode so ALTERs are emulated by table copies.
"""

from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context

from venue_booking.db.base import Base
from venue_booking.models import Booth, Hold, SlotClaim, Booking, Guest  # noqa: F401 - registers tables on Base.metadata
from venue_booking.core.config import get_settings

config = context.config
settings = get_settings()
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL_SYNC)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configure(**kwargs) -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=url.startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit the DDL as SQL for review by the DBA."""
    _configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
