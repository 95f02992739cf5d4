"""Alembic environment: migrates the database the API itself is configured for."""
from alembic import context
from sqlmodel import SQLModel

import paybox.models  # noqa: F401  (registers the tables on the metadata)
from paybox.core.config import settings
from paybox.core.database import DATABASE_URL, engine
from paybox.logging import setup_logging

setup_logging(level=settings.log_level)
target_metadata = SQLModel.metadata


def run_migrations_offline() -> None:
    """Emit SQL for DATABASE_URL without connecting."""
    context.configure(url=DATABASE_URL, target_metadata=target_metadata, literal_binds=True, compare_type=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
