from __future__ import annotations

import os
from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

from validation_portal.db.base import Base  # noqa
from validation_portal.core.config import settings  # noqa
from validation_portal.partitions.naming import PartitionFamily  # noqa
import validation_portal.db.models  # noqa: F401

target_metadata = Base.metadata

# Per-survey partition tables belong to the ingestion pipeline; autogenerate
# must neither create nor drop them.
_PARTITION_PREFIXES = tuple(f"{family.value}_" for family in PartitionFamily)


def include_object(obj, name, type_, reflected, compare_to) -> bool:
    if type_ == "table" and name and name.startswith(_PARTITION_PREFIXES):
        return False
    return True


def get_url() -> str:
    return os.getenv("DATABASE_DSN") or settings.DATABASE_DSN


def _configure_kwargs(url: str) -> dict:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "include_object": include_object,
        # SQLite cannot ALTER most constraints in place
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    url = get_url()
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_kwargs(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = get_url()
    section = config.get_section(config.config_ini_section) or {}
    section["sqlalchemy.url"] = url

    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool, future=True)
    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_kwargs(url))
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
