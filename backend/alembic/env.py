from __future__ import annotations

import os
from logging.config import fileConfig

from alembic.operations import ops
from sqlalchemy import engine_from_config, pool

from alembic import context
from app.core.config import settings
from app.core.db import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

target_metadata = Base.metadata


def _drops_objects(migration_ops: ops.MigrateOperation) -> bool:
    if isinstance(
        migration_ops,
        (ops.DropTableOp, ops.DropColumnOp, ops.DropIndexOp, ops.DropConstraintOp),
    ):
        return True
    return any(_drops_objects(op) for op in getattr(migration_ops, "ops", None) or [])


def _refuse_drops(_context: context.MigrationContext, _revision, directives) -> None:
    # Attempt history is the only source for progress; never autogenerate its loss.
    if os.environ.get("ALLOW_ALEMBIC_DROPS") == "1" or not directives:
        return

    upgrade_ops = getattr(directives[0], "upgrade_ops", None)
    if upgrade_ops is not None and _drops_objects(upgrade_ops):
        raise SystemExit(
            "Refusing to autogenerate a revision that drops attempts or content units. "
            "Set ALLOW_ALEMBIC_DROPS=1 if the drop is intended."
        )


def _context_options() -> dict:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "process_revision_directives": _refuse_drops,
    }


def run_migrations_offline() -> None:
    context.configure(
        url=settings.DATABASE_URL,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_context_options(),
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
        context.configure(connection=connection, **_context_options())

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
