"""
backend/migrations/env.py — Alembic environment.

Uses DATABASE_URL (or TEST_DATABASE_URL when TEST_RUN=1) from the environment
or the .env files loaded by backend.config.

Run from the project root:
    alembic -c backend/alembic.ini upgrade head
"""

from __future__ import annotations

import os
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import engine_from_config, pool

# Project root on sys.path so the `backend` package imports.
sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

import backend.config  # noqa: E402,F401  (loads .env)
from backend.app.extensions import db  # noqa: E402
from backend.app.models import expense, group, member, split, user  # noqa: E402,F401

target_metadata = db.metadata

if os.getenv("TEST_RUN"):
    db_url = os.environ["TEST_DATABASE_URL"]
else:
    db_url = os.environ["DATABASE_URL"]

# Hosted providers hand out 'postgres://'; SQLAlchemy wants 'postgresql://'.
if db_url.startswith("postgres://"):
    db_url = db_url.replace("postgres://", "postgresql://", 1)

config = context.config
config.set_main_option("sqlalchemy.url", db_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def run_migrations_offline() -> None:
    context.configure(
        url=db_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
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
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
