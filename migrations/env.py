# -*- coding: utf-8 -*-
"""Alembic environment for TaskEarn (async).

Назначение:
    • Настроить Alembic для работы с async SQLAlchemy (PostgreSQL/asyncpg).
    • Подтянуть Declarative Base со всеми моделями TaskEarn.
    • Запустить миграции в оффлайн/онлайн-режиме.

Канон/инварианты:
    • Не выполняет бизнес-логики и не трогает деньги, только DDL.
    • Единственный источник DSN - config_core (DATABASE_URL).
    • compare_type/compare_server_default включены для точности Numeric(18,2).
"""

from __future__ import annotations

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import async_engine_from_config

from taskearn import models  # noqa: F401  регистрирует модели в metadata
from taskearn.core.config_core import get_settings
from taskearn.core.database_core import Base
from taskearn.core.logging_core import get_logger

# -----------------------------------------------------------------------------
# Базовая конфигурация Alembic
# -----------------------------------------------------------------------------
config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

logger = get_logger(__name__)
settings = get_settings()

db_url = settings.database_url_async()
config.set_main_option("sqlalchemy.url", db_url)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Запускает миграции без подключения к БД (выводит SQL)."""

    context.configure(
        url=db_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Создаёт async engine и запускает миграции."""

    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section) or {},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()
    logger.info("migrations applied")


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())


# ============================================================================
# Пояснения «для чайника»:
#   • Этот файл не создаёт таблицы сам - только настраивает Alembic.
#   • URL БД берётся из .env (DATABASE_URL) и приводится к asyncpg.
#   • Оффлайн-режим (`alembic upgrade head --sql`) полезен для ревью SQL.
# ============================================================================
