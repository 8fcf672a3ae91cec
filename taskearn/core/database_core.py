# -*- coding: utf-8 -*-
# taskearn/core/database_core.py
# =============================================================================
# Назначение кода:
#   • Единая точка работы с БД TaskEarn (PostgreSQL + asyncpg + SQLAlchemy 2.0).
#   • Единый Declarative Base для всех моделей.
#   • Создание и конфигурация AsyncEngine и async_sessionmaker.
#   • Безопасная выдача сессий для FastAPI-роутов и сервисов.
#   • Health-утилиты (ping, мягкий реинициализатор).
#
# Канон / инварианты:
#   • Только async-движок (create_async_engine).
#   • DSN берём из Settings.database_url_async().
#   • Сессии expire_on_commit=False (объекты живы после commit()).
#   • Инварианты денег держит СХЕМА (CHECK/UNIQUE), а не только код сервисов.
#
# Запреты:
#   • Никакой бизнес-логики (начисления, модерация) в этом модуле.
# =============================================================================

from __future__ import annotations

import asyncio
from typing import AsyncGenerator, Optional

from sqlalchemy import MetaData, text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from taskearn.core.config_core import get_settings
from taskearn.core.logging_core import get_logger

logger = get_logger(__name__)
settings = get_settings()

# Единые имена ограничений: миграции Alembic стабильны между диалектами.
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Единый declarative Base проекта."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


# -----------------------------------------------------------------------------
# Глобальные объекты: движок и фабрика сессий
# -----------------------------------------------------------------------------
_engine: Optional[AsyncEngine] = None
_SessionFactory: Optional[async_sessionmaker[AsyncSession]] = None
_engine_lock = asyncio.Lock()


def _create_engine() -> AsyncEngine:
    """
    Создаёт новый AsyncEngine на базе актуальных настроек.

    Особенности:
    • pool_pre_ping для раннего обнаружения "умерших" соединений.
    • Для sqlite параметры пула не передаются (у него свой пул).
    • echo включается только в DEBUG-режиме.
    """
    dsn = settings.database_url_async()
    logger.info("Creating async DB engine", extra={"dialect": dsn.split(":", 1)[0]})
    if dsn.startswith("sqlite"):
        return create_async_engine(dsn, echo=settings.DEBUG)
    return create_async_engine(
        dsn,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        echo=settings.DEBUG,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Строит async_sessionmaker поверх переданного движка.

    • expire_on_commit=False - объекты остаются валидными после commit().
    • autoflush=False - явный контроль flush.
    """
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
        class_=AsyncSession,
    )


async def reset_engine() -> None:
    """
    Мягко пересоздаёт движок и фабрику сессий (после серьёзного сбоя
    подключения или смены DSN). Старый движок закрывается через dispose().
    """
    global _engine, _SessionFactory

    async with _engine_lock:
        old_engine = _engine
        new_engine = _create_engine()
        _SessionFactory = create_session_factory(new_engine)
        _engine = new_engine
        logger.info("DB engine has been reset successfully")
        if old_engine is not None:
            await old_engine.dispose()


async def dispose_engine() -> None:
    """Закрывает пул соединений при остановке приложения."""
    global _engine, _SessionFactory

    if _engine is not None:
        await _engine.dispose()
        logger.info("DB engine disposed")
    _engine = None
    _SessionFactory = None


def get_engine() -> AsyncEngine:
    """Возвращает текущий AsyncEngine, создавая его лениво при первом вызове."""
    global _engine, _SessionFactory

    if _engine is None:
        _engine = _create_engine()
        _SessionFactory = create_session_factory(_engine)
        logger.info("DB engine lazily initialized")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Возвращает фабрику сессий (гарантирует, что движок создан)."""
    global _SessionFactory

    if _SessionFactory is None:
        _SessionFactory = create_session_factory(get_engine())
        logger.info("Session factory initialized")
    return _SessionFactory


# -----------------------------------------------------------------------------
# FastAPI-совместимая зависимость: выдача сессии
# -----------------------------------------------------------------------------
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Зависимость для FastAPI-роутов.

    Пример использования:
        @router.get("/users/me")
        async def me(db: AsyncSession = Depends(get_db)):
            ...

    commit управляется сервисами; здесь сессия только выдаётся и закрывается.
    """
    session = get_session_factory()()
    try:
        yield session
    except Exception:
        logger.exception("DB session error")
        await session.rollback()
        raise
    finally:
        await session.close()


# -----------------------------------------------------------------------------
# Health-check / ping
# -----------------------------------------------------------------------------
async def db_ping(engine: Optional[AsyncEngine] = None) -> bool:
    """
    Простейший health-check БД: True, если SELECT 1 прошёл.
    """
    engine = engine or get_engine()
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except (OperationalError, DBAPIError) as exc:
        logger.error("DB ping failed: DB is not reachable", extra={"error": str(exc)})
        return False


__all__ = [
    "Base",
    "AsyncSession",
    "AsyncEngine",
    "get_engine",
    "get_session_factory",
    "create_session_factory",
    "get_db",
    "db_ping",
    "reset_engine",
    "dispose_engine",
]
# =============================================================================
# Пояснения «для чайника»:
#   • Движок не создаётся при импорте: миграции и тесты могут подставить свой.
#   • Тесты строят движок sqlite+aiosqlite и фабрику через
#     create_session_factory(), а в приложении переопределяют get_db.
# =============================================================================
