# ==============================================================================
# TaskEarn - FastAPI application factory
# ------------------------------------------------------------------------------
# Назначение: создаёт и конфигурирует FastAPI-приложение TaskEarn, подключает
# обязательные middleware, обработчики ошибок и роутеры всех разделов.
#
# Канон/инварианты:
#   • Балансы меняют только сервисы (transactions/tasks/referral/settlement);
#     этот модуль не совершает финансовых операций.
#   • Каждый запрос получает request_id (CorrelationIdMiddleware), ошибки
#     отдаются единым JSON-форматом (errors_core).
#   • При остановке дожидаемся фоновых уведомлений и закрываем пул БД.
#
# Запреты:
#   • Не создаёт таблицы: схема ведётся миграциями alembic.
# ==============================================================================
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core import boot_core
from .core.config_core import get_settings
from .core.database_core import db_ping, dispose_engine
from .core.errors_core import setup_exception_handlers
from .core.logging_core import CorrelationIdMiddleware, get_logger
from .models import models_health
from .routes import list_registered_routes, register
from .services.notifications_service import get_dispatcher

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    boot_core()
    yield
    await get_dispatcher().drain()
    await dispose_engine()
    logger.info("TaskEarn API stopped")


def create_app() -> FastAPI:
    """Создать FastAPI-приложение с middleware, обработчиками ошибок и роутерами."""

    settings = get_settings()
    app = FastAPI(title=settings.PROJECT_NAME, version=settings.APP_VERSION, lifespan=lifespan)

    origins = settings.effective_cors_origins()
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.add_middleware(CorrelationIdMiddleware)
    setup_exception_handlers(app)
    register(app, prefix=settings.API_PREFIX)

    @app.get("/health", tags=["health"])
    async def health() -> Dict[str, Any]:
        """Живость сервиса: БД, таблицы в metadata, подключённые роуты."""

        db_ok = await db_ping()
        models = models_health()
        return {
            "status": "ok" if db_ok and models["ok"] else "degraded",
            "version": settings.APP_VERSION,
            "db": db_ok,
            "models": models,
            "routes": list_registered_routes(),
        }

    logger.info("FastAPI app initialised: prefix=%s cors=%s", settings.API_PREFIX, len(origins))
    return app


__all__ = ["create_app", "lifespan"]


# ==============================================================================
# Пояснения «для чайника»:
#   • Этот модуль ничего не пишет в БД и не двигает деньги, только собирает API.
#   • Уведомления отправляются фоном после коммита; при остановке процесса
#     lifespan ждёт, пока они завершатся.
#   • Таблицы создаёт `alembic upgrade head`, а не приложение.
# ==============================================================================
