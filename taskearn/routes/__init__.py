# -*- coding: utf-8 -*-
# taskearn/routes/__init__.py
# =============================================================================
# Назначение кода:
#   Единая точка подключения всех HTTP-роутов TaskEarn. Модуль собирает
#   подмодули роутов и предоставляет:
#     • общий APIRouter (api_router), в который «вмонтированы» все роуты;
#     • функцию register(app, prefix) для подключения в FastAPI;
#     • список подключённых модулей для /health.
#
# Канон/инварианты:
#   • Этот модуль НЕ выполняет бизнес-логику и НЕ трогает деньги - только
#     проводка маршрутов.
#   • Импорт роутов строгий: сломанный модуль роутов должен остановить запуск,
#     а не тихо пропасть из API.
#   • Каждый модуль сам задаёт свой prefix ("/tasks", "/admin", ...).
# =============================================================================

from __future__ import annotations

from typing import List, Tuple

from fastapi import APIRouter, FastAPI

from taskearn.core.logging_core import get_logger
from taskearn.routes import (
    auth_routes,
    notifications_routes,
    referrals_routes,
    tasks_routes,
    user_routes,
    wallet_routes,
)
from taskearn.routes.admin import admin_routes, admin_tasks_routes

logger = get_logger(__name__)

# Порядок важен для читабельности OpenAPI и логов.
ROUTERS: Tuple[Tuple[str, APIRouter], ...] = (
    ("auth_routes", auth_routes.router),
    ("user_routes", user_routes.router),
    ("vip_routes", user_routes.vip_router),
    ("tasks_routes", tasks_routes.router),
    ("wallet_routes", wallet_routes.router),
    ("referrals_routes", referrals_routes.router),
    ("notifications_routes", notifications_routes.router),
    ("admin_routes", admin_routes.router),
    ("admin_tasks_routes", admin_tasks_routes.router),
)

api_router = APIRouter()
for _name, _router in ROUTERS:
    api_router.include_router(_router)


def register(app: FastAPI, prefix: str = "") -> None:
    """
    Регистрирует агрегированный роутер в приложении FastAPI.

    Args:
        app:    экземпляр FastAPI.
        prefix: базовый префикс для всех маршрутов (обычно "/api").
    """
    app.include_router(api_router, prefix=prefix)
    logger.info("routes: зарегистрирован агрегатор (prefix=%r): %s", prefix, ",".join(list_registered_routes()))


def list_registered_routes() -> List[str]:
    return [name for name, _ in ROUTERS]


__all__ = ["api_router", "register", "list_registered_routes", "ROUTERS"]
