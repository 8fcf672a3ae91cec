# -*- coding: utf-8 -*-
# taskearn/deps.py
# =============================================================================
# TaskEarn - общие зависимости FastAPI: БД-сессия, контекст сессии,
#            админ-гейт, диспетчер уведомлений.
# -----------------------------------------------------------------------------
# Канон/требования:
#   • Каждый обработчик получает SessionContext явно через Depends.
#   • Права администратора проверяются по admin_roles на КАЖДОМ запросе,
#     а не по содержимому токена.
#   • uid пользователя попадает в контекст логирования запроса.
#
# Этот модуль НЕ делает бизнес-логику, только инфраструктуру/валидацию.
# =============================================================================
from __future__ import annotations

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.core.database_core import get_db
from taskearn.core.errors_core import PermissionDeniedError
from taskearn.core.logging_core import get_logger, set_request_context
from taskearn.core.security_core import auth_scheme
from taskearn.services.auth_service import SessionContext, resolve_session
from taskearn.services.notifications_service import NotificationDispatcher, get_dispatcher

logger = get_logger(__name__)


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
) -> Optional[str]:
    if credentials is None or (credentials.scheme or "").lower() != "bearer":
        return None
    return credentials.credentials


async def require_user(
    token: Optional[str] = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_db),
) -> SessionContext:
    """401, если токена нет, он истёк или сессия отозвана."""
    ctx = await resolve_session(db, token)
    set_request_context(user_id=ctx.user_id)
    return ctx


async def require_admin(ctx: SessionContext = Depends(require_user)) -> SessionContext:
    """403, если у пользователя нет строки admin в admin_roles."""
    if not ctx.is_admin:
        logger.warning("admin endpoint denied: user=%s", ctx.user_id)
        raise PermissionDeniedError()
    return ctx


def get_notifier() -> NotificationDispatcher:
    return get_dispatcher()


__all__ = [
    "get_db",
    "get_bearer_token",
    "require_user",
    "require_admin",
    "get_notifier",
]
