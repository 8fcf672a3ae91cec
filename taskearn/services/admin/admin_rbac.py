# -*- coding: utf-8 -*-
# taskearn/services/admin/admin_rbac.py
# =============================================================================
# TaskEarn - RBAC для админ-панели
# -----------------------------------------------------------------------------
# Назначение:
#   • Централизованная проверка прав администратора.
#   • Выдача/снятие роли admin с синхронизацией отображаемого profiles.role.
#   • Автовыдача роли фиксированному аккаунту ADMIN_EMAIL при первом входе.
#
# Инварианты:
#   • Единственный источник истины - строка (user_id, 'admin') в admin_roles.
#     profiles.role только отображается и на доступ не влияет.
#   • Снять роль с самого себя нельзя (админка не должна остаться без входа).
#
# Как использовать:
#   • В зависимостях FastAPI: require_admin → is_admin(db, user_id).
#   • В роутерах: grant_admin / revoke_admin.
# =============================================================================

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.core.config_core import get_settings
from taskearn.core.errors_core import NotFoundError, PermissionDeniedError, ValidationError
from taskearn.core.logging_core import get_logger
from taskearn.crud.user_crud import ROLE_ADMIN, ProfileCRUD, UserCRUD
from taskearn.models import Profile

logger = get_logger(__name__)
S = get_settings()

ROLE_USER = "user"


async def is_admin(db: AsyncSession, user_id: str) -> bool:
    return await UserCRUD(db).has_role(user_id, ROLE_ADMIN)


async def require_admin_role(db: AsyncSession, user_id: str) -> None:
    if not await is_admin(db, user_id):
        logger.warning("admin access denied: user=%s", user_id)
        raise PermissionDeniedError()


async def _sync_profile_role(db: AsyncSession, user_id: str, role: str) -> None:
    await db.execute(
        update(Profile)
        .where(Profile.user_id == user_id)
        .values(role=role)
        .execution_options(synchronize_session=False)
    )


async def grant_admin(db: AsyncSession, *, user_id: str, granted_by: str) -> bool:
    """Выдать роль admin (повторная выдача безопасна). Возвращает True."""
    if await ProfileCRUD(db).get_by_user_id(user_id) is None:
        raise NotFoundError("User not found.", details={"user_id": user_id})
    await UserCRUD(db).add_role(user_id, ROLE_ADMIN)
    await _sync_profile_role(db, user_id, ROLE_ADMIN)
    await db.commit()
    logger.info("admin role granted: user=%s by=%s", user_id, granted_by)
    return True


async def revoke_admin(db: AsyncSession, *, user_id: str, revoked_by: str) -> bool:
    """Снять роль admin. Возвращает False, если роли и так не было."""
    if user_id == revoked_by:
        raise ValidationError("You cannot remove your own admin role.")
    removed = await UserCRUD(db).remove_role(user_id, ROLE_ADMIN)
    await _sync_profile_role(db, user_id, ROLE_USER)
    await db.commit()
    logger.info("admin role revoked: user=%s by=%s removed=%s", user_id, revoked_by, removed)
    return bool(removed)


async def ensure_admin_role(db: AsyncSession, *, user_id: str, email: str) -> bool:
    """
    Фиксированный админ-аккаунт (ADMIN_EMAIL) получает роль при первом входе.
    Для остальных аккаунтов ничего не делает и возвращает текущее состояние.
    """
    if (email or "").strip().lower() != S.ADMIN_EMAIL.strip().lower():
        return await is_admin(db, user_id)
    if not await is_admin(db, user_id):
        await UserCRUD(db).add_role(user_id, ROLE_ADMIN)
        await _sync_profile_role(db, user_id, ROLE_ADMIN)
        await db.commit()
        logger.info("admin role bootstrapped for %s", email)
    return True


__all__ = [
    "ROLE_ADMIN",
    "ROLE_USER",
    "is_admin",
    "require_admin_role",
    "grant_admin",
    "revoke_admin",
    "ensure_admin_role",
]
