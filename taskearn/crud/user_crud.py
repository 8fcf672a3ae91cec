"""User CRUD: credentials, sessions, admin roles and profiles.

======================================================================
Назначение:
    • Безопасный доступ к таблицам auth_users, auth_sessions, admin_roles
      и profiles: поиск, создание, блокировка строки, списки для админки.
    • Денежные агрегаты здесь не изменяются; инкременты балансов выполняет
      только transactions_service.

Канон/инварианты:
    • Email хранится в нижнем регистре, уникален.
    • Реферальный код профиля уникален (UNIQUE в схеме).
    • Права администратора = наличие строки (user_id, 'admin') в admin_roles.

Запреты:
    • Не обновлять балансы в CRUD; только сервисы двигают деньги.
    • commit выполняет вызывающий сервис.
======================================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from sqlalchemy import Select, delete, exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.core.logging_core import get_logger
from taskearn.models import AdminRole, AuthSession, AuthUser, Profile

logger = get_logger(__name__)

ROLE_ADMIN = "admin"


class UserCRUD:
    """CRUD-обёртка для учётных записей, сессий и ролей."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ---------------------------- auth_users ----------------------------
    async def get_by_email(self, email: str) -> AuthUser | None:
        """Найти учётную запись по email (регистр не важен)."""

        stmt: Select[AuthUser] = select(AuthUser).where(AuthUser.email == email.strip().lower())
        return await self.session.scalar(stmt)

    async def get_by_id(self, user_id: str) -> AuthUser | None:
        return await self.session.get(AuthUser, user_id)

    async def create_user(self, *, user_id: str, email: str, password_hash: str) -> AuthUser:
        """Создать учётную запись. Дубликат email упадёт IntegrityError на flush."""

        user = AuthUser(id=user_id, email=email.strip().lower(), password_hash=password_hash)
        self.session.add(user)
        await self.session.flush()
        return user

    # --------------------------- auth_sessions --------------------------
    async def add_session(self, *, session_id: str, user_id: str, expires_at: datetime) -> AuthSession:
        row = AuthSession(id=session_id, user_id=user_id, expires_at=expires_at)
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_session(self, session_id: str) -> AuthSession | None:
        return await self.session.get(AuthSession, session_id, populate_existing=True)

    # ---------------------------- admin_roles ---------------------------
    async def has_role(self, user_id: str, role: str = ROLE_ADMIN) -> bool:
        """True, если у пользователя есть строка роли."""

        stmt = select(exists().where(AdminRole.user_id == user_id, AdminRole.role == role))
        return bool(await self.session.scalar(stmt))

    async def add_role(self, user_id: str, role: str = ROLE_ADMIN) -> AdminRole:
        """Read-through: повторная выдача роли возвращает существующую строку."""

        stmt: Select[AdminRole] = select(AdminRole).where(AdminRole.user_id == user_id, AdminRole.role == role)
        existing = await self.session.scalar(stmt)
        if existing:
            return existing
        row = AdminRole(user_id=user_id, role=role)
        self.session.add(row)
        await self.session.flush()
        return row

    async def remove_role(self, user_id: str, role: str = ROLE_ADMIN) -> int:
        """Удалить строку роли. Возвращает число удалённых строк."""

        result = await self.session.execute(
            delete(AdminRole).where(AdminRole.user_id == user_id, AdminRole.role == role)
        )
        return int(result.rowcount or 0)

    async def list_admin_ids(self) -> set[str]:
        stmt = select(AdminRole.user_id).where(AdminRole.role == ROLE_ADMIN)
        rows: Iterable[str] = await self.session.scalars(stmt)
        return set(rows)


class ProfileCRUD:
    """CRUD-обёртка для profiles без денежных побочных эффектов."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_user_id(self, user_id: str) -> Profile | None:
        """Получить профиль по UUID пользователя."""

        stmt: Select[Profile] = (
            select(Profile).where(Profile.user_id == user_id).execution_options(populate_existing=True)
        )
        return await self.session.scalar(stmt)

    async def lock_for_update(self, user_id: str) -> Profile | None:
        """Получить профиль под FOR UPDATE (сериализует дневной лимит заданий).

        Денежные действия здесь не выполняются, только блокировка строки.
        """

        stmt: Select[Profile] = (
            select(Profile)
            .where(Profile.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return await self.session.scalar(stmt)

    async def get_by_referral_code(self, code: str) -> Profile | None:
        stmt: Select[Profile] = select(Profile).where(Profile.referral_code == code)
        return await self.session.scalar(stmt)

    async def referral_code_exists(self, code: str) -> bool:
        stmt = select(exists().where(Profile.referral_code == code))
        return bool(await self.session.scalar(stmt))

    async def create_profile(
        self,
        *,
        user_id: str,
        email: str | None,
        username: str | None,
        referral_code: str,
    ) -> Profile:
        """Создать профиль с нулевыми агрегатами. commit - за сервисом."""

        profile = Profile(
            user_id=user_id,
            email=email,
            username=username,
            referral_code=referral_code,
        )
        self.session.add(profile)
        await self.session.flush()
        return profile

    async def list_profiles(self, *, limit: int = 100) -> list[Profile]:
        """Профили для админки: новые сверху."""

        stmt: Select[Profile] = (
            select(Profile)
            .order_by(Profile.created_at.desc(), Profile.id.desc())
            .limit(limit)
        )
        rows: Iterable[Profile] = await self.session.scalars(stmt)
        return list(rows)

    async def usernames_by_ids(self, user_ids: Iterable[str]) -> dict[str, str | None]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        stmt = select(Profile.user_id, Profile.username).where(Profile.user_id.in_(ids))
        rows = await self.session.execute(stmt)
        return {uid: name for uid, name in rows.all()}

    async def count(self) -> int:
        return int(await self.session.scalar(select(func.count(Profile.id))) or 0)


__all__ = ["ROLE_ADMIN", "UserCRUD", "ProfileCRUD"]

# ======================================================================
# Пояснения «для чайника»:
#   • CRUD не трогает деньги и не меняет балансы - только читает/создаёт
#     записи и блокирует строку профиля для сервиса заданий.
#   • Повторная выдача роли безопасна: add_role() сначала ищет строку.
# ======================================================================
