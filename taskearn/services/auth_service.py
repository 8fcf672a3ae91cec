# -*- coding: utf-8 -*-
# taskearn/services/auth_service.py
# =============================================================================
# TaskEarn - сервис идентификации и сессий
# -----------------------------------------------------------------------------
# Что умеет:
#   • sign_up / sign_in / sign_out - жизненный цикл учётной записи и сессии.
#   • resolve_session(token) - JWT → SessionContext (профиль + флаг admin).
#   • refresh_profile(ctx) - перечитать профиль и флаг admin.
#   • admin_login - вход в админ-панель фиксированным аккаунтом ADMIN_EMAIL.
#
# Канон:
#   • SessionContext неизменяем и передаётся в каждый обработчик явно:
#     глобального «текущего пользователя» в процессе нет.
#   • Сессия действительна, пока JWT не истёк и строка auth_sessions не
#     отозвана (revoked_at IS NULL). jti токена = id строки сессии.
#   • Флаг is_admin берётся ТОЛЬКО из admin_roles.
#   • Реферальная атрибуция при регистрации - best-effort: её неудача не
#     мешает созданию аккаунта.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.core.config_core import get_settings
from taskearn.core.errors_core import AuthError, ConflictError, PermissionDeniedError
from taskearn.core.logging_core import get_logger
from taskearn.core.security_core import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from taskearn.core.utils_core import new_user_id, utcnow
from taskearn.crud.user_crud import UserCRUD
from taskearn.models import AuthSession, AuthUser
from taskearn.schemas.user_schemas import ProfileOut
from taskearn.services.admin.admin_rbac import ensure_admin_role, is_admin
from taskearn.services.profile_service import create_profile, ensure_profile
from taskearn.services.referral_service import attribute_referral

logger = get_logger(__name__)
settings = get_settings()


# -----------------------------------------------------------------------------
# DTO
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class SessionContext:
    """Снимок аутентифицированной сессии на момент запроса."""

    user_id: str
    email: str
    session_id: str
    expires_at: datetime
    is_admin: bool
    profile: Optional[ProfileOut] = None


@dataclass(frozen=True)
class AuthResult:
    access_token: str
    context: SessionContext


async def _load_context(db: AsyncSession, *, user: AuthUser, session_id: str, expires_at: datetime) -> SessionContext:
    profile = await ensure_profile(db, user_id=user.id, email=user.email)
    return SessionContext(
        user_id=user.id,
        email=user.email,
        session_id=session_id,
        expires_at=expires_at,
        is_admin=await is_admin(db, user.id),
        profile=ProfileOut.model_validate(profile),
    )


async def _issue_session(db: AsyncSession, user: AuthUser) -> AuthResult:
    issued = create_access_token(user.id, extra={"email": user.email})
    await UserCRUD(db).add_session(session_id=issued.jti, user_id=user.id, expires_at=issued.expires_at)
    await db.commit()
    ctx = await _load_context(db, user=user, session_id=issued.jti, expires_at=issued.expires_at)
    return AuthResult(access_token=issued.token, context=ctx)


# -----------------------------------------------------------------------------
# Публичное API
# -----------------------------------------------------------------------------
async def sign_up(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    username: str,
    referral_code: Optional[str] = None,
) -> AuthResult:
    """
    Регистрация: учётка + профиль (одной транзакцией), затем попытка
    реферальной атрибуции, затем выдача сессии.
    """
    users = UserCRUD(db)
    email = email.strip().lower()
    if await users.get_by_email(email) is not None:
        raise ConflictError("An account with this email already exists.", details={"field": "email"})

    user_id = new_user_id()
    try:
        user = await users.create_user(user_id=user_id, email=email, password_hash=hash_password(password))
        await create_profile(db, user_id=user_id, email=email, username=username)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("An account with this email already exists.", details={"field": "email"}) from None

    logger.info("user signed up: user=%s", user_id)
    if referral_code:
        await attribute_referral(db, referrer_code=referral_code, new_user_id=user_id)
        # После отката внутри атрибуции объект мог устареть: перечитываем.
        user = await users.get_by_id(user_id) or user

    return await _issue_session(db, user)


async def sign_in(db: AsyncSession, *, email: str, password: str) -> AuthResult:
    user = await UserCRUD(db).get_by_email(email)
    if user is None or not verify_password(password, user.password_hash):
        raise AuthError("Invalid email or password.")
    logger.info("user signed in: user=%s", user.id)
    return await _issue_session(db, user)


async def sign_out(db: AsyncSession, ctx: SessionContext) -> None:
    """Отозвать сессию: последующие запросы с этим токеном получат 401."""
    await db.execute(
        update(AuthSession)
        .where(AuthSession.id == ctx.session_id, AuthSession.revoked_at.is_(None))
        .values(revoked_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    logger.info("user signed out: user=%s", ctx.user_id)


async def resolve_session(db: AsyncSession, token: Optional[str]) -> SessionContext:
    """JWT → SessionContext. Любая неудача → AuthError (401)."""
    if not token:
        raise AuthError()
    payload = decode_access_token(token)

    users = UserCRUD(db)
    row = await users.get_session(str(payload["jti"]))
    if row is None or row.user_id != payload["sub"] or row.revoked_at is not None:
        raise AuthError("Session is no longer valid.")
    user = await users.get_by_id(row.user_id)
    if user is None:
        raise AuthError("Session is no longer valid.")
    return await _load_context(db, user=user, session_id=row.id, expires_at=row.expires_at)


async def refresh_profile(db: AsyncSession, ctx: SessionContext) -> SessionContext:
    """Новый контекст с актуальными профилем и флагом admin."""
    profile = await ensure_profile(db, user_id=ctx.user_id, email=ctx.email)
    return replace(
        ctx,
        is_admin=await is_admin(db, ctx.user_id),
        profile=ProfileOut.model_validate(profile),
    )


async def admin_login(db: AsyncSession, *, email: str, password: str) -> AuthResult:
    """
    Вход в админ-панель. Разрешён только аккаунту ADMIN_EMAIL; роль
    выдаётся ему при первом входе. Итоговая проверка - по admin_roles.
    """
    if email.strip().lower() != settings.ADMIN_EMAIL.strip().lower():
        raise PermissionDeniedError("Invalid admin credentials.")

    result = await sign_in(db, email=email, password=password)
    ctx = result.context
    await ensure_admin_role(db, user_id=ctx.user_id, email=ctx.email)
    ctx = await refresh_profile(db, ctx)
    if not ctx.is_admin:
        await sign_out(db, ctx)
        raise PermissionDeniedError()
    logger.info("admin signed in: user=%s", ctx.user_id)
    return AuthResult(access_token=result.access_token, context=ctx)


__all__ = [
    "SessionContext",
    "AuthResult",
    "sign_up",
    "sign_in",
    "sign_out",
    "resolve_session",
    "refresh_profile",
    "admin_login",
]

# =============================================================================
# Пояснения «для чайника»:
#   • Токен сам по себе ничего не разрешает: каждый запрос заново читает
#     строку сессии, профиль и роль. Отозванная сессия или снятая роль
#     действуют сразу.
# =============================================================================
