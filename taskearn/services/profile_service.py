# -*- coding: utf-8 -*-
# taskearn/services/profile_service.py
# =============================================================================
# Назначение кода:
#   Сервис профиля пользователя TaskEarn:
#   • ensure_profile - найти профиль или создать его по email (первый вход).
#   • update_profile - имя, телефон, способ выплат.
#   • get_vip_progress - прогресс до следующего VIP-уровня.
#
# Канон/инварианты:
#   • Денежные поля профиля здесь НЕ меняются (только transactions_service).
#   • Новый профиль: нулевые агрегаты, VIP 0, уникальный реферальный код.
# =============================================================================

from __future__ import annotations

from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.core.errors_core import NotFoundError, ValidationError
from taskearn.core.logging_core import get_logger
from taskearn.core.utils_core import utcnow
from taskearn.crud.user_crud import ProfileCRUD
from taskearn.models import Profile
from taskearn.services.referral_service import generate_referral_code
from taskearn.services.vip_service import VipProgress, vip_progress

logger = get_logger(__name__)


def default_username(email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    return email.split("@", 1)[0][:64] or None


async def create_profile(
    db: AsyncSession,
    *,
    user_id: str,
    email: Optional[str],
    username: Optional[str],
) -> Profile:
    """Создать профиль с новым реферальным кодом. commit - за вызывающим."""
    code = await generate_referral_code(db)
    return await ProfileCRUD(db).create_profile(
        user_id=user_id,
        email=email,
        username=username or default_username(email),
        referral_code=code,
    )


async def ensure_profile(db: AsyncSession, *, user_id: str, email: Optional[str]) -> Profile:
    """
    Профиль пользователя; если его нет (учётка создана в обход sign_up),
    создаётся из email. Параллельное создание ловится UNIQUE(user_id).
    """
    crud = ProfileCRUD(db)
    profile = await crud.get_by_user_id(user_id)
    if profile is not None:
        return profile

    try:
        await create_profile(db, user_id=user_id, email=email, username=None)
        await db.commit()
        logger.info("profile created on demand: user=%s", user_id)
    except IntegrityError:
        await db.rollback()
    profile = await crud.get_by_user_id(user_id)
    if profile is None:
        raise NotFoundError("Profile not found.", details={"user_id": user_id})
    return profile


async def update_profile(
    db: AsyncSession,
    *,
    user_id: str,
    username: Optional[str] = None,
    phone: Optional[str] = None,
    payment_method: Optional[str] = None,
) -> Profile:
    """Обновить анкетные поля. None - поле не трогаем; пустая строка очищает phone/payment_method."""
    values: dict[str, object] = {}
    if username is not None:
        name = username.strip()
        if not name:
            raise ValidationError("Username cannot be empty.", details={"field": "username"})
        values["username"] = name
    if phone is not None:
        values["phone"] = phone.strip() or None
    if payment_method is not None:
        values["payment_method"] = payment_method.strip() or None

    if values:
        values["updated_at"] = utcnow()
        result = await db.execute(
            update(Profile)
            .where(Profile.user_id == user_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            raise NotFoundError("Profile not found.", details={"user_id": user_id})
        await db.commit()

    profile = await ProfileCRUD(db).get_by_user_id(user_id)
    if profile is None:
        raise NotFoundError("Profile not found.", details={"user_id": user_id})
    return profile


async def get_vip_progress(db: AsyncSession, *, user_id: str) -> VipProgress:
    profile = await ProfileCRUD(db).get_by_user_id(user_id)
    if profile is None:
        raise NotFoundError("Profile not found.", details={"user_id": user_id})
    return vip_progress(profile.total_deposited, profile.total_earned, int(profile.vip_level))


__all__ = [
    "default_username",
    "create_profile",
    "ensure_profile",
    "update_profile",
    "get_vip_progress",
]
