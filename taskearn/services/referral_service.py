# -*- coding: utf-8 -*-
# taskearn/services/referral_service.py
# =============================================================================
# Назначение кода:
#   Сервис реферальной системы TaskEarn:
#   • Генерация постоянного реферального кода при создании профиля.
#   • Атрибуция приглашения при регистрации по коду (attribute_referral).
#   • Витрина «Рефералы»: код, ссылка, итоги и список приглашённых.
#
# Канон/инварианты:
#   • Бонус фиксированный: REFERRAL_BONUS_USD (по умолчанию $1.00) получает
#     только пригласивший; приглашённому бонус не положен.
#   • Один приглашённый атрибутируется не более одного раза (UNIQUE referred_id).
#   • Самоприглашение запрещено (CHECK referrer_id <> referred_id + проверка).
#   • Начисление идёт ТОЛЬКО через transactions_service (атомарный UPDATE).
#
# Ошибки:
#   • Атрибуция «тихая»: неизвестный/пустой код, самоприглашение, повтор и
#     гонка не ломают регистрацию. Причина пишется в лог, возвращается False.
# =============================================================================

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.core.config_core import get_settings
from taskearn.core.errors_core import NotFoundError, ReferralError, TaskEarnError
from taskearn.core.logging_core import get_logger
from taskearn.core.utils_core import gen_ref_code, quantize_money, utcnow
from taskearn.crud.referrals_crud import ReferralsCRUD
from taskearn.crud.user_crud import ProfileCRUD
from taskearn.models import Profile
from taskearn.models.transactions_models import STATUS_COMPLETED, TX_REFERRAL_BONUS
from taskearn.schemas.referral_schemas import ReferralItemOut, ReferralOverviewOut
from taskearn.services.transactions_service import append_ledger, credit_profile

logger = get_logger(__name__)
settings = get_settings()

REF_CODE_MAX_ATTEMPTS = 10


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


async def generate_referral_code(db: AsyncSession) -> str:
    """
    Уникальный код из безопасного алфавита. Коллизия маловероятна
    (32^8 вариантов), но проверяется; после REF_CODE_MAX_ATTEMPTS - ошибка.
    """
    crud = ProfileCRUD(db)
    for _ in range(REF_CODE_MAX_ATTEMPTS):
        code = gen_ref_code(settings.REFERRAL_CODE_LENGTH)
        if not await crud.referral_code_exists(code):
            return code
    raise TaskEarnError(
        code="referral_code_exhausted",
        message="Could not allocate a referral code.",
        http_status=500,
    )


def _check(condition: bool, reason: str, **ctx: object) -> None:
    if not condition:
        raise ReferralError(reason, details=dict(ctx))


async def attribute_referral(db: AsyncSession, *, referrer_code: Optional[str], new_user_id: str) -> bool:
    """
    Привязать нового пользователя к пригласившему и начислить бонус.

    Всё в одной транзакции: referred_by_code у нового профиля, запись
    referrals, +1 к total_referrals, +бонус к referral_earnings и
    wallet_balance, запись referral_bonus в журнал. Возвращает True при успехе.
    """
    code = normalize_code(referrer_code)
    profiles = ProfileCRUD(db)
    referrals = ReferralsCRUD(db)
    bonus = quantize_money(settings.REFERRAL_BONUS_USD)

    try:
        _check(bool(code), "empty code", user=new_user_id)
        referrer = await profiles.get_by_referral_code(code)
        _check(referrer is not None, "unknown code", code=code, user=new_user_id)
        _check(referrer.user_id != new_user_id, "self referral", code=code, user=new_user_id)
        _check(await profiles.get_by_user_id(new_user_id) is not None, "profile missing", user=new_user_id)
        _check(
            await referrals.get_by_referred(new_user_id) is None,
            "already referred",
            user=new_user_id,
        )

        await db.execute(
            update(Profile)
            .where(Profile.user_id == new_user_id)
            .values(referred_by_code=code, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await referrals.add(referrer_id=referrer.user_id, referred_id=new_user_id, bonus=bonus)
        await credit_profile(
            db,
            user_id=referrer.user_id,
            amount=bonus,
            referral=True,
            referrals_delta=1,
        )
        await append_ledger(
            db,
            user_id=referrer.user_id,
            transaction_type=TX_REFERRAL_BONUS,
            amount=bonus,
            status=STATUS_COMPLETED,
            description="Referral bonus",
        )
        await db.commit()
    except ReferralError as exc:
        # Проверки идут до первой записи: откатывать нечего.
        logger.warning("referral not attributed: %s %s", exc.message, exc.details)
        return False
    except IntegrityError:
        await db.rollback()
        logger.warning("referral not attributed: concurrent attribution user=%s", new_user_id)
        return False
    except (SQLAlchemyError, NotFoundError):
        await db.rollback()
        logger.exception("referral attribution failed: code=%s user=%s", code, new_user_id)
        return False

    logger.info("referral attributed: referrer=%s referred=%s bonus=%s", referrer.user_id, new_user_id, bonus)
    return True


async def get_referral_overview(db: AsyncSession, *, user_id: str) -> ReferralOverviewOut:
    """Экран «Рефералы» для пользователя."""
    profile = await ProfileCRUD(db).get_by_user_id(user_id)
    if profile is None:
        raise NotFoundError("Profile not found.", details={"user_id": user_id})

    items = await ReferralsCRUD(db).list_for_referrer(user_id)
    return ReferralOverviewOut(
        referral_code=profile.referral_code,
        referral_link=settings.referral_link(profile.referral_code),
        total_referrals=int(profile.total_referrals),
        referral_earnings=quantize_money(profile.referral_earnings),
        bonus_per_referral=quantize_money(settings.REFERRAL_BONUS_USD),
        referrals=[ReferralItemOut(**item) for item in items],
    )


def bonus_amount() -> Decimal:
    return quantize_money(settings.REFERRAL_BONUS_USD)


__all__ = [
    "REF_CODE_MAX_ATTEMPTS",
    "normalize_code",
    "generate_referral_code",
    "attribute_referral",
    "get_referral_overview",
    "bonus_amount",
]
