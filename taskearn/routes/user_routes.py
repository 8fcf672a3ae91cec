# -*- coding: utf-8 -*-
# taskearn/routes/user_routes.py
# =============================================================================
# TaskEarn - профиль пользователя и VIP
# -----------------------------------------------------------------------------
#   • GET   /users/me      - профиль текущего пользователя
#   • PATCH /users/me      - имя, телефон, способ выплат
#   • GET   /users/me/vip  - прогресс до следующего VIP-уровня
#   • GET   /vip/tiers     - таблица уровней (публично)
#
# Денежные поля здесь только читаются.
# =============================================================================

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.deps import get_db, require_user
from taskearn.schemas.user_schemas import ProfileOut, ProfileUpdateIn, VipProgressOut, VipTierOut
from taskearn.services.auth_service import SessionContext
from taskearn.services.profile_service import ensure_profile, get_vip_progress, update_profile
from taskearn.services.vip_service import VipTier, vip_tiers

router = APIRouter(prefix="/users", tags=["users"])
vip_router = APIRouter(prefix="/vip", tags=["vip"])


def _tier_out(tier: VipTier) -> VipTierOut:
    return VipTierOut(
        level=tier.level,
        name=tier.name,
        requirement=tier.requirement,
        daily_tasks=tier.daily_tasks,
        bonus_percent=tier.bonus_percent,
        benefits=list(tier.benefits),
    )


@router.get("/me", response_model=ProfileOut)
async def get_me(
    ctx: SessionContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> ProfileOut:
    profile = await ensure_profile(db, user_id=ctx.user_id, email=ctx.email)
    return ProfileOut.model_validate(profile)


@router.patch("/me", response_model=ProfileOut)
async def patch_me(
    payload: ProfileUpdateIn,
    ctx: SessionContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> ProfileOut:
    profile = await update_profile(
        db,
        user_id=ctx.user_id,
        username=payload.username,
        phone=payload.phone,
        payment_method=payload.payment_method,
    )
    return ProfileOut.model_validate(profile)


@router.get("/me/vip", response_model=VipProgressOut)
async def get_my_vip(
    ctx: SessionContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> VipProgressOut:
    progress = await get_vip_progress(db, user_id=ctx.user_id)
    return VipProgressOut(
        current=_tier_out(progress.current),
        next=_tier_out(progress.next) if progress.next else None,
        activity_total=progress.activity_total,
        amount_needed=progress.amount_needed,
        progress_percent=progress.progress_percent,
    )


@vip_router.get("/tiers", response_model=List[VipTierOut])
async def get_vip_tiers() -> List[VipTierOut]:
    return [_tier_out(t) for t in vip_tiers()]
