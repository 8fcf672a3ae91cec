# -*- coding: utf-8 -*-
# taskearn/routes/referrals_routes.py
# =============================================================================
# TaskEarn - экран «Рефералы»: код, ссылка, итоги, список приглашённых.
# Атрибуция выполняется при регистрации (auth_service.sign_up), не здесь.
# =============================================================================

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.deps import get_db, require_user
from taskearn.schemas.referral_schemas import ReferralOverviewOut
from taskearn.services.auth_service import SessionContext
from taskearn.services.referral_service import get_referral_overview

router = APIRouter(prefix="/referrals", tags=["referrals"])


@router.get("", response_model=ReferralOverviewOut)
async def referrals_route(
    ctx: SessionContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> ReferralOverviewOut:
    return await get_referral_overview(db, user_id=ctx.user_id)
