# -*- coding: utf-8 -*-
# taskearn/schemas/referral_schemas.py
# =============================================================================
# Назначение кода:
# Схемы экрана «Рефералы»: собственный код, ссылка, итоги и список
# приглашённых.
# =============================================================================

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from taskearn.schemas.common_schemas import Money


class ReferralItemOut(BaseModel):
    id: int
    referred_id: str
    username: Optional[str] = None
    bonus_earned: Money
    created_at: datetime
    join_date: Optional[datetime] = None


class ReferralOverviewOut(BaseModel):
    referral_code: str
    referral_link: str
    total_referrals: int
    referral_earnings: Money
    bonus_per_referral: Money
    referrals: List[ReferralItemOut]


__all__ = ["ReferralItemOut", "ReferralOverviewOut"]
