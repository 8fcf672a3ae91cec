# -*- coding: utf-8 -*-
# taskearn/schemas/user_schemas.py
# =============================================================================
# Назначение кода:
# Pydantic-схемы для входа/регистрации, профиля пользователя и VIP-витрины.
#
# Канон:
# • Email нормализуется в нижний регистр.
# • Пароль не короче 6 символов (как на форме регистрации).
# • Денежные значения наружу - строками с 2 знаками.
# =============================================================================

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from taskearn.schemas.common_schemas import Money, ORMModel


# -----------------------------------------------------------------------------
# Вход/регистрация
# -----------------------------------------------------------------------------
class SignUpIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    username: str = Field(..., min_length=1, max_length=64)
    referral_code: Optional[str] = Field(None, max_length=16)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("username")
    @classmethod
    def _strip_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("username must not be blank")
        return v


class SignInIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.strip().lower()


# -----------------------------------------------------------------------------
# Профиль
# -----------------------------------------------------------------------------
class ProfileOut(ORMModel):
    user_id: str
    username: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    payment_method: Optional[str] = None
    wallet_balance: Money
    total_deposited: Money
    total_earned: Money
    referral_earnings: Money
    total_referrals: int = Field(..., ge=0)
    vip_level: int = Field(..., ge=0, le=5)
    referral_code: str
    referred_by_code: Optional[str] = None
    last_task_date: Optional[date] = None
    role: str
    join_date: datetime


class ProfileUpdateIn(BaseModel):
    """Изменение профиля. Все поля опциональны."""

    username: Optional[str] = Field(None, min_length=1, max_length=64)
    phone: Optional[str] = Field(None, max_length=32)
    payment_method: Optional[str] = Field(None, max_length=32)


class SessionOut(BaseModel):
    """Текущее состояние сессии: профиль + флаг администратора."""

    user_id: str
    email: str
    is_admin: bool
    expires_at: datetime
    profile: Optional[ProfileOut] = None


class AuthOut(SessionOut):
    access_token: str
    token_type: str = "bearer"


# -----------------------------------------------------------------------------
# VIP
# -----------------------------------------------------------------------------
class VipTierOut(BaseModel):
    level: int
    name: str
    requirement: Money
    daily_tasks: int
    bonus_percent: int
    benefits: List[str]


class VipProgressOut(BaseModel):
    current: VipTierOut
    next: Optional[VipTierOut] = None
    activity_total: Money
    amount_needed: Money
    progress_percent: float = Field(..., ge=0, le=100)


__all__ = [
    "SignUpIn",
    "SignInIn",
    "ProfileOut",
    "ProfileUpdateIn",
    "SessionOut",
    "AuthOut",
    "VipTierOut",
    "VipProgressOut",
]
