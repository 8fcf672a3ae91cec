# -*- coding: utf-8 -*-
# taskearn/routes/auth_routes.py
# =============================================================================
# TaskEarn - сессии: регистрация, вход, выход, текущая сессия, вход админа
# -----------------------------------------------------------------------------
# Канон / инварианты:
#   • Роут только валидирует вход и вызывает auth_service.
#   • Ответ на вход/регистрацию содержит access_token и снимок сессии
#     (профиль + is_admin из admin_roles).
# =============================================================================

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.core.logging_core import get_logger
from taskearn.deps import get_db, require_user
from taskearn.schemas.user_schemas import AuthOut, SessionOut, SignInIn, SignUpIn
from taskearn.services.auth_service import (
    AuthResult,
    SessionContext,
    admin_login,
    refresh_profile,
    sign_in,
    sign_out,
    sign_up,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def session_out(ctx: SessionContext) -> SessionOut:
    return SessionOut(
        user_id=ctx.user_id,
        email=ctx.email,
        is_admin=ctx.is_admin,
        expires_at=ctx.expires_at,
        profile=ctx.profile,
    )


def auth_out(result: AuthResult) -> AuthOut:
    return AuthOut(access_token=result.access_token, **session_out(result.context).model_dump())


@router.post("/sign-up", response_model=AuthOut, status_code=status.HTTP_201_CREATED)
async def sign_up_route(payload: SignUpIn, db: AsyncSession = Depends(get_db)) -> AuthOut:
    result = await sign_up(
        db,
        email=payload.email,
        password=payload.password,
        username=payload.username,
        referral_code=payload.referral_code,
    )
    return auth_out(result)


@router.post("/sign-in", response_model=AuthOut)
async def sign_in_route(payload: SignInIn, db: AsyncSession = Depends(get_db)) -> AuthOut:
    return auth_out(await sign_in(db, email=payload.email, password=payload.password))


@router.post("/admin-login", response_model=AuthOut)
async def admin_login_route(payload: SignInIn, db: AsyncSession = Depends(get_db)) -> AuthOut:
    return auth_out(await admin_login(db, email=payload.email, password=payload.password))


@router.post("/sign-out", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out_route(
    ctx: SessionContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    await sign_out(db, ctx)


@router.get("/session", response_model=SessionOut)
async def session_route(
    ctx: SessionContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> SessionOut:
    return session_out(await refresh_profile(db, ctx))
