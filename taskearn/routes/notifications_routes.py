# -*- coding: utf-8 -*-
# taskearn/routes/notifications_routes.py
# =============================================================================
# TaskEarn - регистрация браузерных push-подписок
# -----------------------------------------------------------------------------
#   • GET    /notifications/vapid-public-key    - ключ для PushManager.subscribe
#   • GET    /notifications/push-subscriptions  - подписки текущего пользователя
#   • POST   /notifications/push-subscriptions  - сохранить подписку (upsert)
#   • DELETE /notifications/push-subscriptions  - удалить подписку по endpoint
# =============================================================================

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.crud.notifications_crud import PushSubscriptionsCRUD
from taskearn.deps import get_db, require_user
from taskearn.schemas.notifications_schemas import PushSubscriptionIn, PushUnsubscribeIn, VapidKeyOut
from taskearn.services.auth_service import SessionContext
from taskearn.services.notifications_service import (
    delete_push_subscription,
    save_push_subscription,
    vapid_public_key,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/vapid-public-key", response_model=VapidKeyOut)
async def vapid_key_route() -> VapidKeyOut:
    return VapidKeyOut(**vapid_public_key())


@router.get("/push-subscriptions")
async def list_subscriptions_route(
    ctx: SessionContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> List[Dict[str, Any]]:
    rows = await PushSubscriptionsCRUD(db).list_for_user(ctx.user_id)
    return [{"id": r.id, "endpoint": r.endpoint, "created_at": r.created_at} for r in rows]


@router.post("/push-subscriptions", status_code=status.HTTP_201_CREATED)
async def subscribe_route(
    payload: PushSubscriptionIn,
    ctx: SessionContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    row = await save_push_subscription(
        db,
        user_id=ctx.user_id,
        endpoint=payload.endpoint,
        p256dh=payload.keys.p256dh,
        auth=payload.keys.auth,
    )
    return {"id": row.id, "endpoint": row.endpoint}


@router.delete("/push-subscriptions")
async def unsubscribe_route(
    payload: PushUnsubscribeIn,
    ctx: SessionContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, int]:
    removed = await delete_push_subscription(db, user_id=ctx.user_id, endpoint=payload.endpoint)
    return {"removed": removed}
