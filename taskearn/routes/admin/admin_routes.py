# -*- coding: utf-8 -*-
# taskearn/routes/admin/admin_routes.py
# =============================================================================
# Назначение кода:
#   Админские HTTP-ручки TaskEarn: счётчики, пользователи и роли, очередь
#   заявок и их модерация (одиночная и пакетная).
#
# Канон/инварианты (важно):
#   • Доступ только с require_admin (строка admin в admin_roles).
#   • Деньги двигает ТОЛЬКО admin_settlement_service → transactions_service.
#     Здесь нет SQL, только оркестрация.
#   • Уведомления пользователю уходят через общий NotificationDispatcher
#     после commit решения.
# =============================================================================

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.deps import get_db, get_notifier, require_admin
from taskearn.schemas.admin_schemas import AdminRoleOut, AdminStatsOut, AdminUserOut
from taskearn.schemas.transactions_schemas import (
    AdminTransactionOut,
    BulkSettleIn,
    BulkSettleReport,
    SettleIn,
    TransactionOut,
)
from taskearn.services.admin.admin_rbac import grant_admin, revoke_admin
from taskearn.services.admin.admin_settlement_service import (
    bulk_settle,
    list_transactions_admin,
    settle_transaction,
)
from taskearn.services.admin.admin_users_service import get_stats, list_users
from taskearn.services.auth_service import SessionContext
from taskearn.services.notifications_service import NotificationDispatcher

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/stats", response_model=AdminStatsOut)
async def stats_route(
    _: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> AdminStatsOut:
    return await get_stats(db)


@router.get("/users", response_model=List[AdminUserOut])
async def users_route(
    limit: int = Query(100, ge=1, le=500),
    _: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> List[AdminUserOut]:
    return await list_users(db, limit=limit)


@router.post("/users/{user_id}/admin-role", response_model=AdminRoleOut)
async def grant_admin_route(
    user_id: str = Path(..., min_length=1, max_length=36),
    admin: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> AdminRoleOut:
    await grant_admin(db, user_id=user_id, granted_by=admin.user_id)
    return AdminRoleOut(user_id=user_id, is_admin=True)


@router.delete("/users/{user_id}/admin-role", response_model=AdminRoleOut)
async def revoke_admin_route(
    user_id: str = Path(..., min_length=1, max_length=36),
    admin: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> AdminRoleOut:
    await revoke_admin(db, user_id=user_id, revoked_by=admin.user_id)
    return AdminRoleOut(user_id=user_id, is_admin=False)


@router.get("/transactions", response_model=List[AdminTransactionOut])
async def transactions_route(
    transaction_type: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    _: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> List[AdminTransactionOut]:
    return await list_transactions_admin(db, transaction_type=transaction_type, status=status, limit=limit)


@router.post("/transactions/bulk-settle", response_model=BulkSettleReport)
async def bulk_settle_route(
    payload: BulkSettleIn,
    admin: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> BulkSettleReport:
    return await bulk_settle(
        db,
        transaction_ids=payload.transaction_ids,
        decision=payload.decision,
        admin_id=admin.user_id,
        notifier=notifier,
    )


@router.post("/transactions/{transaction_id}/settle", response_model=TransactionOut)
async def settle_route(
    payload: SettleIn,
    transaction_id: int = Path(..., ge=1),
    admin: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> TransactionOut:
    tx = await settle_transaction(
        db,
        transaction_id=transaction_id,
        decision=payload.decision,
        admin_id=admin.user_id,
        notifier=notifier,
    )
    return TransactionOut.model_validate(tx)
