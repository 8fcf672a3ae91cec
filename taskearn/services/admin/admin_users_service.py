# -*- coding: utf-8 -*-
# taskearn/services/admin/admin_users_service.py
# =============================================================================
# TaskEarn - админ: пользователи и счётчики главной страницы
# -----------------------------------------------------------------------------
#   • list_users - профили (новые сверху) с флагом is_admin из admin_roles.
#   • get_stats  - пользователи, активные задания, заявки в ожидании.
# =============================================================================

from __future__ import annotations

from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.crud.tasks_crud import TasksCRUD
from taskearn.crud.transactions_crud import TransactionsCRUD
from taskearn.crud.user_crud import ProfileCRUD, UserCRUD
from taskearn.models.transactions_models import STATUS_PENDING, TX_DEPOSIT, TX_WITHDRAW
from taskearn.schemas.admin_schemas import AdminStatsOut, AdminUserOut


async def list_users(db: AsyncSession, *, limit: int = 100) -> List[AdminUserOut]:
    profiles = await ProfileCRUD(db).list_profiles(limit=max(1, min(int(limit), 500)))
    admins = await UserCRUD(db).list_admin_ids()
    out: List[AdminUserOut] = []
    for profile in profiles:
        item = AdminUserOut.model_validate(profile)
        item.is_admin = profile.user_id in admins
        out.append(item)
    return out


async def get_stats(db: AsyncSession) -> AdminStatsOut:
    tx = TransactionsCRUD(db)
    return AdminStatsOut(
        total_users=await ProfileCRUD(db).count(),
        active_tasks=await TasksCRUD(db).count_active(),
        pending_withdrawals=await tx.count_by(transaction_type=TX_WITHDRAW, status=STATUS_PENDING),
        pending_deposits=await tx.count_by(transaction_type=TX_DEPOSIT, status=STATUS_PENDING),
    )


__all__ = ["list_users", "get_stats"]
