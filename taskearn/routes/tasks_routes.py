# -*- coding: utf-8 -*-
# taskearn/routes/tasks_routes.py
# =============================================================================
# TaskEarn - Задания: каталог, статус дня, выполнение
# -----------------------------------------------------------------------------
# Канон / инварианты:
#   • Награды начисляются ТОЛЬКО через tasks_service → transactions_service.
#   • Ошибки политики (лимит дня, повтор) приходят из сервиса как 409 с
#     машинным кодом: daily_limit_reached / already_completed_today.
# =============================================================================

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.core.logging_core import get_logger
from taskearn.deps import get_db, require_user
from taskearn.schemas.tasks_schemas import TaskCompletionResult, TaskOut, TodayStatusOut
from taskearn.services.auth_service import SessionContext
from taskearn.services.tasks_service import complete_task, get_today_status, list_active_tasks

logger = get_logger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("", response_model=List[TaskOut])
async def list_tasks_route(
    _: SessionContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> List[TaskOut]:
    return [TaskOut.model_validate(t) for t in await list_active_tasks(db)]


@router.get("/today", response_model=TodayStatusOut)
async def today_route(
    ctx: SessionContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> TodayStatusOut:
    return await get_today_status(db, user_id=ctx.user_id)


@router.post("/{task_id}/complete", response_model=TaskCompletionResult)
async def complete_task_route(
    task_id: int = Path(..., ge=1),
    ctx: SessionContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> TaskCompletionResult:
    return await complete_task(db, user_id=ctx.user_id, task_id=task_id)
