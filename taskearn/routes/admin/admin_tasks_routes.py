# -*- coding: utf-8 -*-
# taskearn/routes/admin/admin_tasks_routes.py
# =============================================================================
# Назначение кода:
#   Админские HTTP-ручки каталога заданий: список (включая выключенные),
#   создание, изменение, удаление, включение/выключение.
#
# Канон:
#   • Только require_admin. Награда задания > 0, по умолчанию 0.10.
# =============================================================================

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.deps import get_db, require_admin
from taskearn.schemas.tasks_schemas import TaskCreate, TaskOut, TaskUpdate
from taskearn.services.admin.admin_tasks_service import AdminTasksService
from taskearn.services.auth_service import SessionContext

router = APIRouter(prefix="/admin/tasks", tags=["admin-tasks"])


@router.get("", response_model=List[TaskOut])
async def list_tasks_route(
    _: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> List[TaskOut]:
    return [TaskOut.model_validate(t) for t in await AdminTasksService(db).list_tasks()]


@router.post("", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
async def create_task_route(
    payload: TaskCreate,
    admin: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> TaskOut:
    task = await AdminTasksService(db).create_task(payload, admin_id=admin.user_id)
    return TaskOut.model_validate(task)


@router.patch("/{task_id}", response_model=TaskOut)
async def update_task_route(
    payload: TaskUpdate,
    task_id: int = Path(..., ge=1),
    admin: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> TaskOut:
    task = await AdminTasksService(db).update_task(task_id, payload, admin_id=admin.user_id)
    return TaskOut.model_validate(task)


@router.post("/{task_id}/toggle", response_model=TaskOut)
async def toggle_task_route(
    task_id: int = Path(..., ge=1),
    admin: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> TaskOut:
    task = await AdminTasksService(db).toggle_task(task_id, admin_id=admin.user_id)
    return TaskOut.model_validate(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task_route(
    task_id: int = Path(..., ge=1),
    admin: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> None:
    await AdminTasksService(db).delete_task(task_id, admin_id=admin.user_id)
