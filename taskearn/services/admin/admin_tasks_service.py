"""Admin tasks service."""

from __future__ import annotations

from typing import Any, List

from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.core.errors_core import NotFoundError
from taskearn.core.logging_core import get_logger
from taskearn.crud.tasks_crud import TasksCRUD
from taskearn.models import Task
from taskearn.schemas.tasks_schemas import TaskCreate, TaskUpdate

logger = get_logger(__name__)


class AdminTasksService:
    """Сервис управления заданиями в админке."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.crud = TasksCRUD(session)

    async def _get_or_404(self, task_id: int) -> Task:
        task = await self.crud.get_task(task_id)
        if task is None:
            raise NotFoundError("Task not found.", details={"task_id": task_id})
        return task

    async def list_tasks(self) -> List[Task]:
        return await self.crud.list_all()

    async def create_task(self, data: TaskCreate, *, admin_id: str) -> Task:
        task = await self.crud.create_task(**data.model_dump())
        await self.session.commit()
        logger.info("task created: id=%s by=%s", task.id, admin_id)
        return task

    async def update_task(self, task_id: int, data: TaskUpdate, *, admin_id: str) -> Task:
        task = await self._get_or_404(task_id)
        fields: dict[str, Any] = data.model_dump(exclude_unset=True)
        task = await self.crud.update_task(task, **fields)
        await self.session.commit()
        logger.info("task updated: id=%s fields=%s by=%s", task_id, sorted(fields), admin_id)
        return task

    async def toggle_task(self, task_id: int, *, admin_id: str) -> Task:
        """Включить/выключить задание."""
        task = await self._get_or_404(task_id)
        task = await self.crud.update_task(task, is_active=not task.is_active)
        await self.session.commit()
        logger.info("task toggled: id=%s active=%s by=%s", task_id, task.is_active, admin_id)
        return task

    async def delete_task(self, task_id: int, *, admin_id: str) -> None:
        if not await self.crud.delete_task(task_id):
            raise NotFoundError("Task not found.", details={"task_id": task_id})
        await self.session.commit()
        logger.info("task deleted: id=%s by=%s", task_id, admin_id)
