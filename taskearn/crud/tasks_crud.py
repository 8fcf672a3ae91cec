# -*- coding: utf-8 -*-
# taskearn/crud/tasks_crud.py
# =============================================================================
# Назначение:
#   • CRUD-слой для заданий (tasks) и выполнений (task_completions):
#     витрины, подсчёт выполнений за день, создание/изменение заданий.
#   • Награды за задания начисляет tasks_service через transactions_service;
#     CRUD не трогает балансы.
#
# Канон/инварианты:
#   • Одно выполнение на (user, task, день) - UNIQUE в схеме. add_completion()
#     не ищет дубль заранее: конфликт ловит сервис по IntegrityError.
#   • День - календарная дата UTC, вычисляется сервисом.
#
# Запреты:
#   • Никаких денежных операций внутри CRUD: ни начислений, ни списаний.
# =============================================================================
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Iterable

from sqlalchemy import Select, delete, exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from taskearn.models import Task, TaskCompletion

REQUIRED_TASK_FIELDS = frozenset({"title", "url", "reward_amount", "is_active"})


class TasksCRUD:
    """CRUD-обёртка для tasks и task_completions без денежной логики."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ------------------------------- tasks -------------------------------
    async def get_task(self, task_id: int) -> Task | None:
        """Получить задание по id."""

        return await self.session.get(Task, int(task_id))

    async def list_active(self) -> list[Task]:
        """Активные задания для пользовательской витрины: новые сверху."""

        stmt: Select[Task] = (
            select(Task)
            .where(Task.is_active.is_(True))
            .order_by(Task.created_at.desc(), Task.id.desc())
        )
        rows: Iterable[Task] = await self.session.scalars(stmt)
        return list(rows)

    async def list_all(self) -> list[Task]:
        """Все задания для админки (включая выключенные)."""

        stmt: Select[Task] = select(Task).order_by(Task.created_at.desc(), Task.id.desc())
        rows: Iterable[Task] = await self.session.scalars(stmt)
        return list(rows)

    async def create_task(self, **fields: Any) -> Task:
        task = Task(**fields)
        self.session.add(task)
        await self.session.flush()
        return task

    async def update_task(self, task: Task, **fields: Any) -> Task:
        """
        Применить переданные поля. None очищает необязательные колонки
        (description, category, platform, image_url); для NOT NULL колонок
        None означает «не менять».
        """

        for key, value in fields.items():
            if value is None and key in REQUIRED_TASK_FIELDS:
                continue
            setattr(task, key, value)
        await self.session.flush()
        return task

    async def delete_task(self, task_id: int) -> int:
        result = await self.session.execute(delete(Task).where(Task.id == int(task_id)))
        return int(result.rowcount or 0)

    async def count_active(self) -> int:
        stmt = select(func.count(Task.id)).where(Task.is_active.is_(True))
        return int(await self.session.scalar(stmt) or 0)

    # ---------------------------- completions ----------------------------
    async def count_completions_on(self, user_id: str, day: date) -> int:
        """Сколько заданий пользователь выполнил в указанный день."""

        stmt = select(func.count(TaskCompletion.id)).where(
            TaskCompletion.user_id == user_id,
            TaskCompletion.completion_date == day,
        )
        return int(await self.session.scalar(stmt) or 0)

    async def completion_exists(self, *, user_id: str, task_id: int, day: date) -> bool:
        stmt = select(
            exists().where(
                TaskCompletion.user_id == user_id,
                TaskCompletion.task_id == int(task_id),
                TaskCompletion.completion_date == day,
            )
        )
        return bool(await self.session.scalar(stmt))

    async def add_completion(
        self,
        *,
        user_id: str,
        task_id: int,
        reward: Decimal,
        day: date,
    ) -> TaskCompletion:
        """Вставить выполнение. Дубль дня упадёт IntegrityError на flush."""

        completion = TaskCompletion(
            user_id=user_id,
            task_id=int(task_id),
            reward_earned=reward,
            completion_date=day,
        )
        self.session.add(completion)
        await self.session.flush()
        return completion

    async def list_completions_on(self, user_id: str, day: date) -> list[TaskCompletion]:
        """Выполнения за день вместе с заданием (для экрана «Сегодня»)."""

        stmt: Select[TaskCompletion] = (
            select(TaskCompletion)
            .options(selectinload(TaskCompletion.task))
            .where(TaskCompletion.user_id == user_id, TaskCompletion.completion_date == day)
            .order_by(TaskCompletion.completed_at.desc(), TaskCompletion.id.desc())
        )
        rows: Iterable[TaskCompletion] = await self.session.scalars(stmt)
        return list(rows)


__all__ = ["TasksCRUD"]
