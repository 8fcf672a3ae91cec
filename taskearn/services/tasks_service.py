# -*- coding: utf-8 -*-
# taskearn/services/tasks_service.py
# =============================================================================
# TaskEarn - сервис заданий (Tasks)
# -----------------------------------------------------------------------------
# Что умеет:
#   • Витрина активных заданий.
#   • Выполнение задания (complete_task): проверки лимита и дубля, награда,
#     запись в журнал и атомарное начисление - одной транзакцией.
#   • Экран «Сегодня»: выполненные за день задания, счётчик и остаток лимита.
#
# Канон:
#   • Награды начисляются ТОЛЬКО через transactions_service.credit_profile().
#   • «Сегодня» - календарный день UTC.
#   • Одно выполнение задания в день гарантирует UNIQUE(user, task, day);
#     предварительная проверка лишь даёт понятную ошибку раньше.
#   • Дневной лимит сериализуется блокировкой строки профиля (FOR UPDATE).
#
# Надёжность:
#   • Любая ошибка до commit откатывает всю транзакцию: нет выполнения без
#     награды и награды без выполнения.
# =============================================================================

from __future__ import annotations

import random
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.core.config_core import get_settings
from taskearn.core.errors_core import (
    AlreadyCompletedToday,
    DailyLimitReached,
    NotFoundError,
    TaskInactiveError,
)
from taskearn.core.logging_core import get_logger
from taskearn.core.utils_core import decimal_from, quantize_money, utc_today
from taskearn.crud.tasks_crud import TasksCRUD
from taskearn.crud.user_crud import ProfileCRUD
from taskearn.models import Task, TaskCompletion
from taskearn.models.transactions_models import STATUS_COMPLETED, TX_TASK_REWARD
from taskearn.schemas.tasks_schemas import CompletionOut, TaskCompletionResult, TodayStatusOut
from taskearn.services.transactions_service import append_ledger, credit_profile
from taskearn.services.vip_service import daily_task_limit

logger = get_logger(__name__)
settings = get_settings()

MIN_REWARD = Decimal("0.01")


# -----------------------------------------------------------------------------
# Награда
# -----------------------------------------------------------------------------
def compute_reward(task: Task, vip_level: int, rng: Optional[random.Random] = None) -> Decimal:
    """
    static  - reward_amount задания;
    dynamic - равномерно из диапазона уровня VIP (TASK_REWARD_RANGES), до цента.
    """
    if settings.TASK_REWARD_MODE != "dynamic":
        return quantize_money(task.reward_amount)

    ranges = settings.task_reward_ranges
    low, high = ranges[max(0, min(int(vip_level), len(ranges) - 1))]
    draw = (rng or random).uniform(float(low), float(high))
    reward = quantize_money(decimal_from(draw))
    # uniform() может вернуть high чуть выше из-за float; держим границы.
    return max(MIN_REWARD, min(max(reward, low), high))


# -----------------------------------------------------------------------------
# Выполнение задания
# -----------------------------------------------------------------------------
async def complete_task(
    db: AsyncSession,
    *,
    user_id: str,
    task_id: int,
    today: Optional[date] = None,
    rng: Optional[random.Random] = None,
) -> TaskCompletionResult:
    """
    Выполнить задание и начислить награду.

    Ошибки:
      • NotFoundError          - нет задания или профиля;
      • TaskInactiveError      - задание выключено;
      • DailyLimitReached      - лимит дня для уровня VIP исчерпан;
      • AlreadyCompletedToday  - это задание уже выполнено сегодня.
    """
    day = today or utc_today()
    tasks = TasksCRUD(db)

    try:
        task = await tasks.get_task(task_id)
        if task is None:
            raise NotFoundError("Task not found.", details={"task_id": task_id})
        if not task.is_active:
            raise TaskInactiveError(details={"task_id": task_id})

        profile = await ProfileCRUD(db).lock_for_update(user_id)
        if profile is None:
            raise NotFoundError("Profile not found.", details={"user_id": user_id})

        level = int(profile.vip_level)
        limit = daily_task_limit(level)
        done_today = await tasks.count_completions_on(user_id, day)
        if done_today >= limit:
            raise DailyLimitReached(details={"daily_limit": limit, "completed_today": done_today})

        if await tasks.completion_exists(user_id=user_id, task_id=task.id, day=day):
            raise AlreadyCompletedToday(details={"task_id": task.id})

        reward = compute_reward(task, level, rng)

        try:
            await tasks.add_completion(user_id=user_id, task_id=task.id, reward=reward, day=day)
        except IntegrityError:
            # Параллельный дубль успел раньше: UNIQUE(user, task, day).
            # Сессия требует rollback, атрибуты ORM здесь читать нельзя.
            raise AlreadyCompletedToday(details={"task_id": task_id}) from None

        await append_ledger(
            db,
            user_id=user_id,
            transaction_type=TX_TASK_REWARD,
            amount=reward,
            status=STATUS_COMPLETED,
            description=f"Task reward: {task.title}",
        )
        snap = await credit_profile(
            db,
            user_id=user_id,
            amount=reward,
            earned=True,
            extra_values={"last_task_date": day},
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "task completed: user=%s task=%s reward=%s day=%s (%s/%s)",
        user_id,
        task.id,
        reward,
        day.isoformat(),
        done_today + 1,
        limit,
    )
    return TaskCompletionResult(
        task_id=task.id,
        reward=reward,
        wallet_balance=snap.wallet_balance,
        total_earned=snap.total_earned,
        completed_today=done_today + 1,
        daily_limit=limit,
    )


# -----------------------------------------------------------------------------
# Чтение
# -----------------------------------------------------------------------------
async def list_active_tasks(db: AsyncSession) -> List[Task]:
    return await TasksCRUD(db).list_active()


async def list_today_completions(
    db: AsyncSession, *, user_id: str, today: Optional[date] = None
) -> List[TaskCompletion]:
    return await TasksCRUD(db).list_completions_on(user_id, today or utc_today())


async def get_today_status(db: AsyncSession, *, user_id: str, today: Optional[date] = None) -> TodayStatusOut:
    """Что выполнено сегодня, лимит уровня и сколько осталось."""
    day = today or utc_today()
    profile = await ProfileCRUD(db).get_by_user_id(user_id)
    if profile is None:
        raise NotFoundError("Profile not found.", details={"user_id": user_id})

    completions = await list_today_completions(db, user_id=user_id, today=day)
    limit = daily_task_limit(int(profile.vip_level))
    count = len(completions)
    return TodayStatusOut(
        day=day,
        vip_level=int(profile.vip_level),
        completed=[CompletionOut.model_validate(c) for c in completions],
        completed_count=count,
        daily_limit=limit,
        remaining=max(limit - count, 0),
        completed_task_ids=sorted({c.task_id for c in completions}),
    )


__all__ = [
    "compute_reward",
    "complete_task",
    "list_active_tasks",
    "list_today_completions",
    "get_today_status",
]

# =============================================================================
# Пояснения «для чайника»:
#   • Почему и проверка, и UNIQUE? Проверка даёт понятный ответ в обычном
#     случае, а ограничение в БД ловит одновременный двойной клик.
#   • Лимит дня зависит от текущего VIP-уровня профиля: после одобрения
#     депозита лимит растёт уже в тот же день.
# =============================================================================
