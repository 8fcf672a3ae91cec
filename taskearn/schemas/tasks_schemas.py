# -*- coding: utf-8 -*-
# taskearn/schemas/tasks_schemas.py
# =============================================================================
# Назначение кода:
# Pydantic-схемы для модуля «Задания»:
#   • админ-операции (создание/редактирование заданий),
#   • пользовательские операции (витрина, выполнение, статус дня).
#
# Канон/инварианты (важно):
# • Денежные значения наружу - только строками с 2 знаками.
# • Награда задания строго > 0; по умолчанию 0.10.
# • Схемы НЕ содержат бизнес-логики - только форма данных и валидация.
# =============================================================================

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from taskearn.schemas.common_schemas import Money, ORMModel


# =============================================================================
# ЗАДАНИЯ: входные модели для админ-CRUD
# -----------------------------------------------------------------------------
class TaskBase(BaseModel):
    """Базовое описание задания (используется в create)."""

    title: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=1024)
    reward_amount: Decimal = Field(Decimal("0.10"), gt=0)
    is_active: bool = True
    category: Optional[str] = Field(None, max_length=64)
    platform: Optional[str] = Field(None, max_length=64)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=1024)


class TaskCreate(TaskBase):
    """Создание задания (админ)."""


class TaskUpdate(BaseModel):
    """Изменение задания (админ). Все поля опциональны."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    url: Optional[str] = Field(None, min_length=1, max_length=1024)
    reward_amount: Optional[Decimal] = Field(None, gt=0)
    is_active: Optional[bool] = None
    category: Optional[str] = Field(None, max_length=64)
    platform: Optional[str] = Field(None, max_length=64)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=1024)


# =============================================================================
# ЗАДАНИЯ: витринные DTO
# -----------------------------------------------------------------------------
class TaskOut(ORMModel):
    id: int
    title: str
    url: str
    reward_amount: Money
    is_active: bool
    category: Optional[str] = None
    platform: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    created_at: datetime


class CompletionOut(ORMModel):
    id: int
    task_id: int
    reward_earned: Money
    completed_at: datetime
    completion_date: date
    task: Optional[TaskOut] = None


class TaskCompletionResult(BaseModel):
    """Итог выполнения задания."""

    task_id: int
    reward: Money
    wallet_balance: Money
    total_earned: Money
    completed_today: int
    daily_limit: int


class TodayStatusOut(BaseModel):
    """Экран «Сегодня»: что выполнено, сколько осталось."""

    day: date
    vip_level: int
    completed: List[CompletionOut]
    completed_count: int
    daily_limit: int
    remaining: int
    completed_task_ids: List[int]


__all__ = [
    "TaskBase",
    "TaskCreate",
    "TaskUpdate",
    "TaskOut",
    "CompletionOut",
    "TaskCompletionResult",
    "TodayStatusOut",
]
