# -*- coding: utf-8 -*-
"""
Модели таблиц заданий (tasks) и выполнений (task_completions).

Назначение:
  • tasks - справочник заданий, которые видят пользователи. Ведёт только админ.
  • task_completions - факты выполнения: кто, что, когда и сколько получил.

Главная гарантия хранится в схеме: UNIQUE(user_id, task_id, completion_date)
не позволяет выполнить одно задание дважды за календарный день (UTC), даже
если два запроса пришли одновременно.
Все денежные поля - Decimal(18, 2).
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database_core import Base
from ..core.utils_core import utcnow
from .user_models import MONEY, TimestampMixin

DEFAULT_TASK_REWARD = Decimal("0.10")


class Task(Base, TimestampMixin):
    """
    Задание, которое создаёт админ.
    Пользователь открывает ссылку и отмечает выполнение, получая награду.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint("reward_amount > 0", name="reward_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Короткий заголовок задания.",
    )

    url: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        comment="Ссылка, которую пользователь должен посетить.",
    )

    reward_amount: Mapped[Decimal] = mapped_column(
        MONEY,
        nullable=False,
        default=DEFAULT_TASK_REWARD,
        comment="Номинальная награда (USD) в статическом режиме.",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        index=True,
        comment="Видимость задания пользователям.",
    )

    category: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        comment="Категория (video/social/survey/…), на усмотрение админа.",
    )

    platform: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        comment="Площадка (YouTube/Instagram/…).",
    )

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    completions: Mapped[list["TaskCompletion"]] = relationship(
        "TaskCompletion",
        back_populates="task",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class TaskCompletion(Base):
    """
    Факт выполнения задания пользователем в конкретный день.
    reward_earned фиксирует фактическую награду (в динамическом режиме
    она может отличаться от номинала задания).
    """

    __tablename__ = "task_completions"
    __table_args__ = (
        UniqueConstraint("user_id", "task_id", "completion_date", name="uq_task_completions_user_task_day"),
        CheckConstraint("reward_earned >= 0", name="reward_nonneg"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="UUID пользователя.",
    )

    task_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="FK → tasks.id",
    )

    reward_earned: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    completion_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        comment="Календарный день (UTC), к которому относится выполнение.",
    )

    task: Mapped["Task"] = relationship(
        "Task",
        back_populates="completions",
    )


Index(
    "ix_task_completions_user_day",
    TaskCompletion.user_id,
    TaskCompletion.completion_date,
)

__all__ = ["DEFAULT_TASK_REWARD", "Task", "TaskCompletion"]
