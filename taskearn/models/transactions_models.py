# -*- coding: utf-8 -*-
# taskearn/models/transactions_models.py
# =============================================================================
# Назначение кода:
#   ORM-модель журнала кошелька TaskEarn:
#   • WalletTransaction - каждая запись фиксирует одно событие, влияющее на баланс.
#
# Канон/инварианты:
#   • transaction_type ∈ {deposit, withdraw, task_reward, referral_bonus}.
#   • status ∈ {pending, completed, rejected}. Депозиты и выводы создаются
#     pending, награды и бонусы - сразу completed.
#   • amount > 0 (знак операции задаёт тип, а не сумма).
#   • Переход pending → completed/rejected выполняется один раз: сервис
#     делает условный UPDATE ... WHERE status='pending'.
#
# Запреты:
#   • Никакой бизнес-логики и пересчётов в модели - только хранение факта.
# =============================================================================

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database_core import Base  # единый declarative Base проекта
from .user_models import MONEY, TimestampMixin

TX_DEPOSIT = "deposit"
TX_WITHDRAW = "withdraw"
TX_TASK_REWARD = "task_reward"
TX_REFERRAL_BONUS = "referral_bonus"
TX_TYPES = (TX_DEPOSIT, TX_WITHDRAW, TX_TASK_REWARD, TX_REFERRAL_BONUS)

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_REJECTED = "rejected"
TX_STATUSES = (STATUS_PENDING, STATUS_COMPLETED, STATUS_REJECTED)


class WalletTransaction(Base, TimestampMixin):
    """
    Запись журнала кошелька.

    Поля:
      • user_id          - UUID владельца.
      • transaction_type - тип события (см. TX_TYPES).
      • amount           - сумма USD, строго > 0.
      • status           - статус расчёта (см. TX_STATUSES).
      • payment_method   - способ оплаты/выплаты (для deposit/withdraw).
      • payment_details  - реквизиты (JSON), обязательны для deposit/withdraw.
      • description      - человекочитаемое описание.
      • settled_by       - UUID админа, принявшего решение.
      • settled_at       - когда принято решение.
    """

    __tablename__ = "wallet_transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="amount_positive"),
        CheckConstraint(
            "transaction_type IN ('deposit','withdraw','task_reward','referral_bonus')",
            name="type_enum",
        ),
        CheckConstraint("status IN ('pending','completed','rejected')", name="status_enum"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    transaction_type: Mapped[str] = mapped_column(String(24), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_PENDING, index=True)

    payment_method: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    payment_details: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        nullable=True,
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    settled_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    settled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<WalletTransaction id={self.id} user={self.user_id} "
            f"type={self.transaction_type} amount={self.amount} status={self.status}>"
        )


# Витрины: история пользователя и очередь модерации
Index("ix_wallet_tx_user_created", WalletTransaction.user_id, WalletTransaction.created_at)
Index("ix_wallet_tx_type_status", WalletTransaction.transaction_type, WalletTransaction.status)

__all__ = [
    "WalletTransaction",
    "TX_DEPOSIT",
    "TX_WITHDRAW",
    "TX_TASK_REWARD",
    "TX_REFERRAL_BONUS",
    "TX_TYPES",
    "STATUS_PENDING",
    "STATUS_COMPLETED",
    "STATUS_REJECTED",
    "TX_STATUSES",
]
# =============================================================================
# Пояснения «для чайника»:
#   • Баланс профиля - это кэш суммы completed-записей журнала. Если когда-то
#     они разойдутся, transactions_service.reconcile_profile() пересчитает кэш.
#   • Повторное одобрение невозможно: вторая попытка не найдёт строку со
#     статусом pending и получит AlreadySettled.
# =============================================================================
