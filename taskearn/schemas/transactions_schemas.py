# -*- coding: utf-8 -*-
# taskearn/schemas/transactions_schemas.py
# =============================================================================
# Назначение кода:
# Pydantic-схемы кошелька: заявки на депозит/вывод, история операций,
# решения модерации (одиночные и пакетные) и отчёт по пакету.
#
# Канон:
# • Сумма заявки проверяется сервисом (> 0, минимум вывода, ≤ баланса),
#   чтобы ошибки были доменными (validation_error / insufficient_balance).
# • decision ∈ {approve, reject}.
# =============================================================================

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from taskearn.schemas.common_schemas import Money, ORMModel

Decision = Literal["approve", "reject"]


# -----------------------------------------------------------------------------
# Заявки пользователя
# -----------------------------------------------------------------------------
class WalletRequestIn(BaseModel):
    amount: Decimal
    payment_method: str = Field(..., min_length=1, max_length=32)
    payment_details: Dict[str, Any] = Field(default_factory=dict)


class DepositRequestIn(WalletRequestIn):
    """Заявка на пополнение (pending до решения админа)."""


class WithdrawalRequestIn(WalletRequestIn):
    """Заявка на вывод (pending до решения админа, баланс не резервируется)."""


# -----------------------------------------------------------------------------
# История
# -----------------------------------------------------------------------------
class TransactionOut(ORMModel):
    id: int
    user_id: str
    transaction_type: str
    amount: Money
    status: str
    payment_method: Optional[str] = None
    payment_details: Optional[Dict[str, Any]] = None
    description: Optional[str] = None
    settled_by: Optional[str] = None
    settled_at: Optional[datetime] = None
    created_at: datetime


class AdminTransactionOut(TransactionOut):
    username: str = "Unknown"


# -----------------------------------------------------------------------------
# Модерация
# -----------------------------------------------------------------------------
class SettleIn(BaseModel):
    decision: Decision


class BulkSettleIn(BaseModel):
    transaction_ids: List[int] = Field(..., min_length=1, max_length=500)
    decision: Decision


class SettleItemReport(BaseModel):
    transaction_id: int
    ok: bool
    status: Optional[str] = None
    error: Optional[str] = None
    message: Optional[str] = None


class BulkSettleReport(BaseModel):
    decision: Decision
    succeeded: int
    failed: int
    items: List[SettleItemReport]


__all__ = [
    "Decision",
    "DepositRequestIn",
    "WithdrawalRequestIn",
    "TransactionOut",
    "AdminTransactionOut",
    "SettleIn",
    "BulkSettleIn",
    "SettleItemReport",
    "BulkSettleReport",
]
