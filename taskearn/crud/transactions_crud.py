"""CRUD for wallet transactions (ledger rows and conditional status moves).

======================================================================
Назначение:
    • Доступ к журналу wallet_transactions: добавление записей, история
      пользователя, очередь модерации, агрегаты для сверки баланса.
    • Условный переход статуса pending → completed/rejected одним UPDATE.

Канон/инварианты:
    • CRUD не меняет балансы профиля; их двигает transactions_service.
    • settle_if_pending() меняет статус ТОЛЬКО у строки в pending: второй
      вызов вернёт 0 затронутых строк, и сервис ответит AlreadySettled.

Запреты:
    • Нет удаления записей журнала: журнал только растёт.
======================================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from sqlalchemy import Select, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.core.logging_core import get_logger
from taskearn.models import WalletTransaction
from taskearn.models.transactions_models import STATUS_COMPLETED, STATUS_PENDING

logger = get_logger(__name__)


class TransactionsCRUD:
    """Доступ к wallet_transactions без изменения балансов."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, transaction_id: int) -> WalletTransaction | None:
        """Прочитать запись журнала по первичному ключу."""

        return await self.session.get(WalletTransaction, int(transaction_id), populate_existing=True)

    async def add(self, tx: WalletTransaction) -> WalletTransaction:
        """Создать новую запись журнала (commit делает вызывающий код)."""

        self.session.add(tx)
        await self.session.flush()
        return tx

    async def list_for_user(self, user_id: str, *, limit: int = 20) -> list[WalletTransaction]:
        """История пользователя: новые сверху."""

        stmt: Select[WalletTransaction] = (
            select(WalletTransaction)
            .where(WalletTransaction.user_id == user_id)
            .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
            .limit(limit)
        )
        rows: Iterable[WalletTransaction] = await self.session.scalars(stmt)
        return list(rows)

    async def list_filtered(
        self,
        *,
        transaction_type: str | None = None,
        status: str | None = None,
        limit: int = 100,
    ) -> list[WalletTransaction]:
        """Выборка для админки с фильтрами по типу/статусу."""

        stmt: Select[WalletTransaction] = (
            select(WalletTransaction)
            .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
            .limit(limit)
        )
        if transaction_type:
            stmt = stmt.where(WalletTransaction.transaction_type == transaction_type)
        if status:
            stmt = stmt.where(WalletTransaction.status == status)
        rows: Iterable[WalletTransaction] = await self.session.scalars(stmt)
        return list(rows)

    async def settle_if_pending(
        self,
        transaction_id: int,
        *,
        new_status: str,
        settled_by: str,
        settled_at: datetime,
    ) -> int:
        """
        Условный UPDATE ... WHERE id=:id AND status='pending'.
        Возвращает число затронутых строк (0 или 1).
        """

        stmt = (
            update(WalletTransaction)
            .where(
                WalletTransaction.id == int(transaction_id),
                WalletTransaction.status == STATUS_PENDING,
            )
            .values(status=new_status, settled_by=settled_by, settled_at=settled_at, updated_at=settled_at)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return int(result.rowcount or 0)

    async def list_completed_chronological(self, user_id: str) -> list[WalletTransaction]:
        """
        Все completed-записи пользователя в порядке проведения:
        (settled_at или created_at, id). Без limit: сверка идёт по всему журналу.
        """

        effective_at = func.coalesce(WalletTransaction.settled_at, WalletTransaction.created_at)
        stmt: Select[WalletTransaction] = (
            select(WalletTransaction)
            .where(
                WalletTransaction.user_id == user_id,
                WalletTransaction.status == STATUS_COMPLETED,
            )
            .order_by(effective_at.asc(), WalletTransaction.id.asc())
        )
        rows: Iterable[WalletTransaction] = await self.session.scalars(stmt)
        return list(rows)

    async def count_by(self, *, transaction_type: str, status: str) -> int:
        stmt = select(func.count(WalletTransaction.id)).where(
            WalletTransaction.transaction_type == transaction_type,
            WalletTransaction.status == status,
        )
        return int(await self.session.scalar(stmt) or 0)


__all__ = ["TransactionsCRUD"]

# ======================================================================
# Пояснения «для чайника»:
#   • CRUD не совершает денежных операций - только читает/пишет записи
#     журнала и переводит статус заявки один раз.
#   • Пагинация простая (limit): история пользователя короткая, админские
#     списки ограничены сверху.
# ======================================================================
