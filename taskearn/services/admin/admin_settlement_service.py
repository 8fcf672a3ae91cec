# -*- coding: utf-8 -*-
# taskearn/services/admin/admin_settlement_service.py
# =============================================================================
# TaskEarn - модерация заявок на пополнение и вывод
# -----------------------------------------------------------------------------
# Назначение:
#   • settle_transaction - одобрить/отклонить одну заявку.
#   • bulk_settle - пакетное решение с отчётом по каждому элементу.
#   • list_transactions_admin - очередь модерации с именами пользователей.
#
# Канон/инварианты:
#   • Решение принимается ровно один раз: условный
#     UPDATE ... WHERE id=:id AND status='pending'. Ноль строк → AlreadySettled,
#     балансы не трогаются.
#   • withdraw+approve: списание с прижатием к нулю (CASE в БД).
#   • deposit+approve: +wallet_balance, +total_deposited, пересчёт VIP-уровня.
#   • reject: только статус.
#   • Статус и баланс меняются в одной транзакции; уведомление ставится в
#     очередь только после успешного commit.
#   • В пакете каждый элемент - своя транзакция; сбой одного не отменяет
#     остальные.
# =============================================================================

from __future__ import annotations

from typing import Iterable, List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.core.errors_core import AlreadySettled, NotFoundError, TaskEarnError, ValidationError
from taskearn.core.logging_core import get_logger
from taskearn.core.utils_core import NumberLike, quantize_money, utcnow
from taskearn.crud.transactions_crud import TransactionsCRUD
from taskearn.crud.user_crud import ProfileCRUD
from taskearn.models import WalletTransaction
from taskearn.models.transactions_models import (
    STATUS_COMPLETED,
    STATUS_REJECTED,
    TX_DEPOSIT,
    TX_TYPES,
    TX_STATUSES,
    TX_WITHDRAW,
)
from taskearn.schemas.transactions_schemas import (
    AdminTransactionOut,
    BulkSettleReport,
    SettleItemReport,
)
from taskearn.services.notifications_service import (
    EVENT_DEPOSIT_APPROVED,
    EVENT_DEPOSIT_REJECTED,
    EVENT_WITHDRAWAL_APPROVED,
    EVENT_WITHDRAWAL_REJECTED,
)
from taskearn.services.transactions_service import (
    credit_profile,
    debit_profile_clamped,
    set_vip_level,
)
from taskearn.services.vip_service import vip_level

logger = get_logger(__name__)

DECISION_APPROVE = "approve"
DECISION_REJECT = "reject"
DECISIONS = (DECISION_APPROVE, DECISION_REJECT)

_EVENTS = {
    (TX_DEPOSIT, DECISION_APPROVE): EVENT_DEPOSIT_APPROVED,
    (TX_DEPOSIT, DECISION_REJECT): EVENT_DEPOSIT_REJECTED,
    (TX_WITHDRAW, DECISION_APPROVE): EVENT_WITHDRAWAL_APPROVED,
    (TX_WITHDRAW, DECISION_REJECT): EVENT_WITHDRAWAL_REJECTED,
}


class Notifier(Protocol):
    def schedule(self, user_id: str, event_type: str, amount: NumberLike) -> object: ...


# -----------------------------------------------------------------------------
# Одна заявка
# -----------------------------------------------------------------------------
async def settle_transaction(
    db: AsyncSession,
    *,
    transaction_id: int,
    decision: str,
    admin_id: str,
    notifier: Optional[Notifier] = None,
) -> WalletTransaction:
    """
    Принять решение по заявке.

    notifier=None - без уведомлений (сервисные сценарии и тесты); HTTP-слой
    передаёт общий NotificationDispatcher.
    """
    if decision not in DECISIONS:
        raise ValidationError("Decision must be 'approve' or 'reject'.", details={"decision": decision})

    crud = TransactionsCRUD(db)
    try:
        tx = await crud.get_by_id(transaction_id)
        if tx is None:
            raise NotFoundError("Transaction not found.", details={"transaction_id": transaction_id})
        if tx.transaction_type not in (TX_DEPOSIT, TX_WITHDRAW):
            raise ValidationError(
                "Only deposits and withdrawals can be settled.",
                details={"transaction_id": tx.id, "transaction_type": tx.transaction_type},
            )

        tx_id, user_id, tx_type = tx.id, tx.user_id, tx.transaction_type
        amount = quantize_money(tx.amount)
        new_status = STATUS_COMPLETED if decision == DECISION_APPROVE else STATUS_REJECTED

        updated = await crud.settle_if_pending(
            tx_id, new_status=new_status, settled_by=admin_id, settled_at=utcnow()
        )
        if not updated:
            raise AlreadySettled(details={"transaction_id": tx_id, "status": tx.status})

        if decision == DECISION_APPROVE and tx_type == TX_DEPOSIT:
            snap = await credit_profile(db, user_id=user_id, amount=amount, deposited=True)
            level = vip_level(snap.total_deposited, snap.total_earned)
            if level != snap.vip_level:
                await set_vip_level(db, user_id=user_id, level=level)
                logger.info("vip level changed: user=%s %s -> %s", user_id, snap.vip_level, level)
        elif decision == DECISION_APPROVE and tx_type == TX_WITHDRAW:
            await debit_profile_clamped(db, user_id=user_id, amount=amount)

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "transaction settled: tx=%s type=%s decision=%s amount=%s by=%s",
        tx_id,
        tx_type,
        decision,
        amount,
        admin_id,
    )
    if notifier is not None:
        notifier.schedule(user_id, _EVENTS[(tx_type, decision)], amount)

    settled = await crud.get_by_id(tx_id)
    if settled is None:
        raise NotFoundError("Transaction not found.", details={"transaction_id": tx_id})
    return settled


# -----------------------------------------------------------------------------
# Пакет
# -----------------------------------------------------------------------------
async def bulk_settle(
    db: AsyncSession,
    *,
    transaction_ids: Iterable[int],
    decision: str,
    admin_id: str,
    notifier: Optional[Notifier] = None,
) -> BulkSettleReport:
    """Последовательно применить settle_transaction к каждому id."""
    if decision not in DECISIONS:
        raise ValidationError("Decision must be 'approve' or 'reject'.", details={"decision": decision})

    items: List[SettleItemReport] = []
    for tx_id in transaction_ids:
        try:
            tx = await settle_transaction(
                db, transaction_id=tx_id, decision=decision, admin_id=admin_id, notifier=notifier
            )
        except TaskEarnError as exc:
            items.append(SettleItemReport(transaction_id=tx_id, ok=False, error=exc.code, message=exc.message))
            continue
        except SQLAlchemyError as exc:
            logger.error("bulk settle item failed: tx=%s error=%s", tx_id, exc)
            items.append(
                SettleItemReport(
                    transaction_id=tx_id,
                    ok=False,
                    error="internal_error",
                    message="Database error, safe to retry.",
                )
            )
            continue
        items.append(SettleItemReport(transaction_id=tx_id, ok=True, status=tx.status))

    succeeded = sum(1 for item in items if item.ok)
    logger.info(
        "bulk settle done: decision=%s succeeded=%s failed=%s by=%s",
        decision,
        succeeded,
        len(items) - succeeded,
        admin_id,
    )
    return BulkSettleReport(
        decision=decision,  # type: ignore[arg-type]
        succeeded=succeeded,
        failed=len(items) - succeeded,
        items=items,
    )


# -----------------------------------------------------------------------------
# Очередь модерации
# -----------------------------------------------------------------------------
async def list_transactions_admin(
    db: AsyncSession,
    *,
    transaction_type: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 100,
) -> List[AdminTransactionOut]:
    if transaction_type and transaction_type not in TX_TYPES:
        raise ValidationError("Unknown transaction type.", details={"transaction_type": transaction_type})
    if status and status not in TX_STATUSES:
        raise ValidationError("Unknown status.", details={"status": status})

    rows = await TransactionsCRUD(db).list_filtered(
        transaction_type=transaction_type,
        status=status,
        limit=max(1, min(int(limit), 500)),
    )
    names = await ProfileCRUD(db).usernames_by_ids(r.user_id for r in rows)
    out: List[AdminTransactionOut] = []
    for row in rows:
        item = AdminTransactionOut.model_validate(row)
        item.username = names.get(row.user_id) or "Unknown"
        out.append(item)
    return out


__all__ = [
    "DECISION_APPROVE",
    "DECISION_REJECT",
    "Notifier",
    "settle_transaction",
    "bulk_settle",
    "list_transactions_admin",
]
