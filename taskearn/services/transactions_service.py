# -*- coding: utf-8 -*-
# taskearn/services/transactions_service.py
# =============================================================================
# TaskEarn - сервис кошелька (канон)
# -----------------------------------------------------------------------------
# ЕДИНСТВЕННАЯ точка входа для любых изменений денежных агрегатов профиля.
# Обязательные функции (канон):
#   • credit_profile(...)          - атомарный кредит (награда, депозит, бонус)
#   • debit_profile_clamped(...)   - атомарный дебет с прижатием к нулю (вывод)
#   • append_ledger(...)           - запись в журнал wallet_transactions
#   • request_deposit(...)         - заявка на пополнение (pending)
#   • request_withdrawal(...)      - заявка на вывод (pending)
#   • list_transactions(...)       - история пользователя
#   • ledger_balance(...) / reconcile_profile(...) - сверка кэша с журналом
#
# Правила:
#   • У пользователя ЗАПРЕЩЁН отрицательный баланс (CHECK + CASE в UPDATE).
#   • Инкремент выполняется на стороне БД: UPDATE ... SET col = col + :x.
#     Чтение-изменение-запись в Python запрещено (гонки двух вкладок).
#   • Decimal(18,2), округление вниз; единая функция quantize_money().
#   • commit выполняет вызывающий сервис; здесь только flush/UPDATE.
#
# Запреты:
#   • Никаких прямых UPDATE балансов профиля из других модулей.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import case, update
from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.core.config_core import get_settings
from taskearn.core.errors_core import (
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from taskearn.core.logging_core import get_logger
from taskearn.core.utils_core import NumberLike, decimal_from, quantize_money, utcnow
from taskearn.crud.transactions_crud import TransactionsCRUD
from taskearn.crud.user_crud import ProfileCRUD
from taskearn.models import Profile, WalletTransaction
from taskearn.models.transactions_models import (
    STATUS_PENDING,
    TX_DEPOSIT,
    TX_WITHDRAW,
)

logger = get_logger(__name__)
settings = get_settings()

ZERO = Decimal("0.00")


# -----------------------------------------------------------------------------
# DTO снимка балансов
# -----------------------------------------------------------------------------
@dataclass
class BalanceSnapshot:
    user_id: str
    wallet_balance: Decimal
    total_deposited: Decimal
    total_earned: Decimal
    referral_earnings: Decimal
    total_referrals: int
    vip_level: int


@dataclass
class ReconcileResult:
    user_id: str
    cached_balance: Decimal
    ledger_balance: Decimal
    fixed: bool


def _positive_money(amount: NumberLike, *, field_name: str = "amount") -> Decimal:
    try:
        value = quantize_money(decimal_from(amount))
    except ValueError:
        raise ValidationError("Please enter a valid amount.", details={"field": field_name}) from None
    if value <= 0:
        raise ValidationError("Please enter a valid amount.", details={"field": field_name})
    return value


async def _snapshot(db: AsyncSession, user_id: str) -> BalanceSnapshot:
    profile = await ProfileCRUD(db).get_by_user_id(user_id)
    if profile is None:
        raise NotFoundError("Profile not found.", details={"user_id": user_id})
    return BalanceSnapshot(
        user_id=user_id,
        wallet_balance=quantize_money(profile.wallet_balance),
        total_deposited=quantize_money(profile.total_deposited),
        total_earned=quantize_money(profile.total_earned),
        referral_earnings=quantize_money(profile.referral_earnings),
        total_referrals=int(profile.total_referrals),
        vip_level=int(profile.vip_level),
    )


# -----------------------------------------------------------------------------
# Атомарные операции над агрегатами профиля
# -----------------------------------------------------------------------------
async def credit_profile(
    db: AsyncSession,
    *,
    user_id: str,
    amount: NumberLike,
    earned: bool = False,
    deposited: bool = False,
    referral: bool = False,
    referrals_delta: int = 0,
    extra_values: Optional[Dict[str, Any]] = None,
) -> BalanceSnapshot:
    """
    Кредит на wallet_balance одним UPDATE.

    Флаги добавляют ту же сумму в соответствующий накопитель:
      earned → total_earned, deposited → total_deposited,
      referral → referral_earnings. referrals_delta увеличивает total_referrals.
    """
    value = _positive_money(amount)
    values: Dict[str, Any] = {
        "wallet_balance": Profile.wallet_balance + value,
        "updated_at": utcnow(),
    }
    if earned:
        values["total_earned"] = Profile.total_earned + value
    if deposited:
        values["total_deposited"] = Profile.total_deposited + value
    if referral:
        values["referral_earnings"] = Profile.referral_earnings + value
    if referrals_delta:
        values["total_referrals"] = Profile.total_referrals + int(referrals_delta)
    if extra_values:
        values.update(extra_values)

    result = await db.execute(
        update(Profile)
        .where(Profile.user_id == user_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        raise NotFoundError("Profile not found.", details={"user_id": user_id})
    return await _snapshot(db, user_id)


async def debit_profile_clamped(db: AsyncSession, *, user_id: str, amount: NumberLike) -> BalanceSnapshot:
    """
    Дебет wallet_balance с прижатием к нулю: max(balance - amount, 0).
    Вычисляется в БД через CASE, без чтения баланса в Python.
    """
    value = _positive_money(amount)
    new_balance = case(
        (Profile.wallet_balance - value < 0, ZERO),
        else_=Profile.wallet_balance - value,
    )
    result = await db.execute(
        update(Profile)
        .where(Profile.user_id == user_id)
        .values(wallet_balance=new_balance, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        raise NotFoundError("Profile not found.", details={"user_id": user_id})
    return await _snapshot(db, user_id)


async def set_vip_level(db: AsyncSession, *, user_id: str, level: int) -> None:
    await db.execute(
        update(Profile)
        .where(Profile.user_id == user_id)
        .values(vip_level=int(level))
        .execution_options(synchronize_session=False)
    )


async def append_ledger(
    db: AsyncSession,
    *,
    user_id: str,
    transaction_type: str,
    amount: NumberLike,
    status: str,
    description: Optional[str] = None,
    payment_method: Optional[str] = None,
    payment_details: Optional[Dict[str, Any]] = None,
) -> WalletTransaction:
    tx = WalletTransaction(
        user_id=user_id,
        transaction_type=transaction_type,
        amount=_positive_money(amount),
        status=status,
        description=description,
        payment_method=payment_method,
        payment_details=payment_details,
    )
    return await TransactionsCRUD(db).add(tx)


# -----------------------------------------------------------------------------
# Пользовательские заявки
# -----------------------------------------------------------------------------
def _clean_details(payment_details: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    details = {
        str(k): (v.strip() if isinstance(v, str) else v)
        for k, v in (payment_details or {}).items()
        if v is not None and not (isinstance(v, str) and not v.strip())
    }
    if not details:
        raise ValidationError("Please fill in the payment details.", details={"field": "payment_details"})
    return details


def _clean_method(payment_method: Optional[str]) -> str:
    method = (payment_method or "").strip()
    if not method:
        raise ValidationError("Please choose a payment method.", details={"field": "payment_method"})
    return method


async def request_deposit(
    db: AsyncSession,
    *,
    user_id: str,
    amount: NumberLike,
    payment_method: str,
    payment_details: Optional[Dict[str, Any]],
) -> WalletTransaction:
    """
    Создать заявку на пополнение. Баланс не меняется до решения администратора.
    """
    value = _positive_money(amount)
    method = _clean_method(payment_method)
    details = _clean_details(payment_details)

    if await ProfileCRUD(db).get_by_user_id(user_id) is None:
        raise NotFoundError("Profile not found.", details={"user_id": user_id})

    tx = await append_ledger(
        db,
        user_id=user_id,
        transaction_type=TX_DEPOSIT,
        amount=value,
        status=STATUS_PENDING,
        description=f"Deposit via {method}",
        payment_method=method,
        payment_details=details,
    )
    await db.commit()
    logger.info("deposit requested: user=%s amount=%s tx=%s", user_id, value, tx.id)
    return tx


async def request_withdrawal(
    db: AsyncSession,
    *,
    user_id: str,
    amount: NumberLike,
    payment_method: str,
    payment_details: Optional[Dict[str, Any]],
) -> WalletTransaction:
    """
    Создать заявку на вывод.

    Проверки: сумма > 0, не ниже WITHDRAW_MIN_USD, не больше текущего баланса.
    Баланс не резервируется; при одобрении списание прижимается к нулю.
    """
    value = _positive_money(amount)
    minimum = quantize_money(settings.WITHDRAW_MIN_USD)
    if value < minimum:
        raise ValidationError(
            f"Minimum withdrawal is ${minimum:.2f}.",
            details={"field": "amount", "minimum": str(minimum)},
        )
    method = _clean_method(payment_method)
    details = _clean_details(payment_details)

    profile = await ProfileCRUD(db).get_by_user_id(user_id)
    if profile is None:
        raise NotFoundError("Profile not found.", details={"user_id": user_id})
    balance = quantize_money(profile.wallet_balance)
    if value > balance:
        raise InsufficientBalanceError(details={"balance": str(balance), "amount": str(value)})

    tx = await append_ledger(
        db,
        user_id=user_id,
        transaction_type=TX_WITHDRAW,
        amount=value,
        status=STATUS_PENDING,
        description=f"Withdrawal via {method}",
        payment_method=method,
        payment_details=details,
    )
    await db.commit()
    logger.info("withdrawal requested: user=%s amount=%s tx=%s", user_id, value, tx.id)
    return tx


async def list_transactions(db: AsyncSession, *, user_id: str, limit: int = 20) -> List[WalletTransaction]:
    """История пользователя, новые сверху."""
    limit = max(1, min(int(limit), 200))
    return await TransactionsCRUD(db).list_for_user(user_id, limit=limit)


# -----------------------------------------------------------------------------
# Сверка кэша баланса с журналом
# -----------------------------------------------------------------------------
async def ledger_balance(db: AsyncSession, user_id: str) -> Decimal:
    """
    Накопленный итог completed-записей в порядке проведения:
    deposit / task_reward / referral_bonus прибавляются, withdraw вычитается
    с прижатием к нулю.

    Итог по суммам здесь не годится: прижатие в прошлом не видно по
    Σ credits − Σ debits, поэтому журнал всегда проходится целиком.
    """
    rows = await TransactionsCRUD(db).list_completed_chronological(user_id)
    running = ZERO
    for tx in rows:
        amount = quantize_money(tx.amount)
        if tx.transaction_type == TX_WITHDRAW:
            running = max(running - amount, ZERO)
        else:
            running += amount
    return running


async def reconcile_profile(db: AsyncSession, *, user_id: str, fix: bool = False) -> ReconcileResult:
    """
    Сравнить кэш wallet_balance с журналом. При fix=True кэш перезаписывается
    значением журнала (сервисная операция, не для пользовательских запросов).
    """
    snap = await _snapshot(db, user_id)
    expected = await ledger_balance(db, user_id)
    if snap.wallet_balance == expected:
        return ReconcileResult(user_id, snap.wallet_balance, expected, fixed=False)

    logger.warning(
        "balance drift: user=%s cached=%s ledger=%s", user_id, snap.wallet_balance, expected
    )
    if not fix:
        return ReconcileResult(user_id, snap.wallet_balance, expected, fixed=False)

    await db.execute(
        update(Profile)
        .where(Profile.user_id == user_id)
        .values(wallet_balance=expected, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return ReconcileResult(user_id, snap.wallet_balance, expected, fixed=True)


__all__ = [
    "BalanceSnapshot",
    "ReconcileResult",
    "credit_profile",
    "debit_profile_clamped",
    "set_vip_level",
    "append_ledger",
    "request_deposit",
    "request_withdrawal",
    "list_transactions",
    "ledger_balance",
    "reconcile_profile",
]

# =============================================================================
# Пояснения «для чайника»:
#   • Почему UPDATE ... SET wallet_balance = wallet_balance + :x? Две вкладки
#     одного пользователя могут завершить разные задания одновременно. При
#     чтении в Python и записи обратно одна награда потерялась бы.
#   • Заявка на вывод не «замораживает» деньги. Если к моменту одобрения
#     баланс уменьшился, списание остановится на нуле.
# =============================================================================
