# -*- coding: utf-8 -*-
# taskearn/routes/wallet_routes.py
# =============================================================================
# TaskEarn - Кошелёк: заявки на пополнение/вывод и история
# -----------------------------------------------------------------------------
# Канон:
#   • Заявки создаются в статусе pending; баланс меняет только решение
#     администратора (admin_settlement_service).
#   • Вывод: не меньше WITHDRAW_MIN_USD и не больше текущего баланса.
# =============================================================================

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.deps import get_db, require_user
from taskearn.schemas.transactions_schemas import DepositRequestIn, TransactionOut, WithdrawalRequestIn
from taskearn.services.auth_service import SessionContext
from taskearn.services.transactions_service import list_transactions, request_deposit, request_withdrawal

router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.post("/deposits", response_model=TransactionOut, status_code=status.HTTP_201_CREATED)
async def deposit_route(
    payload: DepositRequestIn,
    ctx: SessionContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> TransactionOut:
    tx = await request_deposit(
        db,
        user_id=ctx.user_id,
        amount=payload.amount,
        payment_method=payload.payment_method,
        payment_details=payload.payment_details,
    )
    return TransactionOut.model_validate(tx)


@router.post("/withdrawals", response_model=TransactionOut, status_code=status.HTTP_201_CREATED)
async def withdrawal_route(
    payload: WithdrawalRequestIn,
    ctx: SessionContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> TransactionOut:
    tx = await request_withdrawal(
        db,
        user_id=ctx.user_id,
        amount=payload.amount,
        payment_method=payload.payment_method,
        payment_details=payload.payment_details,
    )
    return TransactionOut.model_validate(tx)


@router.get("/transactions", response_model=List[TransactionOut])
async def transactions_route(
    limit: int = Query(20, ge=1, le=200),
    ctx: SessionContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> List[TransactionOut]:
    rows = await list_transactions(db, user_id=ctx.user_id, limit=limit)
    return [TransactionOut.model_validate(r) for r in rows]
