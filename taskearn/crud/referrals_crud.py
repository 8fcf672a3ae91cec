# -*- coding: utf-8 -*-
# taskearn/crud/referrals_crud.py
# =============================================================================
# Назначение:
#   • CRUD-операции по таблице referrals: создание связи «пригласивший →
#     приглашённый» и выборки для экрана «Рефералы».
#   • Денежных действий нет: бонус начисляет referral_service.
#
# Канон/инварианты:
#   • Один приглашённый может иметь только одного родителя (UNIQUE referred_id).
#     add() не делает read-through: гонку двух атрибуций ловит сервис по
#     IntegrityError и превращает её в тихий no-op.
#
# Запреты:
#   • CRUD не начисляет реферальных бонусов и не меняет балансы.
# =============================================================================
from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.models import Profile, Referral


class ReferralsCRUD:
    """CRUD-обёртка для referrals без денежной логики."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_referred(self, referred_id: str) -> Referral | None:
        """Найти запись по приглашённому."""

        stmt: Select[Referral] = select(Referral).where(Referral.referred_id == referred_id)
        return await self.session.scalar(stmt)

    async def add(self, *, referrer_id: str, referred_id: str, bonus: Decimal) -> Referral:
        """Вставить связь. Повтор для того же referred_id упадёт на flush."""

        row = Referral(referrer_id=referrer_id, referred_id=referred_id, bonus_earned=bonus)
        self.session.add(row)
        await self.session.flush()
        return row

    async def list_for_referrer(self, referrer_id: str) -> list[dict[str, Any]]:
        """
        Приглашённые пользователя вместе с именем и датой регистрации,
        новые сверху.
        """

        stmt = (
            select(Referral, Profile.username, Profile.join_date)
            .join(Profile, Profile.user_id == Referral.referred_id, isouter=True)
            .where(Referral.referrer_id == referrer_id)
            .order_by(Referral.created_at.desc(), Referral.id.desc())
        )
        rows: Iterable[Any] = (await self.session.execute(stmt)).all()
        return [
            {
                "id": ref.id,
                "referred_id": ref.referred_id,
                "bonus_earned": ref.bonus_earned,
                "created_at": ref.created_at,
                "username": username,
                "join_date": join_date,
            }
            for ref, username, join_date in rows
        ]


__all__ = ["ReferralsCRUD"]
