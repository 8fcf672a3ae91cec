"""CRUD for browser push subscriptions.

======================================================================
Назначение:
    • Хранить подписки Web Push: upsert по endpoint, удаление, выборка
      подписок пользователя для рассылки.

Канон/инварианты:
    • endpoint уникален: повторная регистрация того же браузера обновляет
      ключи и владельца, а не плодит дубли.
======================================================================
"""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import Select, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.models import PushSubscription


class PushSubscriptionsCRUD:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_endpoint(self, endpoint: str) -> PushSubscription | None:
        stmt: Select[PushSubscription] = select(PushSubscription).where(PushSubscription.endpoint == endpoint)
        return await self.session.scalar(stmt)

    async def upsert(self, *, user_id: str, endpoint: str, p256dh: str, auth: str) -> PushSubscription:
        """Read-through по endpoint: обновить ключи/владельца или вставить."""

        existing = await self.get_by_endpoint(endpoint)
        if existing:
            existing.user_id = user_id
            existing.p256dh = p256dh
            existing.auth = auth
            await self.session.flush()
            return existing
        row = PushSubscription(user_id=user_id, endpoint=endpoint, p256dh=p256dh, auth=auth)
        self.session.add(row)
        await self.session.flush()
        return row

    async def list_for_user(self, user_id: str) -> list[PushSubscription]:
        stmt: Select[PushSubscription] = (
            select(PushSubscription)
            .where(PushSubscription.user_id == user_id)
            .order_by(PushSubscription.id)
        )
        rows: Iterable[PushSubscription] = await self.session.scalars(stmt)
        return list(rows)

    async def delete_by_endpoint(self, endpoint: str, *, user_id: str | None = None) -> int:
        stmt = delete(PushSubscription).where(PushSubscription.endpoint == endpoint)
        if user_id is not None:
            stmt = stmt.where(PushSubscription.user_id == user_id)
        result = await self.session.execute(stmt)
        return int(result.rowcount or 0)


__all__ = ["PushSubscriptionsCRUD"]
