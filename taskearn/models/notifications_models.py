# -*- coding: utf-8 -*-
"""
Модель браузерных push-подписок.

Браузер регистрирует service worker и присылает PushSubscription
(endpoint + ключи p256dh/auth). Сервер хранит её, чтобы доставлять
уведомления о модерации депозитов/выводов. Один endpoint - одна строка.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database_core import Base
from ..core.utils_core import utcnow


class PushSubscription(Base):
    __tablename__ = "push_subscriptions"
    __table_args__ = (UniqueConstraint("endpoint", name="uq_push_subscriptions_endpoint"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    endpoint: Mapped[str] = mapped_column(Text, nullable=False)
    p256dh: Mapped[str] = mapped_column(String(255), nullable=False)
    auth: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    def subscription_info(self) -> dict:
        """Формат, который ожидает pywebpush.webpush(subscription_info=...)."""
        return {"endpoint": self.endpoint, "keys": {"p256dh": self.p256dh, "auth": self.auth}}


__all__ = ["PushSubscription"]
