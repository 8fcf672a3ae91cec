# -*- coding: utf-8 -*-
# taskearn/models/referral_models.py
# =============================================================================
# Назначение кода:
#   ORM-модели домена «Рефералы» TaskEarn:
#   • Referral - связь «пригласивший → приглашённый» с фиксированным бонусом.
#
# Канон/инварианты:
#   • У одного пользователя может быть только один «родитель»:
#     UNIQUE(referred_id). Повторная атрибуция упирается в это ограничение.
#   • Нельзя пригласить самого себя: CHECK(referrer_id <> referred_id).
#   • bonus_earned - сумма, начисленная пригласившему (копия REFERRAL_BONUS_USD
#     на момент атрибуции).
#
# Запреты:
#   • Никаких денежных движений в модели - их делает referral_service.
# =============================================================================

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database_core import Base  # единый declarative Base проекта
from ..core.utils_core import utcnow
from .user_models import MONEY


class Referral(Base):
    """
    Единая запись реферальной связи. Создаётся при регистрации приглашённого по реф-коду.

    Поля:
      • referrer_id  - UUID пригласившего.
      • referred_id  - UUID приглашённого.
      • bonus_earned - бонус пригласителю.
      • created_at   - момент атрибуции.
    """

    __tablename__ = "referrals"
    __table_args__ = (
        UniqueConstraint("referred_id", name="uq_referrals_referred_id"),
        CheckConstraint("referrer_id <> referred_id", name="not_self"),
        CheckConstraint("bonus_earned >= 0", name="bonus_nonneg"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    referrer_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    referred_id: Mapped[str] = mapped_column(String(36), nullable=False)
    bonus_earned: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Referral id={self.id} {self.referrer_id}->{self.referred_id} bonus={self.bonus_earned}>"


Index("ix_referrals_referrer_created", Referral.referrer_id, Referral.created_at)

__all__ = ["Referral"]
# =============================================================================
# Пояснения «для чайника»:
#   • Почему у приглашённого может быть только один «родитель»?
#     Это предотвращает двойные бонусы: пользователь, который регистрируется
#     повторно с другим кодом, не будет засчитан второй раз.
# =============================================================================
