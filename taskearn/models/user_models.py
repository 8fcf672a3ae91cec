# -*- coding: utf-8 -*-
# taskearn/models/user_models.py
# =============================================================================
# Назначение кода:
#   ORM-модели домена «Пользователи» TaskEarn:
#   • AuthUser    - учётные данные (email + bcrypt-хеш пароля);
#   • AuthSession - выданные сессии (id = jti токена), отзыв через revoked_at;
#   • Profile     - профиль и денежные агрегаты пользователя;
#   • AdminRole   - роли доступа (строка 'admin' - единственный источник прав).
#
# Канон/инварианты:
#   • user_id - UUID строкой, один и тот же во всех таблицах.
#   • Денежные поля - Numeric(18,2); округление вниз выполняют СЕРВИСЫ.
#   • Жёсткий запрет «минуса»: wallet_balance, total_deposited, total_earned,
#     referral_earnings, total_referrals - всегда ≥ 0; vip_level ∈ [0,5].
#   • wallet_balance = сумма завершённых проводок журнала (см. transactions_models).
#
# Запреты:
#   • Модель НЕ выполняет денежных операций (никаких автоначислений).
#   • profiles.role - только подпись для UI; права проверяются по admin_roles.
# =============================================================================

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database_core import Base  # единый declarative Base проекта
from ..core.utils_core import utcnow

MONEY = Numeric(18, 2)


class TimestampMixin:
    """Простая примесь для created_at / updated_at."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        comment="Когда запись создана (UTC).",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
        comment="Когда запись обновлена (UTC).",
    )


# -----------------------------------------------------------------------------
# Учётные данные и сессии
# -----------------------------------------------------------------------------
class AuthUser(Base):
    """Учётная запись для входа по email/паролю."""

    __tablename__ = "auth_users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="UUID пользователя.")
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AuthUser id={self.id} email={self.email}>"


class AuthSession(Base):
    """
    Выданная сессия. Токен валиден, пока не истёк его exp И revoked_at IS NULL.
    """

    __tablename__ = "auth_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, comment="jti токена.")
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("auth_users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


# -----------------------------------------------------------------------------
# Профиль
# -----------------------------------------------------------------------------
class Profile(Base, TimestampMixin):
    """
    Профиль пользователя TaskEarn.

    Поля:
      • user_id            - UUID пользователя (= auth_users.id).
      • username           - отображаемое имя.
      • email/phone        - контакты (email нужен для писем о модерации).
      • payment_method     - предпочитаемый способ выплат (подсказка для форм).
      • wallet_balance     - текущий баланс USD (≥ 0).
      • total_deposited    - сумма одобренных депозитов.
      • total_earned       - сумма наград за задания.
      • referral_earnings  - сумма реферальных бонусов.
      • total_referrals    - число приглашённых.
      • vip_level          - 0..5, пересчитывается при одобрении депозита.
      • referral_code      - собственный код (уникален, верхний регистр).
      • referred_by_code   - код пригласившего (если был).
      • last_task_date     - день последнего выполненного задания (UTC).
      • role               - 'user' | 'admin' (только подпись).
    """

    __tablename__ = "profiles"
    __table_args__ = (
        UniqueConstraint("user_id", name="uq_profiles_user_id"),
        UniqueConstraint("referral_code", name="uq_profiles_referral_code"),
        CheckConstraint("wallet_balance >= 0", name="wallet_balance_nonneg"),
        CheckConstraint("total_deposited >= 0", name="total_deposited_nonneg"),
        CheckConstraint("total_earned >= 0", name="total_earned_nonneg"),
        CheckConstraint("referral_earnings >= 0", name="referral_earnings_nonneg"),
        CheckConstraint("total_referrals >= 0", name="total_referrals_nonneg"),
        CheckConstraint("vip_level >= 0 AND vip_level <= 5", name="vip_level_range"),
        CheckConstraint("role IN ('user','admin')", name="role_enum"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("auth_users.id", ondelete="CASCADE"),
        nullable=False,
    )

    username: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    payment_method: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    # Денежные агрегаты
    wallet_balance: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0.00"), server_default="0")
    total_deposited: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0.00"), server_default="0")
    total_earned: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0.00"), server_default="0")
    referral_earnings: Mapped[Decimal] = mapped_column(
        MONEY, nullable=False, default=Decimal("0.00"), server_default="0"
    )
    total_referrals: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    vip_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    # Рефералка
    referral_code: Mapped[str] = mapped_column(String(16), nullable=False)
    referred_by_code: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    last_task_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="user", server_default="user")
    join_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Profile user={self.user_id} vip={self.vip_level} balance={self.wallet_balance}>"


# Витрина админки «новые сверху»
Index("ix_profiles_created_id", Profile.created_at, Profile.id)


# -----------------------------------------------------------------------------
# Роли
# -----------------------------------------------------------------------------
class AdminRole(Base):
    """Строка роли. Наличие (user_id, 'admin') - это и есть права администратора."""

    __tablename__ = "admin_roles"
    __table_args__ = (
        UniqueConstraint("user_id", "role", name="uq_admin_roles_user_role"),
        CheckConstraint("role IN ('admin','moderator')", name="role_enum"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("auth_users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="admin")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )


__all__ = [
    "MONEY",
    "TimestampMixin",
    "AuthUser",
    "AuthSession",
    "Profile",
    "AdminRole",
]
# =============================================================================
# Пояснения «для чайника»:
#   • Почему user_id уникален отдельно от PK id?
#     Внутренний id - технический ключ таблицы. UUID пользователя приходит из
#     auth_users и используется всеми сервисами; его уникальность защищаем явно.
#
#   • Можно ли пользователю уйти «в минус»?
#     Нет. Это запрещено CHECK-ограничениями, а списание при одобрении вывода
#     ограничено нулём на стороне БД (CASE в UPDATE).
# =============================================================================
