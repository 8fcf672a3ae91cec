# -*- coding: utf-8 -*-
"""Initial migration for TaskEarn.

Назначение:
    • Создать все таблицы TaskEarn согласно текущим моделям: auth_users,
      auth_sessions, profiles, admin_roles, tasks, task_completions,
      wallet_transactions, referrals, push_subscriptions.
    • Задать ограничения/индексы из ORM-моделей (UNIQUE(user_id, task_id,
      completion_date), UNIQUE(referred_id), CHECK на типы/статусы и др.).

Канон/инварианты:
    • Денежные операции и балансы не изменяются - только DDL.
    • Таблицы создаются через Declarative Base, что исключает расхождение между
      миграцией и моделями.
"""

from __future__ import annotations

from alembic import op

from taskearn.core.database_core import Base
from taskearn.core.logging_core import get_logger
from taskearn.models import MODEL_REGISTRY

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels = None
depends_on = None

logger = get_logger(__name__)


def upgrade() -> None:
    """Создать все таблицы/индексы из моделей."""

    logger.info("creating tables", extra={"models": sorted(MODEL_REGISTRY)})
    Base.metadata.create_all(bind=op.get_bind(), checkfirst=True)


def downgrade() -> None:
    """Удалить таблицы TaskEarn (обратный порядок зависимостей)."""

    Base.metadata.drop_all(bind=op.get_bind(), checkfirst=True)


# ============================================================================
# Пояснения «для чайника»:
#   • Миграция создаёт все таблицы сразу по текущим моделям.
#   • checkfirst=True: повторный запуск на существующей базе ничего не ломает.
#   • Экономика/балансы не изменяются - это чистый DDL.
# ============================================================================
