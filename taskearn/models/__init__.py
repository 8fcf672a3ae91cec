# -*- coding: utf-8 -*-
# taskearn/models/__init__.py
# =============================================================================
# Назначение кода:
# Единая точка входа слоя моделей TaskEarn. Централизует:
#  • загрузку ORM-базиса (Base) и всех моделей (для Alembic и create_all в тестах);
#  • реестр MODEL_REGISTRY для удобного доступа к классам моделей;
#  • лёгкую диагностику полноты набора таблиц (models_health).
#
# Канон/инварианты (важно):
#  • Модели описывают структуру данных, НЕ содержат бизнес-логики и денег.
#  • Денежные операции выполняются ТОЛЬКО в services/*.
#
# Запреты:
#  • Не размещать в __init__ бизнес-операции, миграции и DDL.
# =============================================================================

from __future__ import annotations

import inspect
from typing import Dict, List, Tuple, Type

from ..core.database_core import Base  # единый Declarative Base проекта
from ..core.logging_core import get_logger
from . import notifications_models, referral_models, tasks_models, transactions_models, user_models
from .notifications_models import PushSubscription
from .referral_models import Referral
from .tasks_models import Task, TaskCompletion
from .transactions_models import WalletTransaction
from .user_models import AdminRole, AuthSession, AuthUser, Profile

logger = get_logger(__name__)

_MODEL_MODULES = (
    user_models,
    tasks_models,
    transactions_models,
    referral_models,
    notifications_models,
)


def _collect_model_classes(module) -> Dict[str, Type[Base]]:
    """
    Возвращает {ClassName: Class} для всех классов-моделей SQLAlchemy (подклассы Base)
    с объявленным __tablename__.
    """
    registry: Dict[str, Type[Base]] = {}
    for name, obj in vars(module).items():
        if inspect.isclass(obj) and issubclass(obj, Base) and hasattr(obj, "__tablename__"):
            registry[name] = obj
    return registry


MODEL_REGISTRY: Dict[str, Type[Base]] = {}
for _mod in _MODEL_MODULES:
    MODEL_REGISTRY.update(_collect_model_classes(_mod))


def list_models() -> List[Tuple[str, str]]:
    """Список пар (ClassName, __tablename__) всех моделей, по алфавиту."""
    return [
        (cls_name, cls.__tablename__)
        for cls_name, cls in sorted(MODEL_REGISTRY.items(), key=lambda kv: kv[0].lower())
    ]


def models_health() -> Dict[str, object]:
    """
    Проверяет, что все ключевые таблицы зарегистрированы в metadata.
    Результат уходит в /health.
    """
    required_tables = {
        "auth_users",
        "auth_sessions",
        "profiles",
        "tasks",
        "task_completions",
        "wallet_transactions",
        "referrals",
        "admin_roles",
        "push_subscriptions",
    }
    missing = sorted(required_tables - set(Base.metadata.tables))
    if missing:
        logger.warning("models_health: missing tables %s", missing)
    return {"ok": not missing, "missing_tables": missing, "models": len(MODEL_REGISTRY)}


__all__ = [
    "Base",
    "MODEL_REGISTRY",
    "list_models",
    "models_health",
    "AuthUser",
    "AuthSession",
    "Profile",
    "AdminRole",
    "Task",
    "TaskCompletion",
    "WalletTransaction",
    "Referral",
    "PushSubscription",
]
