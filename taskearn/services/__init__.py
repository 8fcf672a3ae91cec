# -*- coding: utf-8 -*-
# taskearn/services/__init__.py
# =============================================================================
# TaskEarn - сервисный слой (единая точка входа)
# -----------------------------------------------------------------------------
# Назначение файла:
#   • Дать единый, стабильный вход для доменных сервисов TaskEarn.
#   • Предоставить ensure_ledger_consistency() - сверку кэша балансов
#     с журналом по всем профилям (ручной запуск/обслуживание).
#
# Важные принципы:
#   • Бизнес-логики здесь нет - только импорты и тонкие прокси.
#   • Никаких сетевых вызовов на уровне импорта.
# =============================================================================

from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from taskearn.core.logging_core import get_logger
from taskearn.crud.user_crud import ProfileCRUD

from .auth_service import (  # noqa: F401
    AuthResult,
    SessionContext,
    admin_login,
    resolve_session,
    sign_in,
    sign_out,
    sign_up,
)
from .notifications_service import (  # noqa: F401
    NotificationDispatcher,
    get_dispatcher,
    set_dispatcher,
)
from .referral_service import attribute_referral, get_referral_overview  # noqa: F401
from .tasks_service import complete_task, get_today_status, list_active_tasks  # noqa: F401
from .transactions_service import (  # noqa: F401
    ReconcileResult,
    ledger_balance,
    reconcile_profile,
    request_deposit,
    request_withdrawal,
)
from .vip_service import daily_task_limit, vip_level, vip_tiers  # noqa: F401

logger = get_logger(__name__)


async def ensure_ledger_consistency(
    db: AsyncSession,
    *,
    fix: bool = False,
    batch_limit: int = 500,
) -> Dict[str, Any]:
    """
    Сверка wallet_balance с журналом для последних batch_limit профилей.

    Возвращает отчёт: сколько проверено и у кого кэш разошёлся с журналом.
    При fix=True расхождения исправляются значением журнала.
    """
    profiles = await ProfileCRUD(db).list_profiles(limit=batch_limit)
    user_ids = [p.user_id for p in profiles]

    drift: List[Dict[str, str]] = []
    for user_id in user_ids:
        result: ReconcileResult = await reconcile_profile(db, user_id=user_id, fix=fix)
        if result.cached_balance != result.ledger_balance:
            drift.append(
                {
                    "user_id": user_id,
                    "cached": str(result.cached_balance),
                    "ledger": str(result.ledger_balance),
                }
            )

    if drift:
        logger.warning("ledger consistency: %s of %s profiles drifted (fix=%s)", len(drift), len(user_ids), fix)
    return {"checked": len(user_ids), "drift": drift, "fixed": fix and bool(drift)}


__all__ = [
    # --- auth ---
    "AuthResult",
    "SessionContext",
    "sign_up",
    "sign_in",
    "sign_out",
    "admin_login",
    "resolve_session",
    # --- tasks / vip ---
    "complete_task",
    "get_today_status",
    "list_active_tasks",
    "vip_level",
    "daily_task_limit",
    "vip_tiers",
    # --- wallet ---
    "request_deposit",
    "request_withdrawal",
    "ledger_balance",
    "reconcile_profile",
    "ReconcileResult",
    # --- referrals ---
    "attribute_referral",
    "get_referral_overview",
    # --- notifications ---
    "NotificationDispatcher",
    "get_dispatcher",
    "set_dispatcher",
    # --- maintenance ---
    "ensure_ledger_consistency",
]
