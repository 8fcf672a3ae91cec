# -*- coding: utf-8 -*-
# taskearn/core/__init__.py
# =============================================================================
# Назначение кода:
# Единая точка входа ядра TaskEarn: загрузка настроек, первичная инициализация
# логирования и стартовая диагностика конфигурации (boot_core/core_health).
#
# Канон/инварианты (важно):
# • Источником истины служит config_core.get_settings() - никаких локальных
#   дублей констант здесь не создаём.
# • Денежные операции здесь НЕ выполняются (только конфиг/проверки/экспорты).
#
# Запреты:
# • Не импортируем тяжёлые слои (CRUD/Services) - ядро им не зависит от них.
# =============================================================================

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from .config_core import get_settings
from .logging_core import get_logger

# Версия ядра (повышать при несовместимых изменениях ядра)
CORE_VERSION = "1.0.0"

logger = get_logger(__name__)

__all__ = [
    "CORE_VERSION",
    "get_settings",
    "logger",
    "boot_core",
    "core_health",
]


def core_health() -> Dict[str, Any]:
    """
    Быстрые sanity-checks по ключевым настройкам. Никаких падений -
    только отчёт для логов и /health.

    Проверяем:
        • SECRET_KEY - без него нельзя выдать сессию.
        • DATABASE_URL - без него нет БД.
        • ADMIN_EMAIL - адрес, которому разрешён вход в админку.
        • Таблицы VIP согласованы: порогов столько же, сколько лимитов.

    Возвращает:
        dict: { ok: bool, errors: List[str], warnings: List[str], snapshot: Dict[str, str] }
    """
    settings = get_settings()
    errors: List[str] = []
    warnings: List[str] = []

    if not settings.SECRET_KEY:
        errors.append("SECRET_KEY must be set.")
    if not settings.DATABASE_URL:
        errors.append("DATABASE_URL must be set.")
    if not settings.ADMIN_EMAIL:
        errors.append("ADMIN_EMAIL must be set.")
    if len(settings.vip_thresholds) != len(settings.vip_daily_task_limits):
        errors.append("VIP_THRESHOLDS and VIP_DAILY_TASK_LIMITS differ in length.")

    if not settings.email_enabled:
        warnings.append("RESEND_API_KEY is not set; email notifications are off.")
    if not settings.push_enabled:
        warnings.append("VAPID_PRIVATE_KEY is not set; push notifications are off.")

    return {
        "ok": not errors,
        "errors": errors,
        "warnings": warnings,
        # ВНИМАНИЕ: без секретов, только флаги
        "snapshot": settings.debug_dump(),
    }


def boot_core() -> Dict[str, Any]:
    """
    Стартовая диагностика ядра: пишет сводку в лог и возвращает её.

    Побочные эффекты:
        • Логи старта/варнингов.
        • Никаких операций с БД/деньгами.
    """
    health = core_health()
    logger.info(
        "TaskEarn core boot: version=%s env=%s",
        CORE_VERSION,
        health["snapshot"].get("env"),
    )
    for warning in health["warnings"]:
        logger.warning("core: %s", warning)
    if not health["ok"]:
        logger.error("core health errors: %s", health["errors"])

    return {
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "core_version": CORE_VERSION,
        "health": health,
    }


# =============================================================================
# Пояснения:
# • Этот __init__ не дублирует конфиг - только экспортирует get_settings и
#   предоставляет boot_core()/core_health() для старта и диагностики.
# • boot_core() вызывается в lifespan приложения, чтобы сразу увидеть проблемы
#   конфигурации в логах.
# =============================================================================
