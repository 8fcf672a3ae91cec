# -*- coding: utf-8 -*-
# taskearn/services/vip_service.py
# =============================================================================
# Назначение кода:
#   Правило VIP-прогрессии TaskEarn:
#   • vip_level(total_deposited, total_earned) - уровень 0..5 по сумме активности;
#   • daily_task_limit(level) - сколько заданий в день доступно уровню;
#   • vip_tiers() - витрина уровней (название, порог, лимит, бонус, преимущества);
#   • vip_progress(...) - прогресс до следующего уровня для экрана VIP.
#
# Канон/инварианты:
#   • Активность = total_deposited + total_earned (реферальные бонусы не входят).
#   • Уровень - наибольший L, для которого активность ≥ порога L.
#     Пороги по умолчанию 0/20/50/100/200/500 (Settings.VIP_THRESHOLDS).
#   • Функция чистая и монотонная: рост активности не понижает уровень.
#   • Лимиты по умолчанию {0:5, 1:10, 2:15, 3:20, 4:25, 5:30}.
#
# Запреты:
#   • Никаких обращений к БД - только вычисления. Уровень в профиль пишет
#     сервис модерации при одобрении депозита.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Sequence

from taskearn.core.config_core import VIP_LEVELS_COUNT, get_settings
from taskearn.core.utils_core import NumberLike, decimal_from, quantize_money

settings = get_settings()

MAX_VIP_LEVEL = VIP_LEVELS_COUNT - 1


@dataclass(frozen=True)
class VipTier:
    level: int
    name: str
    requirement: Decimal
    daily_tasks: int
    bonus_percent: int
    benefits: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class VipProgress:
    current: VipTier
    next: Optional[VipTier]
    activity_total: Decimal
    amount_needed: Decimal
    progress_percent: float


# Тексты преимуществ по уровням (число заданий подставляется из настроек).
_TIER_PERKS: Sequence[Sequence[str]] = (
    ("Basic support", "Standard rewards"),
    ("Priority support", "5% bonus rewards", "Exclusive tasks access"),
    ("VIP support channel", "10% bonus rewards", "Weekly bonus tasks", "Faster withdrawals"),
    (
        "Dedicated VIP support",
        "15% bonus rewards",
        "Premium task categories",
        "Monthly bonus rewards",
        "Lower withdrawal fees",
    ),
    (
        "Premium support",
        "20% bonus rewards",
        "Exclusive VIP tasks",
        "Early access to new features",
        "Free withdrawals",
        "Special VIP events",
    ),
    (
        "White-glove support",
        "25% bonus rewards",
        "Unlimited premium tasks",
        "Beta feature access",
        "Instant withdrawals",
        "VIP-only competitions",
        "Personal account manager",
    ),
)


def vip_level(
    total_deposited: NumberLike,
    total_earned: NumberLike,
    thresholds: Optional[Sequence[Decimal]] = None,
) -> int:
    """
    Уровень VIP по сумме депозитов и заработка.

    >>> vip_level(Decimal("60"), Decimal("15"))
    2
    """
    table = list(thresholds) if thresholds is not None else settings.vip_thresholds
    activity = decimal_from(total_deposited) + decimal_from(total_earned)
    level = 0
    for idx, threshold in enumerate(table):
        if activity >= threshold:
            level = idx
        else:
            break
    return min(level, MAX_VIP_LEVEL)


def daily_task_limit(level: int) -> int:
    """Дневной лимит заданий для уровня; уровень вне диапазона прижимается к краю."""
    limits = settings.vip_daily_task_limits
    idx = max(0, min(int(level), len(limits) - 1))
    return limits[idx]


def vip_tiers() -> List[VipTier]:
    """Витрина всех уровней: Standard, VIP 1 … VIP 5."""
    thresholds = settings.vip_thresholds
    limits = settings.vip_daily_task_limits
    tiers: List[VipTier] = []
    for level in range(VIP_LEVELS_COUNT):
        tiers.append(
            VipTier(
                level=level,
                name="Standard" if level == 0 else f"VIP {level}",
                requirement=quantize_money(thresholds[level]),
                daily_tasks=limits[level],
                bonus_percent=5 * level,
                benefits=[f"{limits[level]} tasks per day", *_TIER_PERKS[level]],
            )
        )
    return tiers


def vip_progress(total_deposited: NumberLike, total_earned: NumberLike, level: int) -> VipProgress:
    """
    Прогресс от текущего уровня к следующему, в процентах [0, 100].
    На максимальном уровне прогресс 100 и нужная сумма 0.
    """
    tiers = vip_tiers()
    level = max(0, min(int(level), MAX_VIP_LEVEL))
    activity = quantize_money(decimal_from(total_deposited) + decimal_from(total_earned))
    current = tiers[level]
    nxt = tiers[level + 1] if level < MAX_VIP_LEVEL else None

    if nxt is None:
        return VipProgress(current, None, activity, Decimal("0.00"), 100.0)

    span = nxt.requirement - current.requirement
    raw = float((activity - current.requirement) / span * 100) if span > 0 else 100.0
    percent = min(max(raw, 0.0), 100.0)
    needed = max(nxt.requirement - activity, Decimal("0"))
    return VipProgress(current, nxt, activity, quantize_money(needed), round(percent, 2))


__all__ = [
    "MAX_VIP_LEVEL",
    "VipTier",
    "VipProgress",
    "vip_level",
    "daily_task_limit",
    "vip_tiers",
    "vip_progress",
]
