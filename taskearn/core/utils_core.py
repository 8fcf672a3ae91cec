# -*- coding: utf-8 -*-
# taskearn/core/utils_core.py
# =============================================================================
# Назначение:
#   • Базовые утилиты уровня "core" без зависимостей от FastAPI/SQLAlchemy.
#   • Работа с Decimal (денежная точность, фиксированное округление DOWN).
#   • Время: UTC-«сейчас» и UTC-календарный день (граница дневных лимитов).
#   • Генерация реферальных кодов и UUID пользователей.
#
# Канон:
#   • Денежные суммы во всех публичных форматах - MONEY_DECIMALS знаков.
#   • Округление по умолчанию DOWN (обрезаем, а не округляем вверх).
#   • Все функции чистые: без сетевых вызовов и побочных эффектов.
# =============================================================================

from __future__ import annotations

import secrets
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_DOWN
from typing import Union

NumberLike = Union[str, int, float, Decimal]

# Алфавит реф-кодов: верхний регистр, без двусмысленных O/0/I/1.
REF_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


# -----------------------------------------------------------------------------
# Decimal helpers
# -----------------------------------------------------------------------------
def decimal_from(value: NumberLike) -> Decimal:
    """
    Приводит значение к Decimal. float идёт через str(), чтобы не тащить
    бинарные артефакты (0.1 → Decimal('0.1'), а не 0.1000000000000000055...).
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    try:
        return Decimal(value)
    except InvalidOperation:
        raise ValueError(f"not a number: {value!r}") from None


def quantize_money(value: NumberLike, decimals: int = 2) -> Decimal:
    """Фиксированная точка с округлением DOWN (по умолчанию центы)."""
    q = Decimal(1).scaleb(-decimals)
    return decimal_from(value).quantize(q, rounding=ROUND_DOWN)


def format_usd(value: NumberLike) -> str:
    """Формат для писем/push: '$12.50'."""
    return f"${quantize_money(value):.2f}"


# -----------------------------------------------------------------------------
# Время
# -----------------------------------------------------------------------------
def utcnow() -> datetime:
    """Текущее время в UTC с tzinfo=UTC."""
    return datetime.now(tz=timezone.utc)


def utc_today() -> date:
    """Календарный день (UTC), по которому считаются лимиты и дедуп заданий."""
    return utcnow().date()


# -----------------------------------------------------------------------------
# Идентификаторы
# -----------------------------------------------------------------------------
def gen_ref_code(length: int = 8, alphabet: str = REF_CODE_ALPHABET) -> str:
    """Короткий реферальный код из безопасного алфавита."""
    return "".join(secrets.choice(alphabet) for _ in range(length))


def new_user_id() -> str:
    """UUID4 пользователя в строковом виде."""
    return str(uuid.uuid4())


__all__ = [
    "NumberLike",
    "REF_CODE_ALPHABET",
    "decimal_from",
    "quantize_money",
    "format_usd",
    "utcnow",
    "utc_today",
    "gen_ref_code",
    "new_user_id",
]
