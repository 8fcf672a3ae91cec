# -*- coding: utf-8 -*-
# taskearn/schemas/common_schemas.py
# =============================================================================
# Назначение кода:
# Базовые Pydantic-схемы TaskEarn для всех API: нормализация денежных
# значений (Decimal с 2 знаками, округление вниз), типовые ответы/ошибки.
# Единый контракт для фронтенда.
#
# Канон / инварианты:
# • Все суммы - Decimal(18, 2). Снаружи всегда выдаём строкой с 2 знаками.
# • DTO собираются из ORM-строк через from_attributes: строка неверной формы
#   падает на границе, а не уходит дальше как «undefined».
#
# Запреты:
# • Нет бизнес-логики и пересчётов - только декларативные DTO/валидаторы.
# =============================================================================

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

from taskearn.core.utils_core import quantize_money


def m2_str(x: Any) -> str:
    """Decimal/число → строка с 2 знаками (ROUND_DOWN)."""
    return f"{quantize_money(x):.2f}"


# Денежное поле: внутри Decimal, наружу строка "12.50".
Money = Annotated[Decimal, PlainSerializer(m2_str, return_type=str, when_used="json")]


class ORMModel(BaseModel):
    """База для DTO, собираемых из ORM-объектов."""

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Базовые ответы/ошибки
# -----------------------------------------------------------------------------
class ErrorResponse(BaseModel):
    """Стандартная форма ошибки для фронтенда (см. errors_core.to_payload)."""

    error: str = Field(..., description="Короткий код ошибки (snake_case)")
    message: str = Field(..., description="Человеко-читаемое описание проблемы")
    details: Optional[Dict[str, Any]] = None


class OkMeta(BaseModel):
    """Мини-мета об успешной обработке."""

    ok: bool = Field(True, description="Флаг успешной операции")
    server_time: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="UTC-время формирования ответа (ISO-8601)",
    )


__all__ = ["m2_str", "Money", "ORMModel", "ErrorResponse", "OkMeta"]
