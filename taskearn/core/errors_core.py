# -*- coding: utf-8 -*-
# taskearn/core/errors_core.py
# =============================================================================
# Назначение кода:
#   • Единый слой ошибок/исключений TaskEarn.
#   • Канонические коды ошибок для фронтенда/логов.
#   • Унифицированные JSON-ответы для FastAPI.
#
# Таксономия:
#   1) Валидация (422): неверная сумма, пустые реквизиты, вывод ниже минимума.
#   2) Нарушение политики (409): DailyLimitReached, AlreadyCompletedToday,
#      AlreadySettled, неактивное задание.
#   3) Сбой БД/сети (500 internal_error): операция считается неприменённой,
#      повтор безопасен.
#   4) Побочные каналы (push/email): только лог, наружу не выходят.
#
# Канон:
#   • Сервисы бросают ТОЛЬКО доменные исключения из этого модуля.
#   • Клиенту никогда не утекают технические детали (stack trace, DSN, ключи).
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, cast

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from taskearn.core.logging_core import get_logger

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Базовая доменная ошибка
# -----------------------------------------------------------------------------
@dataclass(eq=False)
class TaskEarnError(Exception):
    """
    Базовое доменное исключение.

    Поля:
      • code         - стабильный машинный код ошибки (snake_case).
      • message      - короткое безопасное сообщение для клиента.
      • http_status  - HTTP код по умолчанию.
      • details      - безопасные детали (без секретов), опционально.
    """

    code: str
    message: str
    http_status: int = status.HTTP_400_BAD_REQUEST
    details: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        """Готовит JSON-ответ для клиента."""
        payload: Dict[str, Any] = {
            "error": self.code,
            "message": self.message,
        }
        if self.details:
            payload["details"] = self.details
        return payload

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


# -----------------------------------------------------------------------------
# Общие ошибки
# -----------------------------------------------------------------------------
class NotFoundError(TaskEarnError):
    """Ресурс не найден (профиль, задание, транзакция)."""

    def __init__(
        self,
        message: str = "Resource not found.",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="not_found",
            message=message,
            http_status=status.HTTP_404_NOT_FOUND,
            details=details or {},
        )


class ValidationError(TaskEarnError):
    """Некорректные входные данные. Состояние не менялось."""

    def __init__(
        self,
        message: str = "Invalid data.",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="validation_error",
            message=message,
            http_status=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details or {},
        )


class InsufficientBalanceError(TaskEarnError):
    """Сумма вывода больше текущего баланса."""

    def __init__(
        self,
        message: str = "You don't have enough balance for this withdrawal.",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="insufficient_balance",
            message=message,
            http_status=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details or {},
        )


class AuthError(TaskEarnError):
    """Нет/неверная сессия или учётные данные."""

    def __init__(
        self,
        message: str = "Not authenticated.",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="not_authenticated",
            message=message,
            http_status=status.HTTP_401_UNAUTHORIZED,
            details=details or {},
        )


class PermissionDeniedError(TaskEarnError):
    """Пользователь аутентифицирован, но строки admin в admin_roles нет."""

    def __init__(
        self,
        message: str = "Admin access required.",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="forbidden",
            message=message,
            http_status=status.HTTP_403_FORBIDDEN,
            details=details or {},
        )


class ConflictError(TaskEarnError):
    """Конфликт уникальности (например, email уже зарегистрирован)."""

    def __init__(
        self,
        message: str = "Conflict.",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="conflict",
            message=message,
            http_status=status.HTTP_409_CONFLICT,
            details=details or {},
        )


# -----------------------------------------------------------------------------
# Нарушения политики (отклонённое действие, без частичных мутаций)
# -----------------------------------------------------------------------------
class DailyLimitReached(TaskEarnError):
    """Дневной лимит заданий для текущего VIP-уровня исчерпан."""

    def __init__(
        self,
        message: str = "You've reached your daily task limit. Come back tomorrow!",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="daily_limit_reached",
            message=message,
            http_status=status.HTTP_409_CONFLICT,
            details=details or {},
        )


class AlreadyCompletedToday(TaskEarnError):
    """Это задание уже выполнено сегодня."""

    def __init__(
        self,
        message: str = "You've already completed this task today!",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="already_completed_today",
            message=message,
            http_status=status.HTTP_409_CONFLICT,
            details=details or {},
        )


class AlreadySettled(TaskEarnError):
    """Транзакция уже переведена в completed/rejected."""

    def __init__(
        self,
        message: str = "Transaction is already settled.",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="already_settled",
            message=message,
            http_status=status.HTTP_409_CONFLICT,
            details=details or {},
        )


class TaskInactiveError(TaskEarnError):
    """Задание выключено админом."""

    def __init__(
        self,
        message: str = "Task is not active.",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="task_inactive",
            message=message,
            http_status=status.HTTP_409_CONFLICT,
            details=details or {},
        )


class ReferralError(TaskEarnError):
    """
    Причина отказа реферальной атрибуции. Наружу не выходит:
    сервис ловит её, пишет WARNING и возвращает False.
    """

    def __init__(
        self,
        message: str = "Referral operation error.",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="referral_error",
            message=message,
            http_status=status.HTTP_400_BAD_REQUEST,
            details=details or {},
        )


# -----------------------------------------------------------------------------
# Нормализация исключений → (status_code, payload)
# -----------------------------------------------------------------------------
def normalize_exception(exc: BaseException) -> Tuple[int, Dict[str, Any]]:
    """
    Приводит произвольное исключение к каноническому HTTP-ответу.

    Правила:
      • TaskEarnError   → свой http_status + to_payload().
      • HTTPException   → status_code + {"error": "http_error", "message", ...}.
      • Любая другая    → 500 + {"error": "internal_error"} (без деталей).
    """
    if isinstance(exc, TaskEarnError):
        return exc.http_status, exc.to_payload()

    if isinstance(exc, HTTPException):
        details: Dict[str, Any] = {}
        if isinstance(exc.detail, str):
            msg = exc.detail
        elif isinstance(exc.detail, dict):
            details = cast(Dict[str, Any], exc.detail)
            msg = details.get("message") or details.get("detail") or "HTTP error."
        else:
            msg = "HTTP error."
        payload: Dict[str, Any] = {"error": "http_error", "message": msg}
        if details:
            payload["details"] = details
        return exc.status_code, payload

    logger.error("Unhandled exception", exc_info=exc, extra={"error_type": type(exc).__name__})
    return (
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {"error": "internal_error", "message": "Internal server error."},
    )


# -----------------------------------------------------------------------------
# FastAPI-хендлеры исключений
# -----------------------------------------------------------------------------
async def taskearn_error_handler(request: Request, exc: TaskEarnError) -> JSONResponse:
    """Обработчик доменных ошибок: стабильный error-код + message."""
    status_code, payload = normalize_exception(exc)
    logger.warning(
        "TaskEarnError handled",
        extra={"path": request.url.path, "error": exc.code, "status": status_code},
    )
    return JSONResponse(status_code=status_code, content=payload)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Обработчик "на всё остальное": stack trace в лог, клиенту - internal_error.
    """
    status_code, payload = normalize_exception(exc)
    logger.error(
        "Unhandled exception handled by generic handler",
        extra={"path": request.url.path, "status": status_code, "exc_type": type(exc).__name__},
    )
    return JSONResponse(status_code=status_code, content=payload)


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Подключает обработчики исключений. Вызывается один раз в create_app().
    """
    app.add_exception_handler(TaskEarnError, taskearn_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
    logger.info("Exception handlers registered for TaskEarnError/Exception")


# =============================================================================
# Пояснения «для чайника»:
#   • Если в сервисе нарушено бизнес-правило, бросайте наследника TaskEarnError,
#     а не голый HTTPException: фронт увидит стабильный error-код.
#   • Все наследники имеют одинаковую сигнатуру: Error(message=..., details=...).
# =============================================================================

__all__ = [
    "TaskEarnError",
    "NotFoundError",
    "ValidationError",
    "InsufficientBalanceError",
    "AuthError",
    "PermissionDeniedError",
    "ConflictError",
    "DailyLimitReached",
    "AlreadyCompletedToday",
    "AlreadySettled",
    "TaskInactiveError",
    "ReferralError",
    "normalize_exception",
    "setup_exception_handlers",
]
