# -*- coding: utf-8 -*-
# taskearn/core/logging_core.py
# =============================================================================
# Назначение кода:
#   Централизованная настройка логирования TaskEarn:
#   • формат и хэндлеры;
#   • контекст корреляции (request_id, idempotency_key, user_id);
#   • защита от утечек секретов;
#   • ASGI-middleware, проставляющий X-Request-ID.
#
# Канон / инварианты:
#   • Единый стиль логов во всём приложении:
#       - prod - JSON (python-json-logger, для агрегаторов),
#       - dev/local - человекочитаемый формат.
#   • Значимые операции сопровождаем полями: env, svc, rid, idk, uid.
#   • «Тихие» отказы бизнес-логики (рефералка, уведомления) обязаны оставлять
#     след в логе уровнем WARNING/ERROR.
#
# Запреты:
#   • Никакого логирования паролей, токенов сессий и приватных ключей.
#   • Никаких сетевых/блокирующих операций в форматерах/фильтрах.
# =============================================================================

from __future__ import annotations

import contextvars
import logging
import sys
import uuid
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple

from pythonjsonlogger.json import JsonFormatter

from taskearn.core.config_core import get_settings

ASGIApp = Callable[
    [Mapping[str, Any], Callable[..., Awaitable[Any]], Callable[..., Awaitable[Any]]],
    Awaitable[Any],
]


# -----------------------------------------------------------------------------
# Контекст корреляции (contextvars) - безопасно для асинхронного кода
# -----------------------------------------------------------------------------
_rid_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "rid",
    default=None,
)  # request_id
_idk_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "idk",
    default=None,
)  # idempotency_key
_uid_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "uid",
    default=None,
)  # user_id


def set_request_context(
    *,
    request_id: Optional[str] = None,
    idempotency_key: Optional[str] = None,
    user_id: Optional[str] = None,
) -> None:
    """
    Присвоить контекст корреляции текущему асинхронному потоку.

    Middleware ставит request_id/idempotency_key, зависимость require_user
    дописывает user_id после разбора сессии.
    """
    if request_id is not None:
        _rid_var.set(str(request_id))
    if idempotency_key is not None:
        _idk_var.set(str(idempotency_key))
    if user_id is not None:
        _uid_var.set(str(user_id))


def clear_request_context() -> None:
    """Очистить контекст корреляции (после завершения запроса/таски)."""
    _rid_var.set(None)
    _idk_var.set(None)
    _uid_var.set(None)


# -----------------------------------------------------------------------------
# Фильтры логирования
# -----------------------------------------------------------------------------
class ContextFilter(logging.Filter):
    """
    Впрыскивает в запись логера структурированные поля из contextvars и настроек.

    Поля:
      • env  - нормализованная среда (local/dev/prod);
      • svc  - имя сервиса (PROJECT_NAME);
      • rid  - request_id;
      • idk  - idempotency_key;
      • uid  - user_id (если установлен).
    """

    def __init__(self, env: str, service: str) -> None:
        super().__init__()
        self._env = env
        self._svc = service

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "env"):
            record.env = self._env
        if not hasattr(record, "svc"):
            record.svc = self._svc
        if not hasattr(record, "rid"):
            record.rid = _rid_var.get() or "-"
        if not hasattr(record, "idk"):
            record.idk = _idk_var.get() or "-"
        if not hasattr(record, "uid"):
            record.uid = _uid_var.get() or "-"
        return True


class RedactingFilter(logging.Filter):
    """
    Маскирует значения секретов из настроек в сообщении и аргументах записи.
    Маскируются конкретные значения, а не имена ключей.
    """

    MASK = "****"
    SECRET_KEYS: Tuple[str, ...] = (
        "SECRET_KEY",
        "DATABASE_URL",
        "RESEND_API_KEY",
        "VAPID_PRIVATE_KEY",
    )

    def __init__(self, settings_obj: object) -> None:
        super().__init__()
        self._secrets: list[str] = []
        for key in self.SECRET_KEYS:
            val = getattr(settings_obj, key, None)
            if val and isinstance(val, str):
                self._secrets.append(val)

    def _redact_text(self, text: str) -> str:
        redacted = text
        for secret in self._secrets:
            if secret in redacted:
                redacted = redacted.replace(secret, self.MASK)
        return redacted

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not self._secrets:
            return True
        if isinstance(record.msg, str):
            record.msg = self._redact_text(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(
                self._redact_text(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )
        return True


# -----------------------------------------------------------------------------
# Форматеры
# -----------------------------------------------------------------------------
class DevFormatter(logging.Formatter):
    """
    Человекочитаемый формат для local/dev-окружений.

    Пример строки:
    2026-01-10 12:00:00 | INFO     | TaskEarn | taskearn.services | rid=... idk=- uid=... | msg
    """

    def __init__(self) -> None:
        super().__init__(
            fmt=(
                "%(asctime)s | %(levelname)-8s | %(svc)s | %(name)s | "
                "rid=%(rid)s idk=%(idk)s uid=%(uid)s | %(message)s"
            ),
            datefmt="%Y-%m-%d %H:%M:%S",
        )


class _TaskEarnJsonFormatter(JsonFormatter):
    """JSON с фиксированными ключами верхнего уровня + extra-поля записи."""

    RENAME = {
        "asctime": "time",
        "levelname": "level",
        "svc": "service",
        "name": "logger",
        "message": "msg",
    }

    def process_log_record(self, log_data: Dict[str, Any]) -> Dict[str, Any]:
        base = super().process_log_record(log_data)
        return {self.RENAME.get(key, key): value for key, value in base.items()}


def _make_json_formatter() -> logging.Formatter:
    """
    JSON-форматер для продакшна.

    Структура JSON:
        {"time", "level", "service", "logger", "env", "rid", "idk", "uid", "msg", ...extra}
    """
    fmt = "%(asctime)s %(levelname)s %(svc)s %(name)s %(env)s %(rid)s %(idk)s %(uid)s %(message)s"
    return _TaskEarnJsonFormatter(fmt=fmt)


# -----------------------------------------------------------------------------
# Инициализация логирования
# -----------------------------------------------------------------------------
def setup_logging() -> None:
    """
    Полностью настраивает логирование:

      • root-логгер, формат, уровень (LOG_LEVEL, DEBUG → DEBUG);
      • консоль (stdout) с фильтрами контекста и редактирования;
      • uvicorn/fastapi-логгеры → в root (единый формат);
      • SQLAlchemy-логгер в режиме DEBUG.
    """
    settings = get_settings()
    env = settings.env_normalized
    debug = bool(settings.DEBUG)
    level = logging.DEBUG if debug else logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    console_handler = logging.StreamHandler(sys.stdout)
    formatter: logging.Formatter
    if settings.log_json_effective:
        formatter = _make_json_formatter()
    else:
        formatter = DevFormatter()
    console_handler.setFormatter(formatter)
    console_handler.addFilter(ContextFilter(env=env, service=settings.PROJECT_NAME))
    console_handler.addFilter(RedactingFilter(settings_obj=settings))
    root.addHandler(console_handler)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi"):
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.setLevel(level)
        logger.propagate = True

    if debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    logging.getLogger(__name__).info(
        "Logging initialized",
        extra={"details": {"env": env, "debug": debug, "level": logging.getLevelName(level)}},
    )


def get_logger(name: Optional[str] = None, **extra: Any) -> logging.Logger:
    """
    Получить логгер по имени и (опционально) привязать дополнительные поля
    через LoggerAdapter.

    Пример:
        log = get_logger(__name__, component="notifications")
        log.info("push delivered", extra={"user_id": uid})
    """
    base = logging.getLogger(name)
    if not extra:
        return base
    return logging.LoggerAdapter(base, extra)  # type: ignore[return-value]


# -----------------------------------------------------------------------------
# ASGI-middleware для корреляции
# -----------------------------------------------------------------------------
class CorrelationIdMiddleware:
    """
    Впрыскивает X-Request-ID и Idempotency-Key из HTTP-заголовков в contextvars,
    чтобы все логи запроса автоматически содержали rid/idk/uid.

    Правила:
      • Если X-Request-ID отсутствует - генерируется UUID4 (hex).
      • Ответ всегда несёт x-request-id.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(
        self,
        scope: Mapping[str, Any],
        receive: Callable[..., Awaitable[Any]],
        send: Callable[..., Awaitable[Any]],
    ) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        headers: Dict[str, str] = {
            key.decode("latin-1").lower(): value.decode("latin-1")
            for key, value in scope.get("headers") or []
        }
        rid = headers.get("x-request-id") or uuid.uuid4().hex
        set_request_context(request_id=rid, idempotency_key=headers.get("idempotency-key"))

        async def send_wrapper(message: Mapping[str, Any]) -> None:
            if message.get("type") == "http.response.start":
                headers_list = list(message.get("headers") or [])
                headers_list.append((b"x-request-id", rid.encode("latin-1")))
                new_message: Dict[str, Any] = dict(message)
                new_message["headers"] = headers_list
                await send(new_message)
                return
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            clear_request_context()


# Автоконфигурация при импорте
setup_logging()

__all__ = [
    "setup_logging",
    "get_logger",
    "set_request_context",
    "clear_request_context",
    "CorrelationIdMiddleware",
]
# =============================================================================
# Пояснения «для чайника»:
#   • В dev/local вы увидите читаемые строки; в prod - JSON с ключами
#     env/rid/idk/uid, готовый для централизованного сбора.
#   • CorrelationIdMiddleware подключается в create_app(): каждая HTTP-ручка
#     получает и возвращает уникальный X-Request-ID.
#   • Секреты из настроек маскируются как "****".
# =============================================================================
