# -*- coding: utf-8 -*-
# taskearn/core/security_core.py
# =============================================================================
# Назначение кода:
#   Централизованный слой безопасности TaskEarn:
#   • хеширование паролей (bcrypt через passlib);
#   • JWT (HS256) c полями sub/iat/exp/jti - это «билет» сессии;
#   • извлечение Bearer-токена из заголовка Authorization.
#
# Канон / инварианты:
#   • Здесь НЕТ денежных операций и балансов - только «кто ты».
#   • jti токена совпадает с id строки auth_sessions: выход из аккаунта
#     помечает строку revoked_at, и токен перестаёт приниматься.
#   • Права администратора НЕ кладутся в токен: источник истины -
#     таблица admin_roles (см. services/admin/admin_rbac.py).
#
# Запреты:
#   • Никакой бизнес-логики - только аутентификация.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from uuid import uuid4

import jwt
from fastapi.security import HTTPBearer
from passlib.context import CryptContext

from taskearn.core.config_core import get_settings
from taskearn.core.errors_core import AuthError
from taskearn.core.logging_core import get_logger
from taskearn.core.utils_core import utcnow

logger = get_logger(__name__)
settings = get_settings()

# -----------------------------------------------------------------------------
# Базовые контексты / константы безопасности
# -----------------------------------------------------------------------------
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
auth_scheme = HTTPBearer(auto_error=False)

JWT_ALGORITHM = "HS256"

Payload = Dict[str, Any]


@dataclass(frozen=True)
class IssuedToken:
    """Результат выпуска токена: сам JWT, его jti и момент истечения."""

    token: str
    jti: str
    expires_at: datetime


# -----------------------------------------------------------------------------
# Пароли
# -----------------------------------------------------------------------------
def hash_password(password: str) -> str:
    """Хешируем пароль (bcrypt)."""
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    """Проверяем пароль (bcrypt)."""
    return pwd_context.verify(password, hashed)


# -----------------------------------------------------------------------------
# JWT токены (HS256)
# -----------------------------------------------------------------------------
def _get_secret_key() -> str:
    """
    Возвращает SECRET_KEY из настроек. Без секрета сессии не выдаются:
    никаких «фиктивных» ключей по умолчанию.
    """
    key = settings.SECRET_KEY
    if not key:
        logger.error("SECRET_KEY is not configured")
        raise RuntimeError("SECRET_KEY is not configured")
    return str(key)


def create_access_token(
    subject: str,
    *,
    expires_delta: Optional[timedelta] = None,
    extra: Optional[Payload] = None,
) -> IssuedToken:
    """
    Создаёт JWT с полями:
      • sub - user_id (UUID строкой);
      • iat - момент выпуска (UTC);
      • exp - момент истечения (UTC);
      • jti - уникальный идентификатор токена (= id сессии);
      • extra - произвольные дополнительные поля (например, email).
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    now = utcnow()
    expires_at = now + expires_delta
    jti = uuid4().hex
    payload: Payload = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
        "jti": jti,
    }
    if extra:
        payload.update(extra)

    token = jwt.encode(payload, _get_secret_key(), algorithm=JWT_ALGORITHM)
    return IssuedToken(token=token, jti=jti, expires_at=expires_at)


def decode_access_token(token: str) -> Payload:
    """
    Декод JWT с контролируемыми ошибками (AuthError → 401).

    Детали верификации наружу не раскрываются.
    """
    try:
        payload = jwt.decode(token, _get_secret_key(), algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthError("Session expired.") from None
    except jwt.InvalidTokenError:
        raise AuthError("Invalid session token.") from None

    if not payload.get("sub") or not payload.get("jti"):
        raise AuthError("Invalid session token.")
    return payload


__all__ = [
    "pwd_context",
    "auth_scheme",
    "IssuedToken",
    "hash_password",
    "verify_password",
    "create_access_token",
    "decode_access_token",
]

# =============================================================================
# Пояснения «для чайника»:
#   • Этот модуль отвечает только за «кто ты», но НЕ за «что тебе можно».
#   • Токен сам по себе не даёт доступа: resolve_session() в auth_service
#     дополнительно проверяет, что строка сессии не отозвана.
# =============================================================================
