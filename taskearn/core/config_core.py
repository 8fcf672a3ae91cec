# -*- coding: utf-8 -*-
# taskearn/core/config_core.py
# =============================================================================
# Назначение:
#   • Единый конфигурационный модуль TaskEarn (FastAPI + SQLAlchemy async).
#   • Канонический источник всех настроек: БД, безопасность, экономика
#     заданий/VIP/рефералов, каналы уведомлений, логирование.
#
# Канон / инварианты TaskEarn:
#   1) Денежные суммы - Decimal с MONEY_DECIMALS знаками (по умолчанию 2),
#      округление вниз (ROUND_DOWN).
#   2) Пороги VIP и дневные лимиты заданий - это таблицы конфигурации,
#      а не константы в коде. Уровней ровно шесть (0..5), пороги строго
#      возрастают и начинаются с 0.
#   3) Реферальный бонус фиксирован (REFERRAL_BONUS_USD) и платится один раз.
#   4) Минимальная сумма вывода - WITHDRAW_MIN_USD.
#
# Самодиагностика:
#   • configure_decimal_context() настраивает Decimal (ROUND_DOWN + запас
#     precision).
#   • initialize_runtime() проверяет DSN и печатает предупреждения по секретам.
#   • Валидаторы жёстко проверяют таблицы VIP/лимитов/диапазонов наград.
# =============================================================================

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_DOWN, getcontext
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VIP_LEVELS_COUNT = 6


# =============================================================================
# Вспомогательные утилиты (локальные, без сетевых вызовов)
# =============================================================================


def _parse_csv(value: object) -> List[str]:
    """Преобразует CSV-строку 'a,b,c' в ['a', 'b', 'c'] (пробелы обрезаются)."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(x).strip() for x in value if str(x).strip()]
    s = str(value).strip()
    if not s:
        return []
    return [item.strip() for item in s.split(",") if item.strip()]


def _parse_decimals(value: object) -> List[Decimal]:
    out: List[Decimal] = []
    for item in _parse_csv(value):
        try:
            out.append(Decimal(item))
        except InvalidOperation:
            raise ValueError(f"'{item}' не является числом") from None
    return out


def _parse_ranges(value: object) -> List[Tuple[Decimal, Decimal]]:
    """'0.05:0.10,0.10:0.20' → [(0.05, 0.10), (0.10, 0.20)]."""
    out: List[Tuple[Decimal, Decimal]] = []
    for item in _parse_csv(value):
        lo_raw, sep, hi_raw = item.partition(":")
        if not sep:
            raise ValueError(f"диапазон '{item}' должен иметь вид min:max")
        try:
            lo, hi = Decimal(lo_raw.strip()), Decimal(hi_raw.strip())
        except InvalidOperation:
            raise ValueError(f"диапазон '{item}' содержит не число") from None
        if lo <= 0 or hi < lo:
            raise ValueError(f"диапазон '{item}': требуется 0 < min <= max")
        out.append((lo, hi))
    return out


# =============================================================================
# Док-описания полей (используются в Swagger и как подсказки)
# =============================================================================


class _Doc:
    # Приложение
    PROJECT_NAME = "Имя проекта (отображается в Swagger/health)."
    ENV = "Окружение: production/dev/local (нормализуется в prod/dev/local)."
    DEBUG = "Расширенные логи и трассировки (только для dev/local)."
    APP_VERSION = "Версия приложения (попадает в /health)."
    APP_HOST = "Адрес для uvicorn (обычно 0.0.0.0)."
    APP_PORT = "Порт для uvicorn (например, 8000)."
    APP_RELOAD = "Горячая перезагрузка (для разработки)."
    API_PREFIX = "Префикс REST API, например /api."
    CORS_ORIGINS = "Список разрешённых Origin (CSV)."
    APP_PUBLIC_URL = "Публичный URL фронтенда (ссылки в письмах и рефссылках)."

    # БД
    DATABASE_URL = (
        "DSN PostgreSQL. Будет приведён к async (postgresql+asyncpg://). "
        "Для тестов допускается sqlite+aiosqlite://."
    )
    DB_POOL_SIZE = "Размер пула соединений SQLAlchemy."
    DB_MAX_OVERFLOW = "Дополнительные соединения в пике."

    # Безопасность
    SECRET_KEY = "Секрет подписи JWT (HS256)."
    ACCESS_TOKEN_EXPIRE_MINUTES = "Время жизни сессии/токена (минуты)."
    ADMIN_EMAIL = "Email фиксированной админ-учётки (вход в админ-панель)."

    # Экономика
    MONEY_DECIMALS = "Количество знаков денежных сумм (обычно 2)."
    VIP_THRESHOLDS = "Пороги активности (депозиты+заработок) для VIP 0..5 (CSV)."
    VIP_DAILY_TASK_LIMITS = "Дневной лимит заданий для VIP 0..5 (CSV)."
    TASK_REWARD_MODE = "static - награда задания; dynamic - диапазон по VIP."
    TASK_REWARD_RANGES = "Диапазоны наград для VIP 0..5: 'min:max,...' (USD)."
    REFERRAL_BONUS_USD = "Фиксированный бонус пригласителю (USD)."
    REFERRAL_CODE_LENGTH = "Длина реферального кода."
    WITHDRAW_MIN_USD = "Минимальная сумма вывода (USD)."

    # Уведомления
    RESEND_API_KEY = "API-ключ почтового сервиса Resend (пусто → email выключен)."
    RESEND_API_URL = "Endpoint отправки писем Resend."
    EMAIL_FROM = "Отправитель транзакционных писем."
    VAPID_PUBLIC_KEY = "Публичный VAPID-ключ (отдаётся фронтенду)."
    VAPID_PRIVATE_KEY = "Приватный VAPID-ключ (пусто → push выключен)."
    VAPID_CLAIMS_EMAIL = "Контакт для VAPID claims (mailto:)."
    PUSH_DEFAULT_URL = "Deep link, который открывает клик по push."
    NOTIFY_MAX_ATTEMPTS = "Максимум попыток доставки на канал."
    NOTIFY_BACKOFF_BASE_SEC = "Базовая пауза экспоненциального backoff (сек)."
    NOTIFY_BACKOFF_MAX_SEC = "Потолок паузы backoff (сек)."
    NETWORK_REQUEST_TIMEOUT_SEC = "Таймаут сетевых запросов (сек)."

    # Logging
    LOG_LEVEL = "Уровень логирования (INFO/DEBUG/WARNING/ERROR)."
    LOG_JSON = "Лог в JSON (true/false); по умолчанию JSON только в prod."


# =============================================================================
# Настройки приложения (единственный источник истины)
# =============================================================================


class Settings(BaseSettings):
    """
    Контейнер переменных окружения TaskEarn.

    Важное:
      • Секреты берём только из ENV - в код не шьём.
      • Бизнес-таблицы (VIP, лимиты, диапазоны наград) валидируются при старте.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # --------------------------- БАЗОВЫЕ НАСТРОЙКИ ---------------------------
    PROJECT_NAME: str = Field("TaskEarn", description=_Doc.PROJECT_NAME)
    ENV: str = Field("production", description=_Doc.ENV)
    DEBUG: bool = Field(False, description=_Doc.DEBUG)
    APP_VERSION: str = Field("1.0.0", description=_Doc.APP_VERSION)

    APP_HOST: str = Field("0.0.0.0", description=_Doc.APP_HOST)
    APP_PORT: int = Field(8000, description=_Doc.APP_PORT)
    APP_RELOAD: bool = Field(False, description=_Doc.APP_RELOAD)

    API_PREFIX: str = Field("/api", description=_Doc.API_PREFIX)
    CORS_ORIGINS: str = Field("", description=_Doc.CORS_ORIGINS)
    APP_PUBLIC_URL: str = Field(
        "https://earntask.lovable.app",
        description=_Doc.APP_PUBLIC_URL,
    )

    # --------------------------------- БАЗА ----------------------------------
    DATABASE_URL: Optional[str] = Field(None, description=_Doc.DATABASE_URL)
    DB_POOL_SIZE: int = Field(10, description=_Doc.DB_POOL_SIZE)
    DB_MAX_OVERFLOW: int = Field(10, description=_Doc.DB_MAX_OVERFLOW)

    # ----------------------------- БЕЗОПАСНОСТЬ ------------------------------
    SECRET_KEY: Optional[str] = Field(None, description=_Doc.SECRET_KEY)
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(
        1440,
        description=_Doc.ACCESS_TOKEN_EXPIRE_MINUTES,
    )
    ADMIN_EMAIL: str = Field("admin@admin.com", description=_Doc.ADMIN_EMAIL)

    # ------------------------------- ЭКОНОМИКА -------------------------------
    MONEY_DECIMALS: int = Field(2, description=_Doc.MONEY_DECIMALS)
    VIP_THRESHOLDS: str = Field(
        "0,20,50,100,200,500",
        description=_Doc.VIP_THRESHOLDS,
    )
    VIP_DAILY_TASK_LIMITS: str = Field(
        "5,10,15,20,25,30",
        description=_Doc.VIP_DAILY_TASK_LIMITS,
    )
    TASK_REWARD_MODE: str = Field("static", description=_Doc.TASK_REWARD_MODE)
    TASK_REWARD_RANGES: str = Field(
        "0.05:0.10,0.10:0.20,0.15:0.30,0.20:0.40,0.25:0.50,0.30:0.60",
        description=_Doc.TASK_REWARD_RANGES,
    )
    REFERRAL_BONUS_USD: Decimal = Field(
        Decimal("1.00"),
        description=_Doc.REFERRAL_BONUS_USD,
    )
    REFERRAL_CODE_LENGTH: int = Field(8, description=_Doc.REFERRAL_CODE_LENGTH)
    WITHDRAW_MIN_USD: Decimal = Field(
        Decimal("5.00"),
        description=_Doc.WITHDRAW_MIN_USD,
    )

    # ------------------------------ УВЕДОМЛЕНИЯ ------------------------------
    RESEND_API_KEY: Optional[str] = Field(None, description=_Doc.RESEND_API_KEY)
    RESEND_API_URL: str = Field(
        "https://api.resend.com/emails",
        description=_Doc.RESEND_API_URL,
    )
    EMAIL_FROM: str = Field(
        "EarnTask <onboarding@resend.dev>",
        description=_Doc.EMAIL_FROM,
    )
    VAPID_PUBLIC_KEY: Optional[str] = Field(
        None,
        description=_Doc.VAPID_PUBLIC_KEY,
    )
    VAPID_PRIVATE_KEY: Optional[str] = Field(
        None,
        description=_Doc.VAPID_PRIVATE_KEY,
    )
    VAPID_CLAIMS_EMAIL: str = Field(
        "mailto:support@earntask.app",
        description=_Doc.VAPID_CLAIMS_EMAIL,
    )
    PUSH_DEFAULT_URL: str = Field("/wallet", description=_Doc.PUSH_DEFAULT_URL)
    NOTIFY_MAX_ATTEMPTS: int = Field(3, description=_Doc.NOTIFY_MAX_ATTEMPTS)
    NOTIFY_BACKOFF_BASE_SEC: float = Field(
        0.5,
        description=_Doc.NOTIFY_BACKOFF_BASE_SEC,
    )
    NOTIFY_BACKOFF_MAX_SEC: float = Field(
        8.0,
        description=_Doc.NOTIFY_BACKOFF_MAX_SEC,
    )
    NETWORK_REQUEST_TIMEOUT_SEC: float = Field(
        10.0,
        description=_Doc.NETWORK_REQUEST_TIMEOUT_SEC,
    )

    # -------------------------------- LOGGING --------------------------------
    LOG_LEVEL: str = Field("INFO", description=_Doc.LOG_LEVEL)
    LOG_JSON: Optional[bool] = Field(None, description=_Doc.LOG_JSON)

    # =========================== ВАЛИДАТОРЫ ==================================

    @field_validator("VIP_THRESHOLDS")
    @classmethod
    def _v_vip_thresholds(cls, value: str) -> str:
        """Шесть порогов, первый 0, строго по возрастанию."""
        items = _parse_decimals(value)
        if len(items) != VIP_LEVELS_COUNT:
            raise ValueError("VIP_THRESHOLDS: нужно ровно 6 значений (VIP 0..5)")
        if items[0] != 0:
            raise ValueError("VIP_THRESHOLDS: порог VIP 0 обязан быть 0")
        if any(b <= a for a, b in zip(items, items[1:])):
            raise ValueError("VIP_THRESHOLDS: пороги должны строго возрастать")
        return value

    @field_validator("VIP_DAILY_TASK_LIMITS")
    @classmethod
    def _v_daily_limits(cls, value: str) -> str:
        items = _parse_csv(value)
        if len(items) != VIP_LEVELS_COUNT:
            raise ValueError("VIP_DAILY_TASK_LIMITS: нужно ровно 6 значений")
        try:
            limits = [int(x) for x in items]
        except ValueError:
            raise ValueError("VIP_DAILY_TASK_LIMITS: только целые числа") from None
        if any(x <= 0 for x in limits):
            raise ValueError("VIP_DAILY_TASK_LIMITS: лимиты должны быть > 0")
        return value

    @field_validator("TASK_REWARD_RANGES")
    @classmethod
    def _v_reward_ranges(cls, value: str) -> str:
        if len(_parse_ranges(value)) != VIP_LEVELS_COUNT:
            raise ValueError("TASK_REWARD_RANGES: нужно ровно 6 диапазонов")
        return value

    @field_validator("TASK_REWARD_MODE")
    @classmethod
    def _v_reward_mode(cls, value: str) -> str:
        mode = (value or "").strip().lower()
        if mode not in {"static", "dynamic"}:
            raise ValueError("TASK_REWARD_MODE: допустимо static или dynamic")
        return mode

    @field_validator("REFERRAL_BONUS_USD", "WITHDRAW_MIN_USD")
    @classmethod
    def _v_positive_money(cls, value: Decimal) -> Decimal:
        if value <= 0:
            raise ValueError("денежная настройка должна быть > 0")
        return value

    @field_validator("ADMIN_EMAIL")
    @classmethod
    def _v_admin_email(cls, value: str) -> str:
        return value.strip().lower()

    # =========================== Удобные свойства/методы =====================

    # ---- ENV флаги ----
    @property
    def env_normalized(self) -> str:
        """Нормализует ENV к одному из: prod/dev/local."""
        value = (self.ENV or "").strip().lower()
        if value.startswith("prod"):
            return "prod"
        if value.startswith("dev"):
            return "dev"
        if value.startswith("loc") or value.startswith("test"):
            return "local"
        return "prod"

    @property
    def is_prod(self) -> bool:
        return self.env_normalized == "prod"

    @property
    def log_json_effective(self) -> bool:
        if self.LOG_JSON is not None:
            return bool(self.LOG_JSON)
        return self.is_prod

    # ---- Бизнес-таблицы ----
    @property
    def vip_thresholds(self) -> List[Decimal]:
        return _parse_decimals(self.VIP_THRESHOLDS)

    @property
    def vip_daily_task_limits(self) -> List[int]:
        return [int(x) for x in _parse_csv(self.VIP_DAILY_TASK_LIMITS)]

    @property
    def task_reward_ranges(self) -> List[Tuple[Decimal, Decimal]]:
        return _parse_ranges(self.TASK_REWARD_RANGES)

    # ---- База данных / DSN ----
    def database_url_async(self) -> str:
        """
        Возвращает DSN для SQLAlchemy async:
          postgres://   → postgresql+asyncpg://
          postgresql:// → postgresql+asyncpg:// при отсутствии драйвера.
          sqlite+aiosqlite:// - без изменений (тесты/локальный запуск).
        """
        if not self.DATABASE_URL:
            raise RuntimeError("DATABASE_URL не задан (нужен DSN Postgres).")
        url = self.DATABASE_URL
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql+asyncpg://", 1)
        elif url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url

    # ---- Decimal / точности ----
    def configure_decimal_context(self) -> None:
        """Глобальный Decimal: запас precision и ROUND_DOWN по умолчанию."""
        ctx = getcontext()
        ctx.prec = max(28, self.MONEY_DECIMALS + 16)
        ctx.rounding = ROUND_DOWN

    # ---- CORS ----
    def effective_cors_origins(self) -> List[str]:
        return _parse_csv(self.CORS_ORIGINS)

    # ---- Уведомления ----
    @property
    def email_enabled(self) -> bool:
        return bool(self.RESEND_API_KEY)

    @property
    def push_enabled(self) -> bool:
        return bool(self.VAPID_PRIVATE_KEY)

    def referral_link(self, code: str) -> str:
        return f"{self.APP_PUBLIC_URL.rstrip('/')}/auth?ref={code}"

    # ---- Health/диагностика ----
    def assert_required_secrets(self) -> None:
        """
        Мягкая самодиагностика критичных секретов.
        Печатает WARN, но не падает.
        """
        if not self.SECRET_KEY:
            print("[WARN] SECRET_KEY не задан - выдача сессий невозможна.")
        if not self.DATABASE_URL:
            print("[WARN] DATABASE_URL не задан - БД будет недоступна.")
        if not self.RESEND_API_KEY:
            print("[WARN] RESEND_API_KEY не задан - email-уведомления выключены.")

    def debug_dump(self) -> Dict[str, str]:
        """Безопасный дамп ключевых настроек (без секретов) для /health и логов."""
        return {
            "env": self.env_normalized,
            "projectName": self.PROJECT_NAME,
            "version": self.APP_VERSION,
            "apiPrefix": self.API_PREFIX,
            "dbUrlSet": "yes" if bool(self.DATABASE_URL) else "no",
            "taskRewardMode": self.TASK_REWARD_MODE,
            "emailEnabled": str(self.email_enabled),
            "pushEnabled": str(self.push_enabled),
        }

    # ---- Инициализация рантайма ----
    def initialize_runtime(self) -> None:
        """
        Единая точка инициализации конфигурации при старте приложения:
          • Приведение DSN БД к async-формату.
          • Настройка Decimal контекста (ROUND_DOWN).
          • Мягкая самодиагностика секретов.
        """
        if self.DATABASE_URL:
            _ = self.database_url_async()

        self.configure_decimal_context()
        self.assert_required_secrets()


# =============================================================================
# Синглтон настроек для всего приложения
# =============================================================================


@lru_cache()
def get_settings() -> Settings:
    """Создаёт и кэширует объект Settings, выполняя initialize_runtime()."""
    settings_obj = Settings()
    settings_obj.initialize_runtime()
    return settings_obj


# Удобный глобальный экспорт:
# from taskearn.core.config_core import settings
settings: Settings = get_settings()

__all__ = ["Settings", "get_settings", "settings", "VIP_LEVELS_COUNT"]
