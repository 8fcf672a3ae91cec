# -*- coding: utf-8 -*-
# taskearn/integrations/resend_api.py
# =============================================================================
# TaskEarn - клиент HTTP API Resend (отправка писем)
# -----------------------------------------------------------------------------
# Назначение:
#   • Отправляет одно HTML-письмо через POST {RESEND_API_URL}.
#   • Не знает о событиях и шаблонах: их собирает notifications_service.
#
# Надёжность:
#   • Таймауты httpx защищают от зависания запросов.
#   • Любой сбой (сеть, не-2xx) превращается в ResendError; повторы и
#     backoff делает вызывающий диспетчер.
#
# Запреты:
#   • Модуль не обращается к БД и не меняет балансы.
# =============================================================================
from __future__ import annotations

from typing import Any, Optional

import httpx

from taskearn.core.config_core import get_settings
from taskearn.core.logging_core import get_logger

logger = get_logger(__name__)
settings = get_settings()


class ResendError(RuntimeError):
    """Письмо не принято API (сеть, авторизация, валидация)."""


class ResendClient:
    """Лёгкий клиент Resend. transport подменяется в тестах (httpx.MockTransport)."""

    def __init__(
        self,
        *,
        api_key: str,
        api_url: Optional[str] = None,
        sender: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url or settings.RESEND_API_URL
        self.sender = sender or settings.EMAIL_FROM
        self.timeout_seconds = timeout_seconds or settings.NETWORK_REQUEST_TIMEOUT_SEC
        self.transport = transport

    async def send_email(self, *, to: str, subject: str, html: str) -> str:
        """Отправить письмо; вернуть id, выданный Resend."""

        body: dict[str, Any] = {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
                response = await client.post(self.api_url, json=body, headers=headers)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise ResendError(
                f"Resend rejected email: status={exc.response.status_code} body={exc.response.text[:256]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ResendError(f"Resend request failed: {exc}") from exc

        message_id = str((payload or {}).get("id") or "")
        logger.debug("[Resend] email accepted", extra={"message_id": message_id})
        return message_id


__all__ = ["ResendClient", "ResendError"]
