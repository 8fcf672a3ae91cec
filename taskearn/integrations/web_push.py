# -*- coding: utf-8 -*-
# taskearn/integrations/web_push.py
# =============================================================================
# TaskEarn - доставка браузерных push-уведомлений (Web Push + VAPID)
# -----------------------------------------------------------------------------
# Назначение:
#   • Шифрует и отправляет payload на endpoint подписки через pywebpush.
#   • pywebpush синхронный, поэтому вызов уходит в asyncio.to_thread().
#
# Канон:
#   • 404/410 от push-сервиса означает, что подписка больше не существует:
#     бросается PushSubscriptionGone, диспетчер удаляет строку.
#   • Прочие сбои → WebPushError (повторяемые).
# =============================================================================
from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, Optional

from pywebpush import WebPushException, webpush

from taskearn.core.config_core import get_settings
from taskearn.core.logging_core import get_logger

logger = get_logger(__name__)
settings = get_settings()

GONE_STATUSES = frozenset({404, 410})


class WebPushError(RuntimeError):
    """Повторяемый сбой доставки push."""


class PushSubscriptionGone(WebPushError):
    """Push-сервис сообщил, что подписки больше нет (404/410)."""


class WebPushClient:
    def __init__(
        self,
        *,
        vapid_private_key: str,
        claims_subject: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self.vapid_private_key = vapid_private_key
        self.claims_subject = claims_subject or settings.VAPID_CLAIMS_EMAIL
        self.timeout_seconds = timeout_seconds or settings.NETWORK_REQUEST_TIMEOUT_SEC

    def _send_sync(self, subscription_info: Dict[str, Any], data: str) -> None:
        try:
            webpush(
                subscription_info=subscription_info,
                data=data,
                vapid_private_key=self.vapid_private_key,
                # pywebpush дописывает aud/exp в словарь claims: передаём новый.
                vapid_claims={"sub": self.claims_subject},
                timeout=self.timeout_seconds,
            )
        except WebPushException as exc:
            status = getattr(exc.response, "status_code", None)
            if status in GONE_STATUSES:
                raise PushSubscriptionGone(f"subscription gone: status={status}") from exc
            raise WebPushError(f"push rejected: status={status} {exc}") from exc

    async def send(self, subscription_info: Dict[str, Any], payload: Dict[str, Any]) -> None:
        """Отправить JSON-payload на одну подписку."""

        await asyncio.to_thread(self._send_sync, subscription_info, json.dumps(payload))


__all__ = ["GONE_STATUSES", "PushSubscriptionGone", "WebPushClient", "WebPushError"]
