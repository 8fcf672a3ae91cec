# -*- coding: utf-8 -*-
# taskearn/services/notifications_service.py
# =============================================================================
# TaskEarn - диспетчер уведомлений о решениях по заявкам
# -----------------------------------------------------------------------------
# Что умеет:
#   • NotificationDispatcher.notify(user_id, event_type, amount) - отправляет
#     push во все браузеры пользователя и письмо на email профиля.
#   • schedule(...) - запускает notify фоновой asyncio-задачей ПОСЛЕ commit;
#     drain() дожидается хвоста задач при остановке приложения.
#   • Управление push-подписками: save/delete, публичный VAPID-ключ.
#
# Канон:
#   • notify() никогда не бросает исключений: решение администратора уже
#     зафиксировано, уведомление лишь сопровождает его.
#   • У каждого канала свой повтор с экспоненциальной задержкой
#     (NOTIFY_MAX_ATTEMPTS, NOTIFY_BACKOFF_BASE_SEC, NOTIFY_BACKOFF_MAX_SEC).
#     Последняя неудача пишется в лог ERROR.
#   • Канал без настроек (нет RESEND_API_KEY / VAPID_PRIVATE_KEY) пропускается
#     с записью INFO.
#   • Своя сессия БД: запрос администратора к этому моменту уже закрыт.
# =============================================================================

from __future__ import annotations

import asyncio
import html
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskearn.core.config_core import get_settings
from taskearn.core.database_core import get_session_factory
from taskearn.core.errors_core import ValidationError
from taskearn.core.logging_core import get_logger
from taskearn.core.utils_core import NumberLike, format_usd
from taskearn.crud.notifications_crud import PushSubscriptionsCRUD
from taskearn.crud.user_crud import ProfileCRUD
from taskearn.integrations.resend_api import ResendClient
from taskearn.integrations.web_push import PushSubscriptionGone, WebPushClient
from taskearn.models import PushSubscription

logger = get_logger(__name__)
settings = get_settings()

EVENT_DEPOSIT_APPROVED = "deposit_approved"
EVENT_DEPOSIT_REJECTED = "deposit_rejected"
EVENT_WITHDRAWAL_APPROVED = "withdrawal_approved"
EVENT_WITHDRAWAL_REJECTED = "withdrawal_rejected"

COLOR_SUCCESS = "#22c55e"
COLOR_FAILURE = "#ef4444"


# -----------------------------------------------------------------------------
# Шаблоны
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    heading: str
    message: str  # {amount} подставляется как $x.xx
    color: str


@dataclass(frozen=True)
class PushTemplate:
    title: str
    body: str


EMAIL_TEMPLATES: Dict[str, EmailTemplate] = {
    EVENT_DEPOSIT_APPROVED: EmailTemplate(
        subject="Your deposit has been approved! 💰",
        heading="Deposit Approved",
        message="Great news! Your deposit of {amount} has been approved and added to your wallet balance.",
        color=COLOR_SUCCESS,
    ),
    EVENT_DEPOSIT_REJECTED: EmailTemplate(
        subject="Deposit request update",
        heading="Deposit Rejected",
        message=(
            "We're sorry, but your deposit request of {amount} was not approved. "
            "Please contact support if you have questions."
        ),
        color=COLOR_FAILURE,
    ),
    EVENT_WITHDRAWAL_APPROVED: EmailTemplate(
        subject="Your withdrawal is on the way! 🎉",
        heading="Withdrawal Approved",
        message=(
            "Your withdrawal request of {amount} has been approved and is being processed. "
            "You should receive your funds shortly."
        ),
        color=COLOR_SUCCESS,
    ),
    EVENT_WITHDRAWAL_REJECTED: EmailTemplate(
        subject="Withdrawal request update",
        heading="Withdrawal Rejected",
        message=(
            "We're sorry, but your withdrawal request of {amount} was not approved. "
            "Please contact support if you have questions."
        ),
        color=COLOR_FAILURE,
    ),
}

PUSH_TEMPLATES: Dict[str, PushTemplate] = {
    EVENT_DEPOSIT_APPROVED: PushTemplate("Deposit Approved 💰", "Your deposit of {amount} has been added to your wallet."),
    EVENT_DEPOSIT_REJECTED: PushTemplate("Deposit Rejected", "Your deposit request of {amount} was not approved."),
    EVENT_WITHDRAWAL_APPROVED: PushTemplate("Withdrawal Approved 🎉", "Your withdrawal of {amount} is being processed."),
    EVENT_WITHDRAWAL_REJECTED: PushTemplate("Withdrawal Rejected", "Your withdrawal request of {amount} was not approved."),
}

EVENT_TYPES = tuple(EMAIL_TEMPLATES)

_EMAIL_LAYOUT = """<!DOCTYPE html>
<html>
<body style="margin:0;padding:0;background:#f4f4f5;font-family:Arial,Helvetica,sans-serif;">
  <div style="max-width:600px;margin:0 auto;padding:24px;">
    <div style="background:#7c3aed;color:#ffffff;padding:24px;border-radius:12px 12px 0 0;text-align:center;">
      <h1 style="margin:0;font-size:24px;">EarnTask</h1>
    </div>
    <div style="background:#ffffff;padding:32px;border-radius:0 0 12px 12px;">
      <p style="font-size:16px;color:#18181b;">Hi {username},</p>
      <div style="border-left:4px solid {color};background:#fafafa;padding:16px;margin:16px 0;">
        <h2 style="margin:0 0 8px 0;color:{color};font-size:20px;">{heading}</h2>
        <p style="margin:0;font-size:28px;font-weight:bold;color:#18181b;">{amount}</p>
      </div>
      <p style="font-size:15px;color:#3f3f46;line-height:1.5;">{message}</p>
      <div style="text-align:center;margin-top:24px;">
        <a href="{wallet_url}" style="background:#7c3aed;color:#ffffff;padding:12px 24px;border-radius:8px;text-decoration:none;display:inline-block;">View Your Wallet</a>
      </div>
    </div>
    <p style="text-align:center;font-size:12px;color:#a1a1aa;margin-top:16px;">
      You received this email because you have an account on EarnTask.
    </p>
  </div>
</body>
</html>
"""


def _template(event_type: str) -> EmailTemplate:
    try:
        return EMAIL_TEMPLATES[event_type]
    except KeyError:
        raise ValueError(f"unknown notification event: {event_type}") from None


def render_email(event_type: str, amount: NumberLike, username: Optional[str] = None) -> tuple[str, str]:
    """(subject, html) письма для события; сумма в формате $x.xx."""
    tpl = _template(event_type)
    amount_text = format_usd(amount)
    body = _EMAIL_LAYOUT.format(
        username=html.escape(username or "there"),
        color=tpl.color,
        heading=tpl.heading,
        amount=amount_text,
        message=html.escape(tpl.message.format(amount=amount_text)),
        wallet_url=f"{settings.APP_PUBLIC_URL.rstrip('/')}/wallet",
    )
    return tpl.subject, body


def build_push_payload(event_type: str, amount: NumberLike) -> Dict[str, Any]:
    _template(event_type)
    tpl = PUSH_TEMPLATES[event_type]
    return {
        "title": tpl.title,
        "body": tpl.body.format(amount=format_usd(amount)),
        "url": settings.PUSH_DEFAULT_URL,
        "icon": "/favicon.ico",
        "requireInteraction": True,
    }


def backoff_delay(attempt: int, *, base: float, cap: float) -> float:
    """Задержка перед попыткой attempt+1: base * 2^(attempt-1), не больше cap."""
    return min(cap, base * (2 ** max(attempt - 1, 0)))


# -----------------------------------------------------------------------------
# Диспетчер
# -----------------------------------------------------------------------------
@dataclass
class _Recipient:
    email: Optional[str]
    username: Optional[str]
    subscriptions: List[Dict[str, Any]]


class NotificationDispatcher:
    """
    Best-effort рассылка push + email.

    Зависимости внедряются конструктором (тесты подменяют клиентов и sleep).
    Без явных клиентов они строятся из настроек; канал без ключей выключен.
    """

    def __init__(
        self,
        *,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        email_client: Optional[ResendClient] = None,
        push_client: Optional[WebPushClient] = None,
        max_attempts: Optional[int] = None,
        backoff_base: Optional[float] = None,
        backoff_cap: Optional[float] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._session_factory = session_factory
        self.email_client = email_client
        if self.email_client is None and settings.email_enabled:
            self.email_client = ResendClient(api_key=str(settings.RESEND_API_KEY))
        self.push_client = push_client
        if self.push_client is None and settings.push_enabled:
            self.push_client = WebPushClient(vapid_private_key=str(settings.VAPID_PRIVATE_KEY))
        self.max_attempts = max(1, int(max_attempts or settings.NOTIFY_MAX_ATTEMPTS))
        self.backoff_base = float(settings.NOTIFY_BACKOFF_BASE_SEC if backoff_base is None else backoff_base)
        self.backoff_cap = float(settings.NOTIFY_BACKOFF_MAX_SEC if backoff_cap is None else backoff_cap)
        self._sleep = sleep
        self._tasks: Set[asyncio.Task[None]] = set()

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory or get_session_factory()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    # ------------------------------ публичное API ------------------------------
    def schedule(self, user_id: str, event_type: str, amount: NumberLike) -> asyncio.Task[None]:
        """Запустить notify() в фоне. Вызывать только после успешного commit."""
        task = asyncio.create_task(self.notify(user_id, event_type, amount), name=f"notify:{event_type}:{user_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Дождаться всех запущенных уведомлений (shutdown)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def notify(self, user_id: str, event_type: str, amount: NumberLike) -> None:
        try:
            await self._notify(user_id, event_type, Decimal(str(amount)))
        except Exception:  # noqa: BLE001
            logger.exception("notification failed: user=%s event=%s", user_id, event_type)

    # ------------------------------- внутреннее --------------------------------
    async def _notify(self, user_id: str, event_type: str, amount: Decimal) -> None:
        _template(event_type)
        recipient = await self._load_recipient(user_id)
        if recipient is None:
            logger.warning("notification skipped: profile missing user=%s event=%s", user_id, event_type)
            return

        await asyncio.gather(
            self._deliver_push(user_id, event_type, amount, recipient),
            self._deliver_email(user_id, event_type, amount, recipient),
        )

    async def _load_recipient(self, user_id: str) -> Optional[_Recipient]:
        async with self.session_factory() as db:
            profile = await ProfileCRUD(db).get_by_user_id(user_id)
            if profile is None:
                return None
            subs = await PushSubscriptionsCRUD(db).list_for_user(user_id)
            return _Recipient(
                email=profile.email,
                username=profile.username,
                subscriptions=[s.subscription_info() for s in subs],
            )

    async def _retry(self, channel: str, op: Callable[[], Awaitable[Any]], **ctx: Any) -> bool:
        """Повтор с экспоненциальной задержкой. True - доставлено."""
        for attempt in range(1, self.max_attempts + 1):
            try:
                await op()
                return True
            except PushSubscriptionGone:
                raise
            except Exception as exc:  # noqa: BLE001
                if attempt >= self.max_attempts:
                    logger.error(
                        "%s delivery failed after %s attempts: %s %s", channel, attempt, exc, ctx
                    )
                    return False
                delay = backoff_delay(attempt, base=self.backoff_base, cap=self.backoff_cap)
                logger.warning(
                    "%s delivery attempt %s failed, retry in %.2fs: %s", channel, attempt, delay, exc
                )
                await self._sleep(delay)
        return False

    async def _deliver_email(self, user_id: str, event_type: str, amount: Decimal, recipient: _Recipient) -> None:
        if self.email_client is None:
            logger.info("email channel not configured, skipping: user=%s event=%s", user_id, event_type)
            return
        if not recipient.email:
            logger.warning("email skipped: no recipient address user=%s event=%s", user_id, event_type)
            return

        subject, body = render_email(event_type, amount, recipient.username)
        client = self.email_client
        ok = await self._retry(
            "email",
            lambda: client.send_email(to=str(recipient.email), subject=subject, html=body),
            user=user_id,
            event=event_type,
        )
        if ok:
            logger.info("email sent: user=%s event=%s", user_id, event_type)

    async def _deliver_push(self, user_id: str, event_type: str, amount: Decimal, recipient: _Recipient) -> None:
        if self.push_client is None:
            logger.info("push channel not configured, skipping: user=%s event=%s", user_id, event_type)
            return
        if not recipient.subscriptions:
            logger.info("push skipped: no subscriptions user=%s", user_id)
            return

        payload = build_push_payload(event_type, amount)
        client = self.push_client
        sent = 0
        for info in recipient.subscriptions:
            try:
                ok = await self._retry(
                    "push",
                    lambda info=info: client.send(info, payload),
                    user=user_id,
                    event=event_type,
                )
            except PushSubscriptionGone:
                await self._prune(info["endpoint"])
                continue
            sent += int(ok)
        logger.info("push sent: user=%s event=%s delivered=%s/%s", user_id, event_type, sent, len(recipient.subscriptions))

    async def _prune(self, endpoint: str) -> None:
        async with self.session_factory() as db:
            removed = await PushSubscriptionsCRUD(db).delete_by_endpoint(endpoint)
            await db.commit()
        logger.info("push subscription pruned: endpoint=%s removed=%s", endpoint[:64], removed)


_dispatcher: Optional[NotificationDispatcher] = None


def get_dispatcher() -> NotificationDispatcher:
    """Общий диспетчер процесса (FastAPI-зависимость)."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher()
    return _dispatcher


def set_dispatcher(dispatcher: Optional[NotificationDispatcher]) -> None:
    global _dispatcher
    _dispatcher = dispatcher


# -----------------------------------------------------------------------------
# Push-подписки
# -----------------------------------------------------------------------------
async def save_push_subscription(
    db: AsyncSession,
    *,
    user_id: str,
    endpoint: str,
    p256dh: str,
    auth: str,
) -> PushSubscription:
    endpoint = (endpoint or "").strip()
    if not endpoint.startswith("https://"):
        raise ValidationError("Push endpoint must be an https URL.", details={"field": "endpoint"})
    row = await PushSubscriptionsCRUD(db).upsert(user_id=user_id, endpoint=endpoint, p256dh=p256dh, auth=auth)
    await db.commit()
    logger.info("push subscription saved: user=%s", user_id)
    return row


async def delete_push_subscription(db: AsyncSession, *, user_id: str, endpoint: str) -> int:
    removed = await PushSubscriptionsCRUD(db).delete_by_endpoint(endpoint, user_id=user_id)
    await db.commit()
    return removed


def vapid_public_key() -> Dict[str, Any]:
    return {"public_key": settings.VAPID_PUBLIC_KEY, "enabled": bool(settings.VAPID_PUBLIC_KEY and settings.push_enabled)}


__all__ = [
    "EVENT_DEPOSIT_APPROVED",
    "EVENT_DEPOSIT_REJECTED",
    "EVENT_WITHDRAWAL_APPROVED",
    "EVENT_WITHDRAWAL_REJECTED",
    "EVENT_TYPES",
    "EMAIL_TEMPLATES",
    "PUSH_TEMPLATES",
    "EmailTemplate",
    "PushTemplate",
    "render_email",
    "build_push_payload",
    "backoff_delay",
    "NotificationDispatcher",
    "get_dispatcher",
    "set_dispatcher",
    "save_push_subscription",
    "delete_push_subscription",
    "vapid_public_key",
]

# =============================================================================
# Пояснения «для чайника»:
#   • Почему уведомление после commit? Если отправить письмо до commit, а
#     транзакция откатится, пользователь получит «деньги зачислены» без денег.
#   • Почему своя сессия? Фоновая задача живёт дольше HTTP-запроса, сессия
#     запроса к этому времени уже закрыта.
# =============================================================================
