"""Notification rendering, dispatch with retry/backoff, Resend client, push subscriptions."""

import json
from decimal import Decimal
from unittest.mock import AsyncMock

import httpx
import pytest
from pywebpush import WebPushException

from taskearn.core.errors_core import ValidationError
from taskearn.crud.notifications_crud import PushSubscriptionsCRUD
from taskearn.integrations.resend_api import ResendClient, ResendError
from taskearn.integrations.web_push import PushSubscriptionGone, WebPushClient, WebPushError
from taskearn.services.notifications_service import (
    EVENT_DEPOSIT_APPROVED,
    EVENT_WITHDRAWAL_REJECTED,
    NotificationDispatcher,
    backoff_delay,
    build_push_payload,
    delete_push_subscription,
    render_email,
    save_push_subscription,
)

ENDPOINT = "https://push.example.com/sub/1"


class FakeSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def make_dispatcher(session_factory, *, email_client=None, push_client=None, sleep=None):
    return NotificationDispatcher(
        session_factory=session_factory,
        email_client=email_client,
        push_client=push_client,
        max_attempts=3,
        backoff_base=0.5,
        backoff_cap=8.0,
        sleep=sleep or FakeSleep(),
    )


async def subscribe(db, user_id, endpoint=ENDPOINT):
    return await save_push_subscription(db, user_id=user_id, endpoint=endpoint, p256dh="p256", auth="auth")


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------
def test_render_email_formats_amount_and_name():
    subject, body = render_email(EVENT_DEPOSIT_APPROVED, Decimal("50"), "alice")
    assert subject == "Your deposit has been approved! 💰"
    assert "$50.00" in body
    assert "Hi alice," in body
    assert "View Your Wallet" in body


def test_render_email_without_username():
    _, body = render_email(EVENT_WITHDRAWAL_REJECTED, "20", None)
    assert "Hi there," in body
    assert "Withdrawal Rejected" in body


def test_render_email_unknown_event():
    with pytest.raises(ValueError):
        render_email("lottery_won", 1)


def test_push_payload():
    payload = build_push_payload(EVENT_DEPOSIT_APPROVED, "12.5")
    assert payload["title"] == "Deposit Approved 💰"
    assert payload["body"] == "Your deposit of $12.50 has been added to your wallet."
    assert payload["url"] == "/wallet"
    assert payload["requireInteraction"] is True


def test_backoff_grows_and_caps():
    assert [backoff_delay(n, base=0.5, cap=3.0) for n in (1, 2, 3, 4, 5)] == [0.5, 1.0, 2.0, 3.0, 3.0]


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------
async def test_dispatch_sends_email_and_push(db, session_factory, user):
    uid = user.context.user_id
    await subscribe(db, uid)
    email = AsyncMock()
    push = AsyncMock()
    dispatcher = make_dispatcher(session_factory, email_client=email, push_client=push)

    await dispatcher.notify(uid, EVENT_DEPOSIT_APPROVED, Decimal("50"))

    email.send_email.assert_awaited_once()
    kwargs = email.send_email.await_args.kwargs
    assert kwargs["to"] == "alice@example.com"
    assert kwargs["subject"] == "Your deposit has been approved! 💰"
    push.send.assert_awaited_once()
    info, payload = push.send.await_args.args
    assert info == {"endpoint": ENDPOINT, "keys": {"p256dh": "p256", "auth": "auth"}}
    assert payload["body"].startswith("Your deposit of $50.00")


async def test_email_retries_with_backoff(db, session_factory, user):
    email = AsyncMock()
    email.send_email.side_effect = [ResendError("503"), ResendError("503"), "msg-1"]
    sleep = FakeSleep()
    dispatcher = make_dispatcher(session_factory, email_client=email, sleep=sleep)

    await dispatcher.notify(user.context.user_id, EVENT_DEPOSIT_APPROVED, "5")

    assert email.send_email.await_count == 3
    assert sleep.delays == [0.5, 1.0]


async def test_final_failure_is_logged_not_raised(db, session_factory, user, caplog):
    email = AsyncMock()
    email.send_email.side_effect = ResendError("down")
    sleep = FakeSleep()
    dispatcher = make_dispatcher(session_factory, email_client=email, sleep=sleep)

    await dispatcher.notify(user.context.user_id, EVENT_DEPOSIT_APPROVED, "5")

    assert email.send_email.await_count == 3
    assert sleep.delays == [0.5, 1.0]
    assert any("after 3 attempts" in rec.getMessage() for rec in caplog.records)


async def test_gone_subscription_is_pruned(db, session_factory, user):
    uid = user.context.user_id
    await subscribe(db, uid)
    await subscribe(db, uid, endpoint="https://push.example.com/sub/2")
    push = AsyncMock()
    push.send.side_effect = [PushSubscriptionGone("410"), None]
    dispatcher = make_dispatcher(session_factory, push_client=push)

    await dispatcher.notify(uid, EVENT_WITHDRAWAL_REJECTED, "20")

    assert push.send.await_count == 2
    remaining = await PushSubscriptionsCRUD(db).list_for_user(uid)
    assert [row.endpoint for row in remaining] == ["https://push.example.com/sub/2"]


async def test_push_failure_does_not_stop_email(db, session_factory, user):
    uid = user.context.user_id
    await subscribe(db, uid)
    push = AsyncMock()
    push.send.side_effect = WebPushError("500")
    email = AsyncMock()
    dispatcher = make_dispatcher(session_factory, email_client=email, push_client=push)

    await dispatcher.notify(uid, EVENT_DEPOSIT_APPROVED, "1")

    assert push.send.await_count == 3
    email.send_email.assert_awaited_once()


async def test_missing_profile_is_skipped(session_factory):
    email = AsyncMock()
    dispatcher = make_dispatcher(session_factory, email_client=email)
    await dispatcher.notify("ghost", EVENT_DEPOSIT_APPROVED, "1")
    email.send_email.assert_not_awaited()


async def test_schedule_and_drain(db, session_factory, user):
    email = AsyncMock()
    dispatcher = make_dispatcher(session_factory, email_client=email)

    dispatcher.schedule(user.context.user_id, EVENT_DEPOSIT_APPROVED, "3")
    assert dispatcher.pending == 1
    await dispatcher.drain()

    assert dispatcher.pending == 0
    email.send_email.assert_awaited_once()


# ---------------------------------------------------------------------------
# Resend client
# ---------------------------------------------------------------------------
async def test_resend_client_posts_message():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "email-123"})

    client = ResendClient(api_key="re_test", transport=httpx.MockTransport(handler))
    message_id = await client.send_email(to="a@example.com", subject="Hi", html="<p>x</p>")

    assert message_id == "email-123"
    assert seen["auth"] == "Bearer re_test"
    assert seen["body"] == {
        "from": "EarnTask <onboarding@resend.dev>",
        "to": ["a@example.com"],
        "subject": "Hi",
        "html": "<p>x</p>",
    }


async def test_resend_client_raises_on_rejection():
    transport = httpx.MockTransport(lambda request: httpx.Response(422, json={"message": "bad"}))
    client = ResendClient(api_key="re_test", transport=transport)
    with pytest.raises(ResendError):
        await client.send_email(to="a@example.com", subject="Hi", html="x")


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------
async def test_subscription_requires_https(db, user):
    with pytest.raises(ValidationError):
        await subscribe(db, user.context.user_id, endpoint="http://insecure.example.com")


async def test_subscription_upsert_moves_owner(db, user):
    from tests.conftest import make_user

    other = await make_user(db, email="zed@example.com", username="zed")
    await subscribe(db, user.context.user_id)
    await subscribe(db, other.context.user_id)

    crud = PushSubscriptionsCRUD(db)
    assert await crud.list_for_user(user.context.user_id) == []
    assert len(await crud.list_for_user(other.context.user_id)) == 1

    assert await delete_push_subscription(db, user_id=user.context.user_id, endpoint=ENDPOINT) == 0
    assert await delete_push_subscription(db, user_id=other.context.user_id, endpoint=ENDPOINT) == 1


# ---------------------------------------------------------------------------
# Web Push client
# ---------------------------------------------------------------------------
SUBSCRIPTION = {"endpoint": ENDPOINT, "keys": {"p256dh": "p256", "auth": "auth"}}


def failing_webpush(status_code):
    def fake_webpush(**kwargs):
        raise WebPushException("push service said no", response=httpx.Response(status_code))

    return fake_webpush


@pytest.mark.parametrize("status_code", [404, 410])
async def test_web_push_gone_statuses(monkeypatch, status_code):
    monkeypatch.setattr("taskearn.integrations.web_push.webpush", failing_webpush(status_code))
    client = WebPushClient(vapid_private_key="vapid-key", claims_subject="mailto:ops@example.com")

    with pytest.raises(PushSubscriptionGone):
        await client.send(SUBSCRIPTION, {"title": "Hi"})


async def test_web_push_other_failures_are_retryable(monkeypatch):
    monkeypatch.setattr("taskearn.integrations.web_push.webpush", failing_webpush(500))
    client = WebPushClient(vapid_private_key="vapid-key", claims_subject="mailto:ops@example.com")

    with pytest.raises(WebPushError) as exc_info:
        await client.send(SUBSCRIPTION, {"title": "Hi"})
    assert not isinstance(exc_info.value, PushSubscriptionGone)
    assert "status=500" in str(exc_info.value)


async def test_web_push_passes_vapid_settings(monkeypatch):
    calls = []
    monkeypatch.setattr("taskearn.integrations.web_push.webpush", lambda **kwargs: calls.append(kwargs))
    client = WebPushClient(
        vapid_private_key="vapid-key", claims_subject="mailto:ops@example.com", timeout_seconds=3.0
    )

    await client.send(SUBSCRIPTION, {"title": "Hi"})

    assert len(calls) == 1
    assert calls[0]["subscription_info"] == SUBSCRIPTION
    assert json.loads(calls[0]["data"]) == {"title": "Hi"}
    assert calls[0]["vapid_private_key"] == "vapid-key"
    assert calls[0]["vapid_claims"] == {"sub": "mailto:ops@example.com"}
    assert calls[0]["timeout"] == 3.0
