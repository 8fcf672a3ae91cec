"""HTTP layer: auth gating, user flows and admin flows end to end."""

from decimal import Decimal

from taskearn.core.database_core import dispose_engine
from taskearn.services.notifications_service import EVENT_DEPOSIT_APPROVED, EVENT_WITHDRAWAL_REJECTED

from tests.conftest import bearer, get_profile, make_admin, make_task, set_profile

API = "/api"
BANK = {"account_number": "1234567890"}


async def sign_up(client, email="alice@example.com", username="alice", referral_code=None):
    body = {"email": email, "password": "secret123", "username": username}
    if referral_code:
        body["referral_code"] = referral_code
    response = await client.post(f"{API}/auth/sign-up", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["models"]["ok"] is True
    assert "tasks_routes" in body["routes"]
    await dispose_engine()


async def test_protected_routes_require_session(client):
    for path in ("/users/me", "/tasks", "/wallet/transactions", "/referrals", "/admin/stats"):
        response = await client.get(API + path)
        assert response.status_code == 401, path
        assert response.json()["error"] == "not_authenticated"


async def test_sign_up_session_and_sign_out(client):
    body = await sign_up(client)
    token = body["access_token"]
    assert body["is_admin"] is False
    assert body["profile"]["wallet_balance"] == "0.00"

    response = await client.get(f"{API}/auth/session", headers=auth(token))
    assert response.status_code == 200
    assert response.json()["email"] == "alice@example.com"

    response = await client.post(f"{API}/auth/sign-out", headers=auth(token))
    assert response.status_code == 204
    response = await client.get(f"{API}/users/me", headers=auth(token))
    assert response.status_code == 401


async def test_duplicate_sign_up_and_bad_sign_in(client):
    await sign_up(client)
    response = await client.post(
        f"{API}/auth/sign-up", json={"email": "alice@example.com", "password": "secret123", "username": "x"}
    )
    assert response.status_code == 409
    response = await client.post(f"{API}/auth/sign-in", json={"email": "alice@example.com", "password": "nope"})
    assert response.status_code == 401


async def test_task_flow(client, db):
    token = (await sign_up(client))["access_token"]
    task_id = await make_task(db, reward="0.10")

    tasks = (await client.get(f"{API}/tasks", headers=auth(token))).json()
    assert [t["id"] for t in tasks] == [task_id]
    assert tasks[0]["reward_amount"] == "0.10"

    response = await client.post(f"{API}/tasks/{task_id}/complete", headers=auth(token))
    assert response.status_code == 200, response.text
    assert response.json()["wallet_balance"] == "0.10"

    response = await client.post(f"{API}/tasks/{task_id}/complete", headers=auth(token))
    assert response.status_code == 409
    assert response.json()["error"] == "already_completed_today"

    today = (await client.get(f"{API}/tasks/today", headers=auth(token))).json()
    assert today["completed_task_ids"] == [task_id]
    assert today["remaining"] == 4


async def test_wallet_flow_and_admin_settlement(client, db, notifier):
    user = await sign_up(client)
    user_token, user_id = user["access_token"], user["user_id"]
    admin = await make_admin(db)

    response = await client.post(
        f"{API}/wallet/deposits",
        headers=auth(user_token),
        json={"amount": "50", "payment_method": "bank", "payment_details": BANK},
    )
    assert response.status_code == 201, response.text
    deposit_id = response.json()["id"]
    assert response.json()["status"] == "pending"

    # Regular users cannot settle.
    response = await client.post(
        f"{API}/admin/transactions/{deposit_id}/settle", headers=auth(user_token), json={"decision": "approve"}
    )
    assert response.status_code == 403

    response = await client.post(
        f"{API}/admin/transactions/{deposit_id}/settle", headers=bearer(admin), json={"decision": "approve"}
    )
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "completed"

    response = await client.post(
        f"{API}/admin/transactions/{deposit_id}/settle", headers=bearer(admin), json={"decision": "reject"}
    )
    assert response.status_code == 409
    assert response.json()["error"] == "already_settled"

    profile = await get_profile(db, user_id)
    assert profile.wallet_balance == Decimal("50.00")
    assert profile.vip_level == 2

    response = await client.post(
        f"{API}/wallet/withdrawals",
        headers=auth(user_token),
        json={"amount": "20", "payment_method": "bank", "payment_details": BANK},
    )
    assert response.status_code == 201, response.text
    withdrawal_id = response.json()["id"]

    report = await client.post(
        f"{API}/admin/transactions/bulk-settle",
        headers=bearer(admin),
        json={"transaction_ids": [withdrawal_id, deposit_id], "decision": "reject"},
    )
    assert report.status_code == 200, report.text
    assert report.json()["succeeded"] == 1
    assert report.json()["failed"] == 1

    assert (await get_profile(db, user_id)).wallet_balance == Decimal("50.00")
    assert notifier.events() == [EVENT_DEPOSIT_APPROVED, EVENT_WITHDRAWAL_REJECTED]

    history = (await client.get(f"{API}/wallet/transactions", headers=auth(user_token))).json()
    assert {tx["status"] for tx in history} == {"completed", "rejected"}


async def test_withdrawal_over_balance_is_422(client, db):
    user = await sign_up(client)
    await set_profile(db, user["user_id"], wallet_balance=Decimal("6"))
    response = await client.post(
        f"{API}/wallet/withdrawals",
        headers=auth(user["access_token"]),
        json={"amount": "7", "payment_method": "bank", "payment_details": BANK},
    )
    assert response.status_code == 422
    assert response.json()["error"] == "insufficient_balance"


async def test_referral_sign_up_over_http(client, db):
    referrer = await sign_up(client)
    code = referrer["profile"]["referral_code"]
    await sign_up(client, email="bob@example.com", username="bob", referral_code=code)

    overview = (await client.get(f"{API}/referrals", headers=auth(referrer["access_token"]))).json()
    assert overview["total_referrals"] == 1
    assert overview["referral_earnings"] == "1.00"
    assert overview["referrals"][0]["username"] == "bob"


async def test_profile_and_vip_routes(client):
    token = (await sign_up(client))["access_token"]

    response = await client.patch(f"{API}/users/me", headers=auth(token), json={"phone": "+1555"})
    assert response.status_code == 200
    assert response.json()["phone"] == "+1555"

    vip = (await client.get(f"{API}/users/me/vip", headers=auth(token))).json()
    assert vip["current"]["name"] == "Standard"
    assert vip["next"]["requirement"] == "20.00"

    tiers = (await client.get(f"{API}/vip/tiers")).json()
    assert [t["daily_tasks"] for t in tiers] == [5, 10, 15, 20, 25, 30]


async def test_admin_task_management(client, db):
    admin = await make_admin(db)
    headers = bearer(admin)

    response = await client.post(
        f"{API}/admin/tasks", headers=headers, json={"title": "Watch video", "url": "https://x.test/v", "reward_amount": "0.20"}
    )
    assert response.status_code == 201, response.text
    task_id = response.json()["id"]

    response = await client.patch(f"{API}/admin/tasks/{task_id}", headers=headers, json={"title": "Watch clip"})
    assert response.json()["title"] == "Watch clip"

    response = await client.post(f"{API}/admin/tasks/{task_id}/toggle", headers=headers)
    assert response.json()["is_active"] is False

    stats = (await client.get(f"{API}/admin/stats", headers=headers)).json()
    assert stats["active_tasks"] == 0
    assert stats["total_users"] == 1

    response = await client.delete(f"{API}/admin/tasks/{task_id}", headers=headers)
    assert response.status_code == 204
    response = await client.delete(f"{API}/admin/tasks/{task_id}", headers=headers)
    assert response.status_code == 404


async def test_admin_task_patch_clears_optional_fields(client, db):
    headers = bearer(await make_admin(db))
    response = await client.post(
        f"{API}/admin/tasks",
        headers=headers,
        json={
            "title": "Join channel",
            "url": "https://x.test/c",
            "description": "Old text",
            "category": "social",
            "image_url": "https://x.test/i.png",
        },
    )
    task_id = response.json()["id"]

    response = await client.patch(
        f"{API}/admin/tasks/{task_id}",
        headers=headers,
        json={"description": None, "category": None, "image_url": None, "title": None},
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["description"] is None
    assert body["category"] is None
    assert body["image_url"] is None
    assert body["title"] == "Join channel"


async def test_admin_roles_over_http(client, db):
    admin = await make_admin(db)
    user = await sign_up(client)

    response = await client.post(f"{API}/admin/users/{user['user_id']}/admin-role", headers=bearer(admin))
    assert response.json() == {"user_id": user["user_id"], "is_admin": True}

    users = (await client.get(f"{API}/admin/users", headers=bearer(admin))).json()
    assert all(u["is_admin"] for u in users)

    response = await client.delete(f"{API}/admin/users/{admin.context.user_id}/admin-role", headers=bearer(admin))
    assert response.status_code == 422


async def test_push_subscription_routes(client):
    token = (await sign_up(client))["access_token"]
    body = {"endpoint": "https://push.example.com/abc", "keys": {"p256dh": "k", "auth": "a"}}

    response = await client.post(f"{API}/notifications/push-subscriptions", headers=auth(token), json=body)
    assert response.status_code == 201
    listed = (await client.get(f"{API}/notifications/push-subscriptions", headers=auth(token))).json()
    assert [row["endpoint"] for row in listed] == ["https://push.example.com/abc"]

    response = await client.request(
        "DELETE",
        f"{API}/notifications/push-subscriptions",
        headers=auth(token),
        json={"endpoint": "https://push.example.com/abc"},
    )
    assert response.json() == {"removed": 1}

    key = (await client.get(f"{API}/notifications/vapid-public-key")).json()
    assert key["enabled"] is False
