"""Task completion: rewards, daily cap, per-day deduplication."""

import random
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from taskearn.core.config_core import settings
from taskearn.core.errors_core import (
    AlreadyCompletedToday,
    DailyLimitReached,
    NotFoundError,
    TaskInactiveError,
)
from taskearn.crud.tasks_crud import TasksCRUD
from taskearn.crud.transactions_crud import TransactionsCRUD
from taskearn.models.transactions_models import STATUS_COMPLETED, TX_TASK_REWARD
from taskearn.services.tasks_service import complete_task, compute_reward, get_today_status
from taskearn.services.transactions_service import ledger_balance

from tests.conftest import get_profile, make_task, set_profile

TODAY = date(2026, 3, 14)


async def test_completion_credits_reward(db, user):
    """Scenario A: first task of the day credits balance and total_earned."""
    uid = user.context.user_id
    task_id = await make_task(db, reward="0.10")

    result = await complete_task(db, user_id=uid, task_id=task_id, today=TODAY)

    assert result.reward == Decimal("0.10")
    assert result.wallet_balance == Decimal("0.10")
    assert result.completed_today == 1
    assert result.daily_limit == 5

    profile = await get_profile(db, uid)
    assert profile.wallet_balance == Decimal("0.10")
    assert profile.total_earned == Decimal("0.10")
    assert profile.last_task_date == TODAY

    completions = await TasksCRUD(db).list_completions_on(uid, TODAY)
    assert [c.task_id for c in completions] == [task_id]

    history = await TransactionsCRUD(db).list_for_user(uid)
    assert len(history) == 1
    assert history[0].transaction_type == TX_TASK_REWARD
    assert history[0].status == STATUS_COMPLETED
    assert history[0].description == "Task reward: Follow us"


async def test_same_task_twice_same_day_is_rejected(db, user):
    """Scenario B: duplicate completion fails and the balance is unchanged."""
    uid = user.context.user_id
    task_id = await make_task(db)
    await complete_task(db, user_id=uid, task_id=task_id, today=TODAY)

    with pytest.raises(AlreadyCompletedToday):
        await complete_task(db, user_id=uid, task_id=task_id, today=TODAY)

    profile = await get_profile(db, uid)
    assert profile.wallet_balance == Decimal("0.10")
    assert await TasksCRUD(db).count_completions_on(uid, TODAY) == 1


async def test_unique_backstop_reports_already_completed(db, user, monkeypatch):
    """A duplicate that slips past the pre-check hits UNIQUE(user, task, day)."""
    uid = user.context.user_id
    task_id = await make_task(db)
    await complete_task(db, user_id=uid, task_id=task_id, today=TODAY)

    monkeypatch.setattr(TasksCRUD, "completion_exists", AsyncMock(return_value=False))
    with pytest.raises(AlreadyCompletedToday) as exc_info:
        await complete_task(db, user_id=uid, task_id=task_id, today=TODAY)
    assert exc_info.value.details == {"task_id": task_id}

    profile = await get_profile(db, uid)
    assert profile.wallet_balance == Decimal("0.10")
    assert profile.total_earned == Decimal("0.10")
    assert await TasksCRUD(db).count_completions_on(uid, TODAY) == 1
    assert await ledger_balance(db, uid) == Decimal("0.10")


async def test_same_task_next_day_is_allowed(db, user):
    uid = user.context.user_id
    task_id = await make_task(db)
    await complete_task(db, user_id=uid, task_id=task_id, today=TODAY)
    result = await complete_task(db, user_id=uid, task_id=task_id, today=TODAY + timedelta(days=1))

    assert result.completed_today == 1
    assert result.wallet_balance == Decimal("0.20")


async def test_daily_cap_for_vip0(db, user):
    """Scenario C: the sixth task of the day fails at VIP 0."""
    uid = user.context.user_id
    task_ids = [await make_task(db, title=f"Task {i}") for i in range(6)]

    for task_id in task_ids[:5]:
        await complete_task(db, user_id=uid, task_id=task_id, today=TODAY)

    with pytest.raises(DailyLimitReached) as exc_info:
        await complete_task(db, user_id=uid, task_id=task_ids[5], today=TODAY)
    assert exc_info.value.details["daily_limit"] == 5

    profile = await get_profile(db, uid)
    assert profile.wallet_balance == Decimal("0.50")
    assert await TasksCRUD(db).count_completions_on(uid, TODAY) == 5


async def test_daily_cap_follows_vip_level(db, user):
    uid = user.context.user_id
    await set_profile(db, uid, vip_level=1)
    task_ids = [await make_task(db, title=f"Task {i}") for i in range(7)]

    for task_id in task_ids:
        result = await complete_task(db, user_id=uid, task_id=task_id, today=TODAY)
    assert result.daily_limit == 10
    assert result.completed_today == 7


async def test_inactive_task(db, user):
    task_id = await make_task(db, is_active=False)
    with pytest.raises(TaskInactiveError):
        await complete_task(db, user_id=user.context.user_id, task_id=task_id, today=TODAY)


async def test_unknown_task(db, user):
    with pytest.raises(NotFoundError):
        await complete_task(db, user_id=user.context.user_id, task_id=999, today=TODAY)


async def test_unknown_profile(db):
    task_id = await make_task(db)
    with pytest.raises(NotFoundError):
        await complete_task(db, user_id="no-such-user", task_id=task_id, today=TODAY)


async def test_ledger_matches_cached_balance(db, user):
    uid = user.context.user_id
    for i, reward in enumerate(("0.10", "0.25", "1.05")):
        task_id = await make_task(db, title=f"Task {i}", reward=reward)
        await complete_task(db, user_id=uid, task_id=task_id, today=TODAY)

    profile = await get_profile(db, uid)
    assert profile.wallet_balance == Decimal("1.40")
    assert await ledger_balance(db, uid) == profile.wallet_balance


async def test_today_status(db, user):
    uid = user.context.user_id
    first = await make_task(db, title="One")
    await make_task(db, title="Two")
    await complete_task(db, user_id=uid, task_id=first, today=TODAY)

    status = await get_today_status(db, user_id=uid, today=TODAY)
    assert status.day == TODAY
    assert status.completed_count == 1
    assert status.remaining == 4
    assert status.completed_task_ids == [first]
    assert status.completed[0].task is not None


async def test_dynamic_reward_stays_within_tier_range(db, user, monkeypatch):
    monkeypatch.setattr(settings, "TASK_REWARD_MODE", "dynamic")
    uid = user.context.user_id
    task_id = await make_task(db, reward="9.99")

    result = await complete_task(db, user_id=uid, task_id=task_id, today=TODAY, rng=random.Random(7))

    low, high = settings.task_reward_ranges[0]
    assert low <= result.reward <= high


async def test_static_reward_uses_task_amount(db):
    task_id = await make_task(db, reward="0.35")
    task = await TasksCRUD(db).get_task(task_id)
    assert compute_reward(task, vip_level=4) == Decimal("0.35")
