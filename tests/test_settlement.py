"""Admin settlement of deposits and withdrawals."""

from decimal import Decimal

import pytest

from taskearn.core.errors_core import AlreadySettled, NotFoundError, ValidationError
from taskearn.models.transactions_models import (
    STATUS_COMPLETED,
    STATUS_PENDING,
    STATUS_REJECTED,
    TX_TASK_REWARD,
)
from taskearn.services.admin.admin_settlement_service import (
    bulk_settle,
    list_transactions_admin,
    settle_transaction,
)
from taskearn.services.notifications_service import (
    EVENT_DEPOSIT_APPROVED,
    EVENT_WITHDRAWAL_APPROVED,
    EVENT_WITHDRAWAL_REJECTED,
)
from taskearn.services.transactions_service import (
    append_ledger,
    ledger_balance,
    reconcile_profile,
    request_deposit,
    request_withdrawal,
)

from tests.conftest import get_profile, set_profile

BANK = {"account_number": "1234567890"}


async def test_approved_deposit_raises_vip_level(db, user, admin, notifier):
    """Scenario D: $50 on top of $10 deposited + $15 earned lands on VIP 2."""
    uid = user.context.user_id
    await set_profile(db, uid, total_deposited=Decimal("10"), total_earned=Decimal("15"))
    tx = await request_deposit(db, user_id=uid, amount="50", payment_method="bank", payment_details=BANK)
    tx_id = tx.id

    settled = await settle_transaction(
        db, transaction_id=tx_id, decision="approve", admin_id=admin.context.user_id, notifier=notifier
    )

    assert settled.status == STATUS_COMPLETED
    assert settled.settled_by == admin.context.user_id
    assert settled.settled_at is not None
    profile = await get_profile(db, uid)
    assert profile.total_deposited == Decimal("60.00")
    assert profile.wallet_balance == Decimal("50.00")
    assert profile.vip_level == 2
    assert notifier.calls == [(uid, EVENT_DEPOSIT_APPROVED, Decimal("50.00"))]


async def test_rejected_withdrawal_keeps_balance(db, user, admin, notifier):
    """Scenario E: rejection leaves the wallet untouched and notifies."""
    uid = user.context.user_id
    await set_profile(db, uid, wallet_balance=Decimal("30"))
    tx = await request_withdrawal(db, user_id=uid, amount="20", payment_method="bank", payment_details=BANK)

    settled = await settle_transaction(
        db, transaction_id=tx.id, decision="reject", admin_id=admin.context.user_id, notifier=notifier
    )

    assert settled.status == STATUS_REJECTED
    assert (await get_profile(db, uid)).wallet_balance == Decimal("30.00")
    assert notifier.events() == [EVENT_WITHDRAWAL_REJECTED]


async def test_second_settlement_is_rejected(db, user, admin, notifier):
    uid = user.context.user_id
    tx = await request_deposit(db, user_id=uid, amount="25", payment_method="bank", payment_details=BANK)
    tx_id = tx.id
    await settle_transaction(db, transaction_id=tx_id, decision="approve", admin_id=admin.context.user_id, notifier=notifier)

    with pytest.raises(AlreadySettled):
        await settle_transaction(db, transaction_id=tx_id, decision="reject", admin_id=admin.context.user_id, notifier=notifier)

    profile = await get_profile(db, uid)
    assert profile.wallet_balance == Decimal("25.00")
    assert profile.total_deposited == Decimal("25.00")
    assert len(notifier.calls) == 1


async def test_withdrawal_approval_is_clamped_at_zero(db, user, admin, notifier):
    uid = user.context.user_id
    await set_profile(db, uid, wallet_balance=Decimal("10"))
    first = await request_withdrawal(db, user_id=uid, amount="8", payment_method="bank", payment_details=BANK)
    second = await request_withdrawal(db, user_id=uid, amount="8", payment_method="bank", payment_details=BANK)
    first_id, second_id = first.id, second.id

    await settle_transaction(db, transaction_id=first_id, decision="approve", admin_id=admin.context.user_id, notifier=notifier)
    assert (await get_profile(db, uid)).wallet_balance == Decimal("2.00")

    await settle_transaction(db, transaction_id=second_id, decision="approve", admin_id=admin.context.user_id, notifier=notifier)
    assert (await get_profile(db, uid)).wallet_balance == Decimal("0.00")
    assert notifier.events() == [EVENT_WITHDRAWAL_APPROVED, EVENT_WITHDRAWAL_APPROVED]


async def test_ledger_walk_honours_clamp(db, user, admin):
    uid = user.context.user_id
    deposit = await request_deposit(db, user_id=uid, amount="10", payment_method="bank", payment_details=BANK)
    await settle_transaction(db, transaction_id=deposit.id, decision="approve", admin_id=admin.context.user_id)
    first = await request_withdrawal(db, user_id=uid, amount="8", payment_method="bank", payment_details=BANK)
    second = await request_withdrawal(db, user_id=uid, amount="8", payment_method="bank", payment_details=BANK)
    first_id, second_id = first.id, second.id
    await settle_transaction(db, transaction_id=first_id, decision="approve", admin_id=admin.context.user_id)
    await settle_transaction(db, transaction_id=second_id, decision="approve", admin_id=admin.context.user_id)

    profile = await get_profile(db, uid)
    assert profile.wallet_balance == Decimal("0.00")
    assert await ledger_balance(db, uid) == profile.wallet_balance


async def test_deposit_after_clamped_withdrawal_reconciles(db, user, admin):
    """A past clamp must not be netted away by later credits."""
    uid = user.context.user_id
    admin_id = admin.context.user_id

    deposit = await request_deposit(db, user_id=uid, amount="5", payment_method="bank", payment_details=BANK)
    await settle_transaction(db, transaction_id=deposit.id, decision="approve", admin_id=admin_id)
    first = await request_withdrawal(db, user_id=uid, amount="5", payment_method="bank", payment_details=BANK)
    second = await request_withdrawal(db, user_id=uid, amount="5", payment_method="bank", payment_details=BANK)
    first_id, second_id = first.id, second.id
    await settle_transaction(db, transaction_id=first_id, decision="approve", admin_id=admin_id)
    await settle_transaction(db, transaction_id=second_id, decision="approve", admin_id=admin_id)
    top_up = await request_deposit(db, user_id=uid, amount="20", payment_method="bank", payment_details=BANK)
    await settle_transaction(db, transaction_id=top_up.id, decision="approve", admin_id=admin_id)

    assert (await get_profile(db, uid)).wallet_balance == Decimal("20.00")
    assert await ledger_balance(db, uid) == Decimal("20.00")

    report = await reconcile_profile(db, user_id=uid, fix=True)
    assert report.fixed is False
    assert (await get_profile(db, uid)).wallet_balance == Decimal("20.00")


async def test_invalid_decision_and_unknown_id(db, admin):
    with pytest.raises(ValidationError):
        await settle_transaction(db, transaction_id=1, decision="maybe", admin_id=admin.context.user_id)
    with pytest.raises(NotFoundError):
        await settle_transaction(db, transaction_id=12345, decision="approve", admin_id=admin.context.user_id)


async def test_task_rewards_cannot_be_settled(db, user, admin):
    tx = await append_ledger(
        db,
        user_id=user.context.user_id,
        transaction_type=TX_TASK_REWARD,
        amount="0.10",
        status=STATUS_COMPLETED,
    )
    await db.commit()
    with pytest.raises(ValidationError):
        await settle_transaction(db, transaction_id=tx.id, decision="approve", admin_id=admin.context.user_id)


async def test_bulk_settle_reports_each_item(db, user, admin, notifier):
    uid = user.context.user_id
    ids = []
    for amount in ("5", "6", "7"):
        tx = await request_deposit(db, user_id=uid, amount=amount, payment_method="bank", payment_details=BANK)
        ids.append(tx.id)
    await settle_transaction(db, transaction_id=ids[1], decision="reject", admin_id=admin.context.user_id)

    report = await bulk_settle(
        db,
        transaction_ids=[ids[0], ids[1], ids[2], 9999],
        decision="approve",
        admin_id=admin.context.user_id,
        notifier=notifier,
    )

    assert report.succeeded == 2
    assert report.failed == 2
    by_id = {item.transaction_id: item for item in report.items}
    assert by_id[ids[0]].ok and by_id[ids[0]].status == STATUS_COMPLETED
    assert by_id[ids[1]].error == "already_settled"
    assert by_id[9999].error == "not_found"
    assert (await get_profile(db, uid)).wallet_balance == Decimal("12.00")
    assert len(notifier.calls) == 2


async def test_admin_queue_filters_and_usernames(db, user):
    uid = user.context.user_id
    await request_deposit(db, user_id=uid, amount="5", payment_method="bank", payment_details=BANK)
    await set_profile(db, uid, wallet_balance=Decimal("50"))
    await request_withdrawal(db, user_id=uid, amount="6", payment_method="bank", payment_details=BANK)

    pending = await list_transactions_admin(db, status=STATUS_PENDING)
    assert len(pending) == 2
    assert {row.username for row in pending} == {"alice"}

    withdrawals = await list_transactions_admin(db, transaction_type="withdraw")
    assert [row.amount for row in withdrawals] == [Decimal("6.00")]

    with pytest.raises(ValidationError):
        await list_transactions_admin(db, status="lost")
