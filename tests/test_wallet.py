"""Wallet requests, history and ledger reconciliation."""

from decimal import Decimal

import pytest

from taskearn.core.errors_core import InsufficientBalanceError, ValidationError
from taskearn.models.transactions_models import STATUS_PENDING, TX_DEPOSIT, TX_WITHDRAW
from taskearn.services import ensure_ledger_consistency
from taskearn.services.transactions_service import (
    credit_profile,
    debit_profile_clamped,
    list_transactions,
    reconcile_profile,
    request_deposit,
    request_withdrawal,
)

from tests.conftest import get_profile, set_profile

BANK = {"account_number": "1234567890", "account_name": "Alice"}


async def test_deposit_request_is_pending_and_does_not_touch_balance(db, user):
    uid = user.context.user_id
    tx = await request_deposit(db, user_id=uid, amount="50", payment_method="bank", payment_details=BANK)

    assert tx.transaction_type == TX_DEPOSIT
    assert tx.status == STATUS_PENDING
    assert tx.amount == Decimal("50.00")
    assert tx.description == "Deposit via bank"
    assert tx.payment_details == BANK

    profile = await get_profile(db, uid)
    assert profile.wallet_balance == Decimal("0")
    assert profile.total_deposited == Decimal("0")


@pytest.mark.parametrize("amount", ["0", "-5", "abc"])
async def test_deposit_rejects_bad_amounts(db, user, amount):
    with pytest.raises(ValidationError):
        await request_deposit(
            db, user_id=user.context.user_id, amount=amount, payment_method="bank", payment_details=BANK
        )


async def test_deposit_requires_method_and_details(db, user):
    uid = user.context.user_id
    with pytest.raises(ValidationError):
        await request_deposit(db, user_id=uid, amount="10", payment_method=" ", payment_details=BANK)
    with pytest.raises(ValidationError):
        await request_deposit(db, user_id=uid, amount="10", payment_method="bank", payment_details={"a": " "})


async def test_withdrawal_minimum(db, user):
    uid = user.context.user_id
    await set_profile(db, uid, wallet_balance=Decimal("100"))
    with pytest.raises(ValidationError) as exc_info:
        await request_withdrawal(db, user_id=uid, amount="4.99", payment_method="bank", payment_details=BANK)
    assert exc_info.value.details["minimum"] == "5.00"


async def test_withdrawal_cannot_exceed_balance(db, user):
    uid = user.context.user_id
    await set_profile(db, uid, wallet_balance=Decimal("10"))
    with pytest.raises(InsufficientBalanceError):
        await request_withdrawal(db, user_id=uid, amount="10.01", payment_method="bank", payment_details=BANK)


async def test_withdrawal_request_holds_nothing(db, user):
    uid = user.context.user_id
    await set_profile(db, uid, wallet_balance=Decimal("10"))
    tx = await request_withdrawal(db, user_id=uid, amount="10", payment_method="paypal", payment_details={"email": "a@b.c"})

    assert tx.transaction_type == TX_WITHDRAW
    assert tx.status == STATUS_PENDING
    assert tx.description == "Withdrawal via paypal"
    profile = await get_profile(db, uid)
    assert profile.wallet_balance == Decimal("10.00")


async def test_history_newest_first_and_scoped_to_user(db, user):
    uid = user.context.user_id
    for amount in ("10", "20", "30"):
        await request_deposit(db, user_id=uid, amount=amount, payment_method="bank", payment_details=BANK)

    rows = await list_transactions(db, user_id=uid, limit=2)
    assert [r.amount for r in rows] == [Decimal("30.00"), Decimal("20.00")]
    assert await list_transactions(db, user_id="someone-else") == []


async def test_credit_accumulators(db, user):
    uid = user.context.user_id
    snap = await credit_profile(db, user_id=uid, amount="2.50", earned=True)
    snap = await credit_profile(db, user_id=uid, amount="1", referral=True, referrals_delta=1)
    await db.commit()

    assert snap.wallet_balance == Decimal("3.50")
    assert snap.total_earned == Decimal("2.50")
    assert snap.referral_earnings == Decimal("1.00")
    assert snap.total_referrals == 1


async def test_clamped_debit_never_goes_negative(db, user):
    uid = user.context.user_id
    await set_profile(db, uid, wallet_balance=Decimal("3"))
    snap = await debit_profile_clamped(db, user_id=uid, amount="8")
    await db.commit()
    assert snap.wallet_balance == Decimal("0.00")


async def test_reconcile_detects_and_fixes_drift(db, user):
    uid = user.context.user_id
    await set_profile(db, uid, wallet_balance=Decimal("7.77"))

    report = await reconcile_profile(db, user_id=uid)
    assert report.cached_balance == Decimal("7.77")
    assert report.ledger_balance == Decimal("0.00")
    assert report.fixed is False

    report = await reconcile_profile(db, user_id=uid, fix=True)
    assert report.fixed is True
    profile = await get_profile(db, uid)
    assert profile.wallet_balance == Decimal("0.00")


async def test_consistency_sweep_reports_drift(db, user):
    uid = user.context.user_id
    await set_profile(db, uid, wallet_balance=Decimal("2.00"))

    report = await ensure_ledger_consistency(db)
    assert report["checked"] == 1
    assert report["drift"] == [{"user_id": uid, "cached": "2.00", "ledger": "0.00"}]

    report = await ensure_ledger_consistency(db, fix=True)
    assert report["fixed"] is True
    assert (await ensure_ledger_consistency(db))["drift"] == []
