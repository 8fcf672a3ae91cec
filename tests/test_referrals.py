"""Referral attribution and the referral overview."""

from decimal import Decimal
from unittest.mock import AsyncMock

from taskearn.core.utils_core import REF_CODE_ALPHABET
from taskearn.crud.referrals_crud import ReferralsCRUD
from taskearn.crud.transactions_crud import TransactionsCRUD
from taskearn.models.transactions_models import TX_REFERRAL_BONUS
from taskearn.services.referral_service import (
    attribute_referral,
    generate_referral_code,
    get_referral_overview,
)
from taskearn.services.transactions_service import ledger_balance

from tests.conftest import get_profile, make_user


async def test_signup_with_code_rewards_referrer(db, user):
    """Scenario F: the referrer gets one referral and $1.00, exactly once."""
    referrer_id = user.context.user_id
    code = user.context.profile.referral_code

    newcomer = await make_user(db, email="bob@example.com", username="bob", referral_code=code.lower())
    newcomer_id = newcomer.context.user_id

    referral = await ReferralsCRUD(db).get_by_referred(newcomer_id)
    assert referral is not None
    assert referral.referrer_id == referrer_id
    assert referral.bonus_earned == Decimal("1.00")

    referrer = await get_profile(db, referrer_id)
    assert referrer.total_referrals == 1
    assert referrer.referral_earnings == Decimal("1.00")
    assert referrer.wallet_balance == Decimal("1.00")
    assert (await get_profile(db, newcomer_id)).referred_by_code == code

    history = await TransactionsCRUD(db).list_for_user(referrer_id)
    assert [tx.transaction_type for tx in history] == [TX_REFERRAL_BONUS]
    assert await ledger_balance(db, referrer_id) == Decimal("1.00")

    # Repeated attribution for the same new user is a no-op.
    assert await attribute_referral(db, referrer_code=code, new_user_id=newcomer_id) is False
    referrer = await get_profile(db, referrer_id)
    assert referrer.total_referrals == 1
    assert referrer.wallet_balance == Decimal("1.00")


async def test_unknown_code_does_not_block_signup(db):
    result = await make_user(db, email="carol@example.com", username="carol", referral_code="NOPE1234")
    profile = await get_profile(db, result.context.user_id)
    assert profile.referred_by_code is None
    assert await ReferralsCRUD(db).get_by_referred(result.context.user_id) is None


async def test_self_referral_is_ignored(db, user):
    uid = user.context.user_id
    assert await attribute_referral(db, referrer_code=user.context.profile.referral_code, new_user_id=uid) is False
    profile = await get_profile(db, uid)
    assert profile.total_referrals == 0
    assert profile.wallet_balance == Decimal("0")


async def test_empty_code_is_ignored(db, user):
    assert await attribute_referral(db, referrer_code="  ", new_user_id=user.context.user_id) is False


async def test_overview_lists_referred_users(db, user):
    code = user.context.profile.referral_code
    await make_user(db, email="dave@example.com", username="dave", referral_code=code)
    await make_user(db, email="erin@example.com", username="erin", referral_code=code)

    overview = await get_referral_overview(db, user_id=user.context.user_id)
    assert overview.referral_code == code
    assert overview.referral_link.endswith(f"/auth?ref={code}")
    assert overview.total_referrals == 2
    assert overview.referral_earnings == Decimal("2.00")
    assert overview.bonus_per_referral == Decimal("1.00")
    assert sorted(item.username for item in overview.referrals) == ["dave", "erin"]


async def test_generated_codes_are_unique_format(db, user):
    code = await generate_referral_code(db)
    assert len(code) == 8
    assert set(code) <= set(REF_CODE_ALPHABET)
    assert code != user.context.profile.referral_code


async def test_concurrent_attribution_is_rejected_by_unique_referred(db, user, monkeypatch):
    """A referral row written after the pre-check loses to UNIQUE(referred_id)."""
    referrer_id = user.context.user_id
    code = user.context.profile.referral_code
    other = await make_user(db, email="frank@example.com", username="frank")
    newcomer = await make_user(db, email="gina@example.com", username="gina")
    other_id, newcomer_id = other.context.user_id, newcomer.context.user_id

    await ReferralsCRUD(db).add(referrer_id=other_id, referred_id=newcomer_id, bonus=Decimal("1.00"))
    await db.commit()
    monkeypatch.setattr(ReferralsCRUD, "get_by_referred", AsyncMock(return_value=None))

    assert await attribute_referral(db, referrer_code=code, new_user_id=newcomer_id) is False

    referrer = await get_profile(db, referrer_id)
    assert referrer.total_referrals == 0
    assert referrer.referral_earnings == Decimal("0")
    assert referrer.wallet_balance == Decimal("0")
    assert await TransactionsCRUD(db).list_for_user(referrer_id) == []
    assert (await get_profile(db, newcomer_id)).referred_by_code is None
