"""Sign-up / sign-in / sign-out, session resolution, admin roles."""

import pytest

from taskearn.core.errors_core import AuthError, ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from taskearn.crud.user_crud import UserCRUD
from taskearn.services.admin.admin_rbac import grant_admin, is_admin, revoke_admin
from taskearn.services.auth_service import admin_login, refresh_profile, resolve_session, sign_in, sign_out
from taskearn.services.profile_service import update_profile

from tests.conftest import get_profile, make_user


async def test_sign_up_creates_profile_and_session(db, user):
    ctx = user.context
    assert user.access_token
    assert ctx.email == "alice@example.com"
    assert ctx.is_admin is False
    assert ctx.profile is not None
    assert ctx.profile.username == "alice"
    assert ctx.profile.vip_level == 0
    assert len(ctx.profile.referral_code) == 8

    resolved = await resolve_session(db, user.access_token)
    assert resolved.user_id == ctx.user_id
    assert resolved.session_id == ctx.session_id


async def test_duplicate_email_conflicts(db, user):
    with pytest.raises(ConflictError):
        await make_user(db, email="ALICE@example.com", username="other")


async def test_sign_in_checks_password(db, user):
    result = await sign_in(db, email="alice@example.com", password="secret123")
    assert result.context.user_id == user.context.user_id
    assert result.context.session_id != user.context.session_id

    with pytest.raises(AuthError):
        await sign_in(db, email="alice@example.com", password="wrong-password")
    with pytest.raises(AuthError):
        await sign_in(db, email="nobody@example.com", password="secret123")


async def test_sign_out_revokes_only_that_session(db, user):
    other = await sign_in(db, email="alice@example.com", password="secret123")
    await sign_out(db, user.context)

    with pytest.raises(AuthError):
        await resolve_session(db, user.access_token)
    assert (await resolve_session(db, other.access_token)).user_id == user.context.user_id


@pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
async def test_bad_tokens_are_rejected(db, token):
    with pytest.raises(AuthError):
        await resolve_session(db, token)


async def test_admin_flag_comes_from_roles_table(db, user):
    uid = user.context.user_id
    assert await is_admin(db, uid) is False

    await grant_admin(db, user_id=uid, granted_by="system")
    ctx = await refresh_profile(db, user.context)
    assert ctx.is_admin is True
    assert ctx.profile.role == "admin"
    assert await UserCRUD(db).has_role(uid)

    assert await revoke_admin(db, user_id=uid, revoked_by="someone-else") is True
    assert (await refresh_profile(db, ctx)).is_admin is False
    assert await revoke_admin(db, user_id=uid, revoked_by="someone-else") is False


async def test_admin_cannot_revoke_self(db, admin):
    with pytest.raises(ValidationError):
        await revoke_admin(db, user_id=admin.context.user_id, revoked_by=admin.context.user_id)


async def test_grant_unknown_user(db):
    with pytest.raises(NotFoundError):
        await grant_admin(db, user_id="ghost", granted_by="system")


async def test_admin_login_bootstraps_configured_account(db):
    await make_user(db, email="admin@admin.com", username="admin", password="admin-pass")
    result = await admin_login(db, email="admin@admin.com", password="admin-pass")
    assert result.context.is_admin is True
    assert await is_admin(db, result.context.user_id)


async def test_admin_login_refuses_other_accounts(db, user):
    with pytest.raises(PermissionDeniedError):
        await admin_login(db, email="alice@example.com", password="secret123")


async def test_profile_update(db, user):
    uid = user.context.user_id
    profile = await update_profile(db, user_id=uid, username=" Alice B ", phone="+100", payment_method="paypal")
    assert profile.username == "Alice B"
    assert profile.phone == "+100"

    profile = await update_profile(db, user_id=uid, phone="")
    assert profile.phone is None
    assert profile.payment_method == "paypal"

    with pytest.raises(ValidationError):
        await update_profile(db, user_id=uid, username="   ")
    assert (await get_profile(db, uid)).username == "Alice B"
