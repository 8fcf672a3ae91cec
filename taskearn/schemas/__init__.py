# -*- coding: utf-8 -*-
# taskearn/schemas/__init__.py
# =============================================================================
# Назначение кода:
# Централизованный «фасад» для Pydantic-схем TaskEarn. Даёт единый импорт:
#     from taskearn.schemas import TaskOut, ProfileOut, ...
#
# Канон / инварианты:
# • Здесь НЕТ бизнес-логики и вычислений балансов/денег - только агрегация схем.
# =============================================================================

from __future__ import annotations

from taskearn.schemas.admin_schemas import AdminRoleOut, AdminStatsOut, AdminUserOut
from taskearn.schemas.common_schemas import ErrorResponse, Money, OkMeta, m2_str
from taskearn.schemas.notifications_schemas import (
    EventType,
    PushSubscriptionIn,
    PushUnsubscribeIn,
    VapidKeyOut,
)
from taskearn.schemas.referral_schemas import ReferralItemOut, ReferralOverviewOut
from taskearn.schemas.tasks_schemas import (
    CompletionOut,
    TaskCompletionResult,
    TaskCreate,
    TaskOut,
    TaskUpdate,
    TodayStatusOut,
)
from taskearn.schemas.transactions_schemas import (
    AdminTransactionOut,
    BulkSettleIn,
    BulkSettleReport,
    DepositRequestIn,
    SettleIn,
    SettleItemReport,
    TransactionOut,
    WithdrawalRequestIn,
)
from taskearn.schemas.user_schemas import (
    AuthOut,
    ProfileOut,
    ProfileUpdateIn,
    SessionOut,
    SignInIn,
    SignUpIn,
    VipProgressOut,
    VipTierOut,
)

__all__ = [
    "AdminRoleOut",
    "AdminStatsOut",
    "AdminTransactionOut",
    "AdminUserOut",
    "AuthOut",
    "BulkSettleIn",
    "BulkSettleReport",
    "CompletionOut",
    "DepositRequestIn",
    "ErrorResponse",
    "EventType",
    "Money",
    "OkMeta",
    "ProfileOut",
    "ProfileUpdateIn",
    "PushSubscriptionIn",
    "PushUnsubscribeIn",
    "ReferralItemOut",
    "ReferralOverviewOut",
    "SessionOut",
    "SettleIn",
    "SettleItemReport",
    "SignInIn",
    "SignUpIn",
    "TaskCompletionResult",
    "TaskCreate",
    "TaskOut",
    "TaskUpdate",
    "TodayStatusOut",
    "TransactionOut",
    "VapidKeyOut",
    "VipProgressOut",
    "VipTierOut",
    "WithdrawalRequestIn",
    "m2_str",
]
