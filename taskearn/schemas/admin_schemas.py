# -*- coding: utf-8 -*-
# taskearn/schemas/admin_schemas.py
# =============================================================================
# Назначение кода:
# Схемы админ-панели: список пользователей с флагом администратора,
# счётчики на главной странице, ответ на смену роли.
# =============================================================================

from __future__ import annotations

from pydantic import BaseModel

from taskearn.schemas.user_schemas import ProfileOut


class AdminUserOut(ProfileOut):
    is_admin: bool = False


class AdminStatsOut(BaseModel):
    total_users: int
    active_tasks: int
    pending_withdrawals: int
    pending_deposits: int


class AdminRoleOut(BaseModel):
    user_id: str
    is_admin: bool


__all__ = ["AdminUserOut", "AdminStatsOut", "AdminRoleOut"]
