# -*- coding: utf-8 -*-
# taskearn/schemas/notifications_schemas.py
# =============================================================================
# Назначение кода:
# Схемы регистрации браузерных push-подписок. Форма совпадает с
# PushSubscription.toJSON() в браузере: {endpoint, keys: {p256dh, auth}}.
# =============================================================================

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

EventType = Literal["deposit_approved", "deposit_rejected", "withdrawal_approved", "withdrawal_rejected"]


class PushKeys(BaseModel):
    p256dh: str = Field(..., min_length=1, max_length=255)
    auth: str = Field(..., min_length=1, max_length=255)


class PushSubscriptionIn(BaseModel):
    endpoint: str = Field(..., min_length=1)
    keys: PushKeys


class PushUnsubscribeIn(BaseModel):
    endpoint: str = Field(..., min_length=1)


class VapidKeyOut(BaseModel):
    public_key: Optional[str] = None
    enabled: bool


__all__ = ["EventType", "PushKeys", "PushSubscriptionIn", "PushUnsubscribeIn", "VapidKeyOut"]
