"""Subscription status and admin analytics endpoints (read-only)."""

from fastapi import APIRouter, Depends
from typing import Any, Dict

from podstream.db import DatabaseManager, get_db, now_ms
from podstream.models import AnalyticsOut, Subscription, SubscriptionStatusOut
from podstream.services.access_gate import has_active_subscription
from podstream.services.auth import require_admin, require_user

router = APIRouter(tags=["subscription"])


@router.get("/subscription/status", response_model=SubscriptionStatusOut)
async def subscription_status(
    user: Dict[str, Any] = Depends(require_user),
    db: DatabaseManager = Depends(get_db),
):
    """The caller's subscription record and whether it currently unlocks premium audio."""
    record = db.get_subscription_by_user_id(user["id"])
    return SubscriptionStatusOut(
        subscription=Subscription(**record) if record else None,
        has_access=has_active_subscription(record, now_ms()),
    )


@router.get("/analytics", response_model=AnalyticsOut)
async def analytics(
    _admin: Dict[str, Any] = Depends(require_admin),
    db: DatabaseManager = Depends(get_db),
):
    return AnalyticsOut(**db.get_stats())
