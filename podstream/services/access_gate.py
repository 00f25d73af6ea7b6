"""
Access gate for audio byte-serving.

Every request for an audio object is checked here before any bytes are
returned. Decisions are computed per request and never cached, so a
cancellation or an expired billing period takes effect on the next fetch.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from podstream.db import DatabaseManager, now_ms
from podstream.services.auth import resolve_user

logger = logging.getLogger(__name__)


class AccessDecision(str, Enum):
    ALLOW = "allow"
    NOT_FOUND = "not_found"
    AUTH_REQUIRED = "auth_required"
    SUBSCRIPTION_REQUIRED = "subscription_required"

    @property
    def allowed(self) -> bool:
        return self is AccessDecision.ALLOW


def has_active_subscription(subscription: Optional[Dict[str, Any]], now: int) -> bool:
    """
    A subscription grants access when it is active and its billing period
    has not ended. A null period end means open-ended.
    """
    if not subscription:
        return False
    if subscription.get("status") != "active":
        return False
    period_end = subscription.get("current_period_end")
    return period_end is None or period_end > now


class AccessGate:
    """Decides ALLOW / DENY for a (resource, credential) pair."""

    def __init__(self, db: DatabaseManager, clock: Callable[[], int] = now_ms):
        self.db = db
        self.clock = clock

    def check(self, filename: str, token: Optional[str] = None) -> AccessDecision:
        decision, _ = self.authorize(filename, token)
        return decision

    def authorize(
        self, filename: str, token: Optional[str] = None
    ) -> Tuple[AccessDecision, Optional[Dict[str, Any]]]:
        """Return the decision together with the episode it was made for."""
        episode = self.db.get_episode_by_audio_filename(filename)
        if episode is None:
            return AccessDecision.NOT_FOUND, None

        if not episode.get("is_premium"):
            return AccessDecision.ALLOW, episode

        user = resolve_user(self.db, token)
        if user is None:
            return AccessDecision.AUTH_REQUIRED, episode

        subscription = self.db.get_subscription_by_user_id(user["id"])
        if has_active_subscription(subscription, self.clock()):
            return AccessDecision.ALLOW, episode

        logger.info(f"Denied premium audio {filename} to user {user['id']}: no active subscription")
        return AccessDecision.SUBSCRIPTION_REQUIRED, episode
