"""
Tests for the access gate - premium audio authorization decisions.
"""
import pytest

from podstream.db import now_ms
from podstream.services.access_gate import AccessDecision, AccessGate, has_active_subscription

DAY_MS = 24 * 3600 * 1000


class TestHasActiveSubscription:
    """Tests for the subscription predicate."""

    def test_missing_subscription(self):
        assert not has_active_subscription(None, 1000)

    @pytest.mark.parametrize("status", ["inactive", "cancelled", "past_due"])
    def test_non_active_status(self, status):
        assert not has_active_subscription({"status": status, "current_period_end": None}, 1000)

    def test_open_ended_period(self):
        assert has_active_subscription({"status": "active", "current_period_end": None}, 1000)

    def test_period_end_in_future(self):
        assert has_active_subscription({"status": "active", "current_period_end": 2000}, 1000)

    def test_period_end_reached(self):
        """A period ending exactly now is already over."""
        assert not has_active_subscription({"status": "active", "current_period_end": 1000}, 1000)
        assert not has_active_subscription({"status": "active", "current_period_end": 999}, 1000)


class TestAccessGate:
    """Tests for AccessGate.check."""

    def test_unknown_resource_is_not_found(self, db, catalog, subscriber):
        gate = AccessGate(db)
        _, token = subscriber
        assert gate.check("missing.mp3") is AccessDecision.NOT_FOUND
        assert gate.check("missing.mp3", token) is AccessDecision.NOT_FOUND

    def test_free_content_without_credential(self, db, catalog):
        assert AccessGate(db).check("free.mp3") is AccessDecision.ALLOW

    def test_free_content_ignores_invalid_credential(self, db, catalog):
        assert AccessGate(db).check("free.mp3", "not-a-token") is AccessDecision.ALLOW

    def test_premium_without_credential(self, db, catalog):
        assert AccessGate(db).check("premium.mp3") is AccessDecision.AUTH_REQUIRED

    def test_premium_with_invalid_credential(self, db, catalog):
        assert AccessGate(db).check("premium.mp3", "not-a-token") is AccessDecision.AUTH_REQUIRED

    def test_premium_with_expired_token(self, db, catalog, subscriber):
        user, _ = subscriber
        db.save_token("stale-token", user["id"], now_ms() - 1)
        assert AccessGate(db).check("premium.mp3", "stale-token") is AccessDecision.AUTH_REQUIRED

    def test_premium_without_subscription(self, db, catalog, free_user):
        _, token = free_user
        assert AccessGate(db).check("premium.mp3", token) is AccessDecision.SUBSCRIPTION_REQUIRED

    def test_premium_with_active_subscription(self, db, catalog, subscriber):
        _, token = subscriber
        assert AccessGate(db).check("premium.mp3", token) is AccessDecision.ALLOW

    def test_premium_with_lapsed_period(self, db, catalog, make_user):
        _, token = make_user("lapsed@example.com", "active", now_ms() - DAY_MS)
        assert AccessGate(db).check("premium.mp3", token) is AccessDecision.SUBSCRIPTION_REQUIRED

    def test_premium_with_cancelled_subscription(self, db, catalog, make_user):
        _, token = make_user("gone@example.com", "cancelled", now_ms() + DAY_MS)
        assert AccessGate(db).check("premium.mp3", token) is AccessDecision.SUBSCRIPTION_REQUIRED

    def test_decision_follows_subscription_changes(self, db, catalog, subscriber):
        """The gate re-reads the subscription on every call."""
        user, token = subscriber
        gate = AccessGate(db)
        assert gate.check("premium.mp3", token) is AccessDecision.ALLOW

        db.upsert_subscription(user["id"], "cancelled")
        assert gate.check("premium.mp3", token) is AccessDecision.SUBSCRIPTION_REQUIRED

    def test_injected_clock_controls_expiry(self, db, catalog, make_user):
        _, token = make_user("clock@example.com", "active", 5_000)
        assert AccessGate(db, clock=lambda: 4_999).check("premium.mp3", token) is AccessDecision.ALLOW
        assert AccessGate(db, clock=lambda: 5_000).check("premium.mp3", token) is AccessDecision.SUBSCRIPTION_REQUIRED

    def test_bare_object_name_in_catalog(self, db, audio_dir):
        podcast = db.create_podcast("Bare", is_premium=True)
        db.create_episode(podcast["id"], "Raw", "raw_1.mp3")
        gate = AccessGate(db)
        assert gate.check("raw_1.mp3") is AccessDecision.AUTH_REQUIRED
        assert gate.check("raw-1.mp3") is AccessDecision.NOT_FOUND

    def test_external_url_does_not_claim_object_name(self, db, audio_dir):
        podcast = db.create_podcast("Mirror", is_premium=False)
        db.create_episode(podcast["id"], "Mirrored", "https://mirror.example.com/feed/vault.mp3")
        assert AccessGate(db).check("vault.mp3") is AccessDecision.NOT_FOUND

    def test_shared_object_name_resolves_to_premium(self, db, audio_dir):
        """A free episode must not unlock an object a premium episode also references."""
        free = db.create_podcast("Open", is_premium=False)
        premium = db.create_podcast("Vault", is_premium=True)
        db.create_episode(free["id"], "Free copy", "vault.mp3", episode_id="a-free")
        db.create_episode(premium["id"], "Paid copy", "/audio/vault.mp3", episode_id="z-premium")

        decision, episode = AccessGate(db).authorize("vault.mp3")
        assert decision is AccessDecision.AUTH_REQUIRED
        assert episode["id"] == "z-premium"

    def test_authorize_returns_checked_episode(self, db, catalog):
        decision, episode = AccessGate(db).authorize("free.mp3")
        assert decision is AccessDecision.ALLOW
        assert episode["id"] == "ep-free"
        assert AccessGate(db).authorize("missing.mp3") == (AccessDecision.NOT_FOUND, None)
