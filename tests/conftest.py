"""
Pytest configuration and shared fixtures for Podstream tests.
"""
import asyncio
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import Dict, List, Optional, Tuple

import httpx
import pytest
from fastapi.testclient import TestClient

from podstream.config import settings
from podstream.db import DatabaseManager, get_db, now_ms
from podstream.main import app
from podstream.models import Episode
from podstream.player.adapter import (
    UNAVAILABLE,
    Ended,
    MediaAdapter,
    MetadataReady,
    PlaybackError,
    TimeUpdate,
)
from podstream.services.auth import issue_token, register_user

DAY_MS = 24 * 3600 * 1000


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that's cleaned up after each test."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def db(temp_dir):
    return DatabaseManager(str(temp_dir / "podstream.db"))


@pytest.fixture
def audio_dir(temp_dir, monkeypatch):
    """Point the audio object store at a temporary directory."""
    path = temp_dir / "audio"
    path.mkdir()
    monkeypatch.setattr(settings, "audio_dir", str(path))
    return path


@pytest.fixture
def catalog(db, audio_dir):
    """A free and a premium podcast, one episode each, with audio on disk."""
    free = db.create_podcast("Open Frequencies", is_premium=False, podcast_id="pod-free")
    premium = db.create_podcast("The Deep Archive", is_premium=True, podcast_id="pod-premium")
    db.create_episode(free["id"], "Pilot", "/audio/free.mp3", duration=600, episode_id="ep-free")
    db.create_episode(premium["id"], "Vault Tapes", "/audio/premium.mp3", duration=1800, episode_id="ep-premium")
    (audio_dir / "free.mp3").write_bytes(b"ID3" + b"\x01" * 64)
    (audio_dir / "premium.mp3").write_bytes(b"ID3" + b"\x02" * 64)
    return {"free": free, "premium": premium}


def _make_user(db, email: str, status: str, period_end: Optional[int] = None) -> Tuple[Dict, str]:
    user = register_user(db, email, "password123", email.split("@")[0])
    if status != "inactive" or period_end is not None:
        db.upsert_subscription(user["id"], status, current_period_end=period_end)
    return user, issue_token(db, user["id"])


@pytest.fixture
def subscriber(db):
    """User with an active subscription ending in 30 days, and their token."""
    return _make_user(db, "subscriber@example.com", "active", now_ms() + 30 * DAY_MS)


@pytest.fixture
def free_user(db):
    """User with the inactive subscription created at registration."""
    return _make_user(db, "free@example.com", "inactive")


@pytest.fixture
def make_user(db):
    return lambda email, status, period_end=None: _make_user(db, email, status, period_end)


@pytest.fixture
def client(db, audio_dir):
    app.dependency_overrides[get_db] = lambda: db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_header(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Player fakes
# ---------------------------------------------------------------------------

def make_episode(episode_id: str, duration: Optional[float] = 600.0) -> Episode:
    return Episode(id=episode_id, title=f"Episode {episode_id}", audio_url=f"/audio/{episode_id}.mp3", duration=duration)


class FakeAdapter(MediaAdapter):
    """In-memory adapter; tests drive time and completion explicitly."""

    def __init__(self):
        super().__init__(volume=0.8, rate=1.0)
        self.url: Optional[str] = None
        self.playing = False
        self.loads: List[str] = []
        self.load_errors: Dict[str, PlaybackError] = {}
        self.load_gates: Dict[str, asyncio.Event] = {}
        self.play_error: Optional[PlaybackError] = None

    async def load(self, url, generation, duration_hint=None):
        self.generation = generation
        self.playing = False
        self.url = None
        self.position = 0.0
        self.duration = 0.0
        self.loads.append(url)

        gate = self.load_gates.get(url)
        if gate is not None:
            await gate.wait()
        if url in self.load_errors:
            raise self.load_errors[url]
        if self.generation != generation:
            return

        self.url = url
        self.duration = duration_hint or 0.0
        await self._emit(MetadataReady(generation, self.duration))

    async def play(self):
        if self.play_error is not None:
            raise self.play_error
        if self.url is None:
            raise PlaybackError(UNAVAILABLE, "No audio resource loaded")
        if self.duration and self.position >= self.duration:
            self.position = 0.0
        self.playing = True

    async def pause(self):
        self.playing = False

    async def tick(self, position: float, generation: Optional[int] = None):
        self.position = position
        await self._emit(TimeUpdate(self.generation if generation is None else generation, position))

    async def finish(self):
        self.position = self.duration
        self.playing = False
        await self._emit(Ended(self.generation))


class FakeApi:
    """Records progress and play calls; can be told to fail."""

    def __init__(self):
        self.saves: List[Tuple[str, float, bool]] = []
        self.plays: List[str] = []
        self.fail_saves = False
        self.fail_plays = False

    async def save_progress(self, episode_id, progress_seconds, completed):
        if self.fail_saves:
            raise httpx.ConnectError("connection refused")
        self.saves.append((episode_id, progress_seconds, completed))

    async def record_play(self, episode_id):
        if self.fail_plays:
            raise httpx.HTTPStatusError(
                "server error",
                request=httpx.Request("POST", "http://test/playback/plays"),
                response=httpx.Response(500),
            )
        self.plays.append(episode_id)


@pytest.fixture
def adapter():
    return FakeAdapter()


@pytest.fixture
def fake_api():
    return FakeApi()
