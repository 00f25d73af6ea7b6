"""
Best-effort progress checkpointing.

While a session is playing, its position is sampled about once per second
and a checkpoint is sent at most once per ``checkpoint_sec`` bucket of the
timeline. Completion and explicit saves always go out and additionally
record a play. Every network call runs in the background; failures are
logged and dropped, never retried.
"""

import asyncio
import logging
from contextlib import suppress
from typing import Callable, Optional, Protocol, Set, Tuple

from podstream.config import settings
from podstream.player.state import SessionSnapshot, TransportState

logger = logging.getLogger(__name__)


class ProgressApi(Protocol):
    async def save_progress(self, episode_id: str, progress_seconds: float, completed: bool) -> None: ...

    async def record_play(self, episode_id: str) -> None: ...


class ProgressPersister:
    def __init__(
        self,
        api: ProgressApi,
        sample_interval: float = settings.progress_sample_interval_sec,
        checkpoint_sec: int = settings.progress_checkpoint_sec,
    ):
        if checkpoint_sec < 1:
            raise ValueError("checkpoint_sec must be >= 1")
        self.api = api
        self.sample_interval = sample_interval
        self.checkpoint_sec = checkpoint_sec
        self._last_bucket: Optional[Tuple[str, int]] = None
        self._sampler: Optional[asyncio.Task] = None
        self._pending: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, snapshot: Callable[[], SessionSnapshot]) -> None:
        """Begin sampling ``snapshot()`` in the background."""
        if self._sampler is None:
            self._sampler = asyncio.create_task(self._sample_loop(snapshot))

    async def close(self) -> None:
        """Stop sampling and wait for in-flight saves."""
        if self._sampler is not None:
            self._sampler.cancel()
            with suppress(asyncio.CancelledError):
                await self._sampler
            self._sampler = None
        await self.flush()

    async def flush(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending))

    async def _sample_loop(self, snapshot: Callable[[], SessionSnapshot]) -> None:
        while True:
            await asyncio.sleep(self.sample_interval)
            self.sample(snapshot())

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def sample(self, snap: SessionSnapshot) -> bool:
        """Send a checkpoint if the position entered a new bucket. Returns True if one was sent."""
        if snap.state is not TransportState.PLAYING or snap.current_episode is None:
            return False

        key = (snap.current_episode.id, int(snap.position) // self.checkpoint_sec)
        if key == self._last_bucket:
            return False
        self._last_bucket = key
        self._spawn(self._save(snap.current_episode.id, snap.position, completed=False, record_play=False))
        return True

    def on_paused(self, snap: SessionSnapshot) -> None:
        """Checkpoint the position the listener paused at."""
        if snap.current_episode is None:
            return
        self._spawn(self._save(snap.current_episode.id, snap.position, completed=False, record_play=False))

    def on_ended(self, episode_id: str, duration: float) -> None:
        """Persist a finished episode regardless of bucket alignment."""
        self._last_bucket = None
        self._spawn(self._save(episode_id, duration, completed=True, record_play=True))

    def save_now(self, snap: SessionSnapshot) -> None:
        """Explicit save of the current position."""
        if snap.current_episode is None:
            return
        self._spawn(self._save(snap.current_episode.id, snap.position, completed=False, record_play=True))

    # ------------------------------------------------------------------
    # Background calls
    # ------------------------------------------------------------------

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _save(self, episode_id: str, position: float, completed: bool, record_play: bool) -> None:
        try:
            await self.api.save_progress(episode_id, position, completed)
        except Exception as e:
            logger.warning(f"Progress save failed for {episode_id} at {position:.1f}s: {type(e).__name__}: {e}")

        if not record_play:
            return
        try:
            await self.api.record_play(episode_id)
        except Exception as e:
            logger.warning(f"Play record failed for {episode_id}: {type(e).__name__}: {e}")
