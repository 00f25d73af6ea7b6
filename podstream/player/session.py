"""
Playback session: the single owner of what is playing and what plays next.

The session holds the current episode, transport state, loop/shuffle flags
and the play queue. It drives a ``MediaAdapter`` and consumes its events.
Each ``play_episode`` call bumps a generation counter; adapter events and
load results from an older generation are discarded, so a slow load that
finishes after the listener picked something else never takes effect.

All commands run on one asyncio event loop. Observers registered with
``subscribe`` receive a ``SessionSnapshot`` after every state change.
"""

import logging
import math
import random
from typing import Callable, List, Optional, Set

from podstream.config import settings
from podstream.models import Episode
from podstream.player.adapter import (
    AdapterEvent,
    Ended,
    MediaAdapter,
    MetadataReady,
    PlaybackError,
    TimeUpdate,
)
from podstream.player.persister import ProgressPersister
from podstream.player.preferences import Preferences, PreferenceStore
from podstream.player.state import SessionSnapshot, TransportState

logger = logging.getLogger(__name__)

SessionListener = Callable[[SessionSnapshot], None]


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


class PlaybackSession:
    """Owns playback state for one client."""

    def __init__(
        self,
        adapter: MediaAdapter,
        preferences: Optional[PreferenceStore] = None,
        persister: Optional[ProgressPersister] = None,
        rng: Optional[random.Random] = None,
        restart_threshold: float = settings.previous_restart_threshold_sec,
    ):
        self.adapter = adapter
        self.preferences = preferences
        self.persister = persister
        self.rng = rng or random.Random()
        self.restart_threshold = restart_threshold

        self.current_episode: Optional[Episode] = None
        self.state = TransportState.STOPPED
        self.position = 0.0
        self.duration = 0.0
        self.looping = False
        self.shuffling = False
        self.queue: List[Episode] = []
        self.play_history: Set[str] = set()
        self.error: Optional[str] = None

        self._generation = 0
        self._loading: Optional[int] = None
        self._listeners: List[SessionListener] = []
        self.adapter.set_listener(self._on_adapter_event)

    # ------------------------------------------------------------------
    # Lifecycle & observation
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Apply stored preferences and begin progress sampling."""
        if self.preferences is not None:
            prefs = self.preferences.load()
            self.adapter.volume = prefs.volume
            self.adapter.rate = prefs.playback_rate
        if self.persister is not None:
            self.persister.start(self.snapshot)
        self._notify()

    async def close(self) -> None:
        if self.persister is not None:
            await self.persister.close()
        await self.adapter.close()

    @property
    def volume(self) -> float:
        return self.adapter.volume

    @property
    def playback_rate(self) -> float:
        return self.adapter.rate

    @property
    def generation(self) -> int:
        return self._generation

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            current_episode=self.current_episode,
            state=self.state,
            position=self.position,
            duration=self.duration,
            volume=self.volume,
            playback_rate=self.playback_rate,
            looping=self.looping,
            shuffling=self.shuffling,
            queue=tuple(self.queue),
            error=self.error,
        )

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register an observer. Returns a function that unregisters it."""
        if listener not in self._listeners:
            self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self) -> None:
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception as e:
                logger.error(f"Session listener {listener} failed: {type(e).__name__}: {e}")

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def play_episode(self, episode: Episode) -> None:
        """
        Start playing ``episode`` from the beginning.

        Selecting the episode that is already current only toggles
        play/pause. Raises ``PlaybackError`` if the resource cannot be
        played; the session is then stopped at position 0.
        """
        if self.current_episode is not None and self.current_episode.id == episode.id:
            await self.toggle_play_pause()
            return

        self._generation += 1
        generation = self._generation

        if self.state is TransportState.PLAYING:
            await self.adapter.pause()
        self.current_episode = episode
        self.state = TransportState.STOPPED
        self.position = 0.0
        self.duration = 0.0
        self.error = None
        self.play_history.add(episode.id)
        self._notify()

        self._loading = generation
        try:
            await self.adapter.load(episode.audio_url, generation, duration_hint=episode.duration)
            if generation != self._generation:
                return
            await self.adapter.play()
        except PlaybackError as e:
            if generation != self._generation:
                logger.debug(f"Dropping error from superseded load of {episode.id}: {e}")
                return
            self._fail(e)
            raise
        finally:
            if self._loading == generation:
                self._loading = None

        if generation != self._generation:
            return
        self.state = TransportState.PLAYING
        self.error = None
        logger.info(f"Playing {episode.id} ({episode.title})")
        self._notify()

    async def toggle_play_pause(self) -> None:
        if self.current_episode is None:
            return
        if self._loading is not None:
            # Playback starts once the pending load completes
            return

        if self.state is TransportState.PLAYING:
            await self.adapter.pause()
            self.state = TransportState.PAUSED
            self._notify()
            if self.persister is not None:
                self.persister.on_paused(self.snapshot())
            return

        try:
            await self.adapter.play()
        except PlaybackError as e:
            self.state = TransportState.STOPPED
            self.error = str(e)
            self._notify()
            raise
        self.state = TransportState.PLAYING
        self.position = clamp(self.adapter.position, 0.0, self.duration)
        self.error = None
        self._notify()

    def _fail(self, error: PlaybackError) -> None:
        logger.warning(f"Playback failed ({error.category}): {error}")
        self.state = TransportState.STOPPED
        self.position = 0.0
        self.duration = 0.0
        self.error = str(error)
        self._notify()

    def seek_to(self, seconds: float) -> None:
        """Move to ``seconds``, clamped into ``[0, duration]``."""
        self.position = clamp(seconds, 0.0, self.duration)
        self.adapter.seek(self.position)
        self._notify()

    def skip_forward(self, seconds: float = settings.skip_seconds) -> None:
        self.seek_to(self.position + seconds)

    def skip_backward(self, seconds: float = settings.skip_seconds) -> None:
        self.seek_to(self.position - seconds)

    def set_volume(self, volume: float) -> None:
        """Set volume, clamped into [0, 1], and remember it."""
        if math.isnan(volume):
            raise ValueError("volume must be a number")
        self.adapter.volume = clamp(volume, 0.0, 1.0)
        self._save_preferences()
        self._notify()

    def set_playback_rate(self, rate: float) -> None:
        if not math.isfinite(rate) or rate <= 0:
            raise ValueError(f"playback rate must be positive, got {rate}")
        self.adapter.rate = rate
        self._save_preferences()
        self._notify()

    def _save_preferences(self) -> None:
        if self.preferences is not None:
            self.preferences.save(Preferences(volume=self.volume, playback_rate=self.playback_rate))

    def toggle_loop(self) -> None:
        self.looping = not self.looping
        self._notify()

    def toggle_shuffle(self) -> None:
        self.shuffling = not self.shuffling
        self._notify()

    def save_progress(self) -> None:
        """Explicitly persist the current position (also records a play)."""
        if self.persister is not None:
            self.persister.save_now(self.snapshot())

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    def add_to_queue(self, episode: Episode) -> None:
        if any(e.id == episode.id for e in self.queue):
            return
        self.queue.append(episode)
        self._notify()

    def remove_from_queue(self, episode_id: str) -> None:
        """Drop an episode from the queue. Playback of it, if current, continues."""
        self.queue = [e for e in self.queue if e.id != episode_id]
        self._notify()

    def clear_queue(self) -> None:
        self.queue = []
        self.play_history.clear()
        self._notify()

    def _current_index(self) -> int:
        if self.current_episode is None:
            return -1
        for i, e in enumerate(self.queue):
            if e.id == self.current_episode.id:
                return i
        return -1

    async def play_next(self) -> None:
        if not self.queue:
            return

        if self.shuffling:
            candidates = [e for e in self.queue if e.id not in self.play_history]
            if not candidates:
                self.play_history.clear()
                candidates = list(self.queue)
            episode = self.rng.choice(candidates)
        else:
            episode = self.queue[(self._current_index() + 1) % len(self.queue)]

        await self.play_episode(episode)

    async def play_previous(self) -> None:
        """Restart the current episode if past the threshold, else go back one."""
        if not self.queue:
            return

        if self.position > self.restart_threshold:
            self.seek_to(0)
            return

        index = self._current_index()
        episode = self.queue[index - 1] if index > 0 else self.queue[-1]
        await self.play_episode(episode)

    # ------------------------------------------------------------------
    # Adapter events
    # ------------------------------------------------------------------

    async def _on_adapter_event(self, event: AdapterEvent) -> None:
        if event.generation != self._generation:
            logger.debug(f"Dropping stale {type(event).__name__} (generation {event.generation})")
            return

        if isinstance(event, MetadataReady):
            self.duration = max(0.0, event.duration)
            self.position = clamp(self.position, 0.0, self.duration)
            self._notify()
        elif isinstance(event, TimeUpdate):
            self.position = clamp(event.position, 0.0, self.duration)
            self._notify()
        elif isinstance(event, Ended):
            await self._on_ended()

    async def _on_ended(self) -> None:
        episode = self.current_episode
        if episode is None:
            return
        self.position = self.duration
        if self.persister is not None:
            self.persister.on_ended(episode.id, self.duration)

        if self.looping:
            self.adapter.seek(0)
            self.position = 0.0
            await self._resume_after_end()
        elif self.queue:
            self.state = TransportState.STOPPED
            try:
                await self.play_next()
            except PlaybackError as e:
                # No caller to report to; the failure is visible through ``error``.
                logger.error(f"Could not advance queue after {episode.id}: {e}")
        else:
            self.state = TransportState.STOPPED
            self._notify()

    async def _resume_after_end(self) -> None:
        try:
            await self.adapter.play()
        except PlaybackError as e:
            logger.error(f"Could not loop {self.current_episode.id}: {e}")
            self.state = TransportState.STOPPED
            self.error = str(e)
        else:
            self.state = TransportState.PLAYING
        self._notify()
