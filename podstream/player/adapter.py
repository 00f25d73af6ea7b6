"""
Media adapter contract and events.

A ``MediaAdapter`` wraps the single playable resource of a playback session.
The session drives it with transport commands and listens to the events it
emits. Every event carries the generation of the ``load`` it belongs to so
the session can drop results of a superseded load.

``HttpMediaAdapter`` is the headless implementation: it probes the audio
endpoint (which enforces the access gate) and runs a software clock at the
playback rate.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import suppress
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class PlaybackError(Exception):
    """Playback could not start or continue."""

    def __init__(self, category: str, message: str):
        super().__init__(message)
        self.category = category


# Categories reported by PlaybackError
NOT_FOUND = "not_found"
AUTH_REQUIRED = "auth_required"
SUBSCRIPTION_REQUIRED = "subscription_required"
UNAVAILABLE = "unavailable"

STATUS_CATEGORIES = {
    401: (AUTH_REQUIRED, "Authentication required"),
    403: (SUBSCRIPTION_REQUIRED, "Active subscription required"),
    404: (NOT_FOUND, "Audio file not found"),
}


@dataclass(frozen=True)
class AdapterEvent:
    """Base type for adapter-originated events."""
    generation: int


@dataclass(frozen=True)
class MetadataReady(AdapterEvent):
    """Duration of the loaded resource is known."""
    duration: float


@dataclass(frozen=True)
class TimeUpdate(AdapterEvent):
    position: float


@dataclass(frozen=True)
class Ended(AdapterEvent):
    """Playback reached the end of the resource."""


Listener = Callable[[AdapterEvent], Awaitable[None]]


class MediaAdapter(ABC):
    """Transport over one playable resource. Volume and rate survive loads."""

    def __init__(self, volume: float = 1.0, rate: float = 1.0):
        self.volume = volume
        self.rate = rate
        self.position = 0.0
        self.duration = 0.0
        self.generation = 0
        self._listener: Optional[Listener] = None

    def set_listener(self, listener: Optional[Listener]) -> None:
        self._listener = listener

    async def _emit(self, event: AdapterEvent) -> None:
        if self._listener is not None:
            await self._listener(event)

    @abstractmethod
    async def load(self, url: str, generation: int, duration_hint: Optional[float] = None) -> None:
        """Replace the current resource. Emits ``MetadataReady`` on success."""

    @abstractmethod
    async def play(self) -> None:
        """Start or resume playback. Raises ``PlaybackError`` on failure."""

    @abstractmethod
    async def pause(self) -> None:
        ...

    def seek(self, position: float) -> None:
        self.position = max(0.0, position)

    async def close(self) -> None:
        self.set_listener(None)


class HttpMediaAdapter(MediaAdapter):
    """
    Headless adapter over the audio endpoint.

    ``load`` sends a HEAD request with the session's bearer token so gate
    refusals surface as ``PlaybackError`` before playback starts. Duration
    comes from the ``X-Audio-Duration`` header, falling back to the
    episode metadata.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: Optional[str] = None,
        tick_interval: float = 0.25,
        volume: float = 1.0,
        rate: float = 1.0,
    ):
        super().__init__(volume=volume, rate=rate)
        self.client = client
        self.token = token
        self.tick_interval = tick_interval
        self.url: Optional[str] = None
        self._clock_task: Optional[asyncio.Task] = None

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    async def load(self, url: str, generation: int, duration_hint: Optional[float] = None) -> None:
        await self._stop_clock()
        self.generation = generation
        self.url = None
        self.position = 0.0
        self.duration = 0.0

        try:
            response = await self.client.head(url, headers=self._headers(), follow_redirects=True)
        except httpx.HTTPError as e:
            raise PlaybackError(UNAVAILABLE, f"Could not reach {url}: {type(e).__name__}: {e}")

        if response.status_code in STATUS_CATEGORIES:
            category, message = STATUS_CATEGORIES[response.status_code]
            raise PlaybackError(category, message)
        if response.status_code >= 400:
            raise PlaybackError(UNAVAILABLE, f"Audio request failed with HTTP {response.status_code}")

        if self.generation != generation:
            logger.debug(f"Discarding superseded load of {url}")
            return

        duration = duration_hint or 0.0
        header = response.headers.get("x-audio-duration")
        if header:
            try:
                duration = float(header)
            except ValueError:
                logger.warning(f"Ignoring malformed X-Audio-Duration header: {header!r}")

        self.url = url
        self.duration = max(0.0, duration)
        await self._emit(MetadataReady(generation, self.duration))

    async def play(self) -> None:
        if self.url is None:
            raise PlaybackError(UNAVAILABLE, "No audio resource loaded")
        if self.duration and self.position >= self.duration:
            self.position = 0.0
        if self._clock_task is None:
            self._clock_task = asyncio.create_task(self._run_clock(self.generation))

    async def pause(self) -> None:
        await self._stop_clock()

    async def close(self) -> None:
        await self._stop_clock()
        await super().close()

    async def _stop_clock(self) -> None:
        task, self._clock_task = self._clock_task, None
        if task is None or task is asyncio.current_task():
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    async def _run_clock(self, generation: int) -> None:
        loop = asyncio.get_running_loop()
        last = loop.time()
        while True:
            await asyncio.sleep(self.tick_interval)
            # Paused or reloaded from inside a listener callback
            if self._clock_task is not asyncio.current_task():
                return

            now = loop.time()
            self.position += (now - last) * self.rate
            last = now

            if self.duration and self.position >= self.duration:
                self.position = self.duration
                self._clock_task = None
                await self._emit(TimeUpdate(generation, self.position))
                await self._emit(Ended(generation))
                return

            await self._emit(TimeUpdate(generation, self.position))
