"""Observable playback state shared by the session and its observers."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from podstream.models import Episode


class TransportState(str, Enum):
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable view of a playback session at one point in time."""

    current_episode: Optional[Episode] = None
    state: TransportState = TransportState.STOPPED
    position: float = 0.0
    duration: float = 0.0
    volume: float = 0.8
    playback_rate: float = 1.0
    looping: bool = False
    shuffling: bool = False
    queue: Tuple[Episode, ...] = ()
    error: Optional[str] = None
