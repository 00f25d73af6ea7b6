"""Keyboard shortcuts mapped onto playback session commands."""

import logging
from dataclasses import dataclass
from typing import Optional

from podstream.config import settings
from podstream.player.session import PlaybackSession

logger = logging.getLogger(__name__)

TEXT_INPUT_TAGS = {"INPUT", "TEXTAREA"}
VOLUME_STEP = 0.1
LONG_SKIP_SECONDS = 30.0


@dataclass(frozen=True)
class KeyEvent:
    key: str
    shift: bool = False
    target_tag: Optional[str] = None  # Tag name of the focused element


class KeyboardShortcuts:
    """
    Space       play/pause
    Right/Left  seek +/-15s (Shift: 30s)
    Up/Down     volume +/-0.1
    M           mute toggle
    L           loop toggle
    Shift+N     next in queue
    Shift+P     previous in queue
    """

    def __init__(self, session: PlaybackSession, unmute_volume: float = settings.default_volume):
        self.session = session
        self.unmute_volume = unmute_volume

    async def handle(self, event: KeyEvent) -> bool:
        """Dispatch a key press. Returns True if it was consumed."""
        if event.target_tag and event.target_tag.upper() in TEXT_INPUT_TAGS:
            return False

        session = self.session
        key = event.key.lower()
        skip = LONG_SKIP_SECONDS if event.shift else settings.skip_seconds

        if key == " ":
            await session.toggle_play_pause()
        elif key == "arrowright":
            session.skip_forward(skip)
        elif key == "arrowleft":
            session.skip_backward(skip)
        elif key == "arrowup":
            session.set_volume(round(min(session.volume + VOLUME_STEP, 1.0), 2))
        elif key == "arrowdown":
            session.set_volume(round(max(session.volume - VOLUME_STEP, 0.0), 2))
        elif key == "m":
            session.set_volume(0.0 if session.volume > 0 else self.unmute_volume)
        elif key == "l":
            session.toggle_loop()
        elif key == "n" and event.shift:
            await session.play_next()
        elif key == "p" and event.shift:
            await session.play_previous()
        else:
            return False

        logger.debug(f"Shortcut {'Shift+' if event.shift else ''}{event.key!r}")
        return True
