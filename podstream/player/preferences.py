"""
Durable per-client playback preferences (volume and playback rate).
Stored as a small JSON file; missing or unreadable files fall back to defaults.
"""
import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

from podstream.config import settings

logger = logging.getLogger(__name__)


@dataclass
class Preferences:
    volume: float = settings.default_volume
    playback_rate: float = settings.default_playback_rate


class PreferenceStore:
    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or settings.preferences_path).expanduser()

    def load(self) -> Preferences:
        prefs = Preferences(volume=settings.default_volume, playback_rate=settings.default_playback_rate)
        if not self.path.exists():
            return prefs
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable preferences at {self.path}: {e}")
            return prefs
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed preferences at {self.path}")
            return prefs

        volume = data.get("volume")
        if isinstance(volume, (int, float)) and 0.0 <= volume <= 1.0:
            prefs.volume = float(volume)
        rate = data.get("playback_rate")
        if isinstance(rate, (int, float)) and rate > 0:
            prefs.playback_rate = float(rate)
        return prefs

    def save(self, prefs: Preferences) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(asdict(prefs), indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not save preferences to {self.path}: {e}")
