"""Audio object store backed by a local directory."""

import mimetypes
from pathlib import Path
from typing import Optional, Tuple

from podstream.config import settings


def _audio_root() -> Path:
    return Path(settings.audio_dir).expanduser().resolve()


def resolve_object(filename: str) -> Optional[Path]:
    """
    Map an object name to a file inside the audio directory.

    Returns None for names that escape the directory or do not exist.
    """
    root = _audio_root()
    path = (root / filename).resolve()
    if root not in path.parents or not path.is_file():
        return None
    return path


def content_type_for(path: Path) -> str:
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or settings.default_audio_content_type


def open_object(filename: str) -> Optional[Tuple[Path, str]]:
    """Return ``(path, content_type)`` for a stored object, or None."""
    path = resolve_object(filename)
    if path is None:
        return None
    return path, content_type_for(path)
