"""Configuration settings for Podstream."""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App
    app_name: str = "Podstream"
    debug: bool = False

    # Database
    database_path: str = "./podstream.db"

    # Audio object store (filenames under this directory are served by /audio)
    audio_dir: str = "./audio"
    default_audio_content_type: str = "audio/mpeg"

    # Auth
    token_ttl_days: int = 7
    admin_emails: str = ""  # Comma-separated, promoted to admin on register

    # Player client
    api_base_url: str = "http://localhost:8765"
    api_token: Optional[str] = None
    preferences_path: str = "~/.podstream/preferences.json"
    http_timeout_sec: float = 10.0

    # Playback behaviour
    default_volume: float = 0.8
    default_playback_rate: float = 1.0
    skip_seconds: float = 15.0
    previous_restart_threshold_sec: float = 3.0

    # Progress checkpointing
    progress_sample_interval_sec: float = 1.0
    progress_checkpoint_sec: int = 5  # At most one checkpoint per bucket of this size

    class Config:
        env_file = ".env"
        env_prefix = "PODSTREAM_"


settings = Settings()
