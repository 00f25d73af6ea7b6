"""Data models for Podstream - API payloads and playable episodes."""

from typing import Optional, List, Literal
from pydantic import BaseModel, ConfigDict, Field


SubscriptionStatus = Literal["active", "inactive", "cancelled", "past_due"]


class Episode(BaseModel):
    """A playable unit loaded into a playback session."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    audio_url: str
    duration: Optional[float] = None
    podcast_title: Optional[str] = None
    cover_art: Optional[str] = None


class Subscription(BaseModel):
    """Subscription record as owned by the billing collaborator."""
    id: str
    user_id: str
    status: SubscriptionStatus
    plan_type: Optional[Literal["monthly", "yearly"]] = None
    current_period_start: Optional[int] = None  # epoch millis
    current_period_end: Optional[int] = None  # epoch millis
    cancel_at_period_end: bool = False


class User(BaseModel):
    """Public view of a user (never carries the password hash)."""
    id: str
    email: str
    name: str
    role: Literal["user", "admin"] = "user"


class RegisterRequest(BaseModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=8)
    name: str = Field(min_length=1)


class LoginRequest(BaseModel):
    email: str
    password: str


class AuthResponse(BaseModel):
    user: User
    token: str


class PodcastOut(BaseModel):
    """A podcast in the catalog."""
    id: str
    title: str
    description: Optional[str] = None
    cover_art_url: Optional[str] = None
    author: Optional[str] = None
    is_premium: bool = False
    category: Optional[str] = None


class EpisodeOut(BaseModel):
    """An episode as listed by the catalog endpoints."""
    id: str
    podcast_id: str
    title: str
    description: Optional[str] = None
    audio_url: str
    duration: Optional[float] = None
    episode_number: Optional[int] = None
    season_number: int = 1
    published_at: Optional[int] = None
    podcast_title: Optional[str] = None
    cover_art_url: Optional[str] = None
    is_premium: bool = False

    def to_playable(self) -> Episode:
        """Convert to the immutable episode a playback session consumes."""
        return Episode(
            id=self.id,
            title=self.title,
            audio_url=self.audio_url,
            duration=self.duration,
            podcast_title=self.podcast_title,
            cover_art=self.cover_art_url,
        )


class PodcastDetail(PodcastOut):
    episodes: List[EpisodeOut] = []


class ProgressUpdate(BaseModel):
    """Body of a progress save."""
    episode_id: str
    progress_seconds: float = Field(ge=0)
    completed: bool = False


class ProgressRecord(BaseModel):
    episode_id: str
    progress_seconds: float
    completed: bool
    last_played_at: int


class PlayRecord(BaseModel):
    """Body of a play-count increment."""
    episode_id: str


class SubscriptionStatusOut(BaseModel):
    subscription: Optional[Subscription] = None
    has_access: bool


class AnalyticsOut(BaseModel):
    total_subscribers: int
    total_plays: int
    total_podcasts: int
    premium_podcasts: int
