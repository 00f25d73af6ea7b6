"""HTTP client for the Podstream API, used by the player core."""

import httpx
from typing import List, Optional

from podstream.config import settings
from podstream.models import Episode, EpisodeOut


class ApiClient:
    """
    Thin async wrapper over the progress, play-record and catalog endpoints.

    Errors propagate as ``httpx.HTTPError``; callers decide whether they
    matter.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.token = token if token is not None else settings.api_token
        self.http = client or httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            timeout=settings.http_timeout_sec,
        )

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    async def save_progress(self, episode_id: str, progress_seconds: float, completed: bool) -> None:
        response = await self.http.post(
            "/playback/progress",
            json={
                "episode_id": episode_id,
                "progress_seconds": max(0.0, progress_seconds),
                "completed": completed,
            },
            headers=self._headers(),
        )
        response.raise_for_status()

    async def record_play(self, episode_id: str) -> None:
        response = await self.http.post(
            "/playback/plays",
            json={"episode_id": episode_id},
            headers=self._headers(),
        )
        response.raise_for_status()

    async def get_podcast_episodes(self, podcast_id: str) -> List[Episode]:
        response = await self.http.get(f"/podcasts/{podcast_id}")
        response.raise_for_status()
        return [EpisodeOut(**ep).to_playable() for ep in response.json()["episodes"]]

    async def aclose(self) -> None:
        await self.http.aclose()
