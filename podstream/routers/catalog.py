"""Catalog browsing endpoints - podcasts and their episodes."""

from fastapi import APIRouter, Depends, HTTPException
from typing import List, Optional

from podstream.db import DatabaseManager, get_db
from podstream.models import EpisodeOut, PodcastDetail, PodcastOut

router = APIRouter(tags=["catalog"])


@router.get("/podcasts", response_model=List[PodcastOut])
async def list_podcasts(premium: Optional[bool] = None, db: DatabaseManager = Depends(get_db)):
    """
    List podcasts, newest first.

    - **premium**: only premium (true) or only free (false) podcasts
    """
    return [PodcastOut(**p) for p in db.get_podcasts(premium)]


@router.get("/podcasts/{podcast_id}", response_model=PodcastDetail)
async def get_podcast(podcast_id: str, db: DatabaseManager = Depends(get_db)):
    """Get a podcast with its episodes."""
    podcast = db.get_podcast(podcast_id)
    if not podcast:
        raise HTTPException(status_code=404, detail=f"Podcast not found: {podcast_id}")

    episodes = [
        EpisodeOut(
            **ep,
            podcast_title=podcast["title"],
            cover_art_url=podcast["cover_art_url"],
            is_premium=podcast["is_premium"],
        )
        for ep in db.get_episodes_by_podcast(podcast_id)
    ]
    return PodcastDetail(**podcast, episodes=episodes)


@router.get("/episodes/{episode_id}", response_model=EpisodeOut)
async def get_episode(episode_id: str, db: DatabaseManager = Depends(get_db)):
    episode = db.get_episode_with_podcast(episode_id)
    if not episode:
        raise HTTPException(status_code=404, detail=f"Episode not found: {episode_id}")
    return EpisodeOut(**episode)
