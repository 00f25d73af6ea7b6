"""Playback progress and play-count endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from typing import Any, Dict, List
import logging

from podstream.db import DatabaseManager, get_db
from podstream.models import PlayRecord, ProgressRecord, ProgressUpdate
from podstream.services.auth import require_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/playback", tags=["playback"])


def _require_episode(db: DatabaseManager, episode_id: str):
    if not db.get_episode_with_podcast(episode_id):
        raise HTTPException(status_code=404, detail=f"Episode not found: {episode_id}")


@router.post("/progress")
async def save_progress(
    body: ProgressUpdate,
    user: Dict[str, Any] = Depends(require_user),
    db: DatabaseManager = Depends(get_db),
):
    """Save or update the caller's position in an episode."""
    _require_episode(db, body.episode_id)
    db.upsert_playback_progress(user["id"], body.episode_id, body.progress_seconds, body.completed)
    logger.debug(
        f"Progress {user['id']}/{body.episode_id}: {body.progress_seconds:.1f}s"
        f"{' (completed)' if body.completed else ''}"
    )
    return {"success": True, "message": "Progress saved"}


@router.get("/progress", response_model=List[ProgressRecord])
async def recent_progress(
    limit: int = 20,
    user: Dict[str, Any] = Depends(require_user),
    db: DatabaseManager = Depends(get_db),
):
    """Get the caller's most recently played episodes."""
    return [ProgressRecord(**p) for p in db.get_user_recent_progress(user["id"], limit)]


@router.post("/plays")
async def record_play(
    body: PlayRecord,
    user: Dict[str, Any] = Depends(require_user),
    db: DatabaseManager = Depends(get_db),
):
    """Record a play of an episode for analytics."""
    _require_episode(db, body.episode_id)
    db.record_episode_play(body.episode_id, user["id"])
    return {"success": True, "plays": db.get_episode_play_count(body.episode_id)}
