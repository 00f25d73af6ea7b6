"""Audio byte-serving endpoint, guarded by the access gate."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from typing import Optional
import logging

from podstream.db import DatabaseManager, get_db
from podstream.services import storage
from podstream.services.access_gate import AccessDecision, AccessGate
from podstream.services.auth import get_bearer_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/audio", tags=["audio"])

DENIAL_STATUS = {
    AccessDecision.NOT_FOUND: (404, "Audio file not found"),
    AccessDecision.AUTH_REQUIRED: (401, "Authentication required"),
    AccessDecision.SUBSCRIPTION_REQUIRED: (403, "Active subscription required"),
}


def get_access_gate(db: DatabaseManager = Depends(get_db)) -> AccessGate:
    return AccessGate(db)


@router.api_route("/{filename}", methods=["GET", "HEAD"])
async def get_audio(
    filename: str,
    token: Optional[str] = Depends(get_bearer_token),
    gate: AccessGate = Depends(get_access_gate),
):
    """
    Stream an audio object.

    - **404**: the object does not belong to any episode
    - **401**: premium content requested without a valid token
    - **403**: premium content requested without an active subscription
    """
    decision, episode = gate.authorize(filename, token)
    if not decision.allowed:
        status, detail = DENIAL_STATUS[decision]
        raise HTTPException(status_code=status, detail=detail)

    stored = storage.open_object(filename)
    if stored is None:
        logger.error(f"Episode references missing audio object: {filename}")
        raise HTTPException(status_code=404, detail="Audio file not found")
    path, content_type = stored

    headers = {
        "Accept-Ranges": "bytes",
        # Premium audio is never cached outside the client
        "Cache-Control": "private, no-store" if episode["is_premium"] else "public, max-age=31536000",
    }
    if episode.get("duration"):
        headers["X-Audio-Duration"] = str(episode["duration"])

    return FileResponse(path, media_type=content_type, headers=headers)
