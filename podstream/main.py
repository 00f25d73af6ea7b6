"""Podstream - FastAPI Application."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from podstream.config import settings
from podstream.routers import audio, auth, catalog, playback, subscription

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create app
app = FastAPI(
    title=settings.app_name,
    description="Premium podcast streaming - catalog, gated audio and playback progress",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router)
app.include_router(catalog.router)
app.include_router(audio.router)
app.include_router(playback.router)
app.include_router(subscription.router)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": settings.app_name,
        "version": "0.1.0",
        "description": "Premium podcast streaming",
        "docs": "/docs",
        "endpoints": {
            "auth": "/auth - Register, log in, current user",
            "podcasts": "/podcasts - Browse the catalog",
            "audio": "/audio/{filename} - Stream episode audio (premium needs a subscription)",
            "playback": "/playback - Save and list playback progress",
            "subscription": "/subscription/status - Current subscription",
        }
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8765)
