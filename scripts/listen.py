#!/usr/bin/env python3
"""Headless listening session against a running Podstream server.

Queues every episode of a podcast and plays through it (wrapping around the queue), printing the
session state as it changes. Progress is checkpointed to the server.

    python scripts/listen.py <podcast_id> --token <bearer token> [--shuffle]
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import argparse
import asyncio
import logging

import httpx

from podstream.config import settings
from podstream.player.adapter import HttpMediaAdapter, PlaybackError
from podstream.player.client import ApiClient
from podstream.player.persister import ProgressPersister
from podstream.player.preferences import PreferenceStore
from podstream.player.session import PlaybackSession
from podstream.player.state import TransportState


def format_time(seconds: float) -> str:
    """Format seconds as MM:SS."""
    total = int(seconds)
    return f"{total // 60}:{total % 60:02d}"


async def run(podcast_id: str, token: str, shuffle: bool, rate: float):
    http = httpx.AsyncClient(base_url=settings.api_base_url, timeout=settings.http_timeout_sec)
    api = ApiClient(token=token, client=http)
    session = PlaybackSession(
        HttpMediaAdapter(http, token=token),
        preferences=PreferenceStore(),
        persister=ProgressPersister(api),
    )

    last_line = None

    def show(snap):
        nonlocal last_line
        title = snap.current_episode.title if snap.current_episode else "-"
        line = f"[{snap.state.value:>7}] {title} {format_time(snap.position)}/{format_time(snap.duration)}"
        if line != last_line:
            print(line)
            last_line = line

    session.subscribe(show)
    await session.start()
    try:
        episodes = await api.get_podcast_episodes(podcast_id)
        if not episodes:
            print(f"No episodes for podcast {podcast_id}")
            return
        for episode in episodes:
            session.add_to_queue(episode)
        if shuffle:
            session.toggle_shuffle()
        if rate:
            session.set_playback_rate(rate)

        try:
            await session.play_next()
        except PlaybackError as e:
            print(f"❌ {e.category}: {e}")
            return

        while session.state is not TransportState.STOPPED:
            await asyncio.sleep(1)
    finally:
        await session.close()
        await api.aclose()


def main():
    parser = argparse.ArgumentParser(description="Play a podcast headlessly")
    parser.add_argument("podcast_id")
    parser.add_argument("--token", default=settings.api_token)
    parser.add_argument("--shuffle", action="store_true")
    parser.add_argument("--rate", type=float, default=None, help="Playback rate (default: stored preference)")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    asyncio.run(run(args.podcast_id, args.token, args.shuffle, args.rate))


if __name__ == "__main__":
    main()
