#!/usr/bin/env python3
"""Seed the database with a free and a premium podcast for local testing."""

import os
import sys
sys.path.insert(0, '.')

from dotenv import load_dotenv
load_dotenv()

from podstream.config import settings
from podstream.db import DatabaseManager, now_ms
from podstream.services.auth import register_user, issue_token

DAY_MS = 24 * 3600 * 1000

PODCASTS = [
    {
        "title": "Open Frequencies",
        "author": "Community Radio",
        "is_premium": False,
        "episodes": [("Pilot", "open-frequencies-1.mp3", 600), ("Second Wind", "open-frequencies-2.mp3", 900)],
    },
    {
        "title": "The Deep Archive",
        "author": "Podstream Originals",
        "is_premium": True,
        "episodes": [("Vault Tapes", "deep-archive-1.mp3", 1800), ("Lost Reels", "deep-archive-2.mp3", 2400)],
    },
]


def main():
    print(f"Seeding {settings.database_path} ...")
    db = DatabaseManager()
    os.makedirs(settings.audio_dir, exist_ok=True)

    existing = {p["title"] for p in db.get_podcasts()}
    for spec in PODCASTS:
        if spec["title"] in existing:
            print(f"⏭️  {spec['title']} already seeded")
            continue
        podcast = db.create_podcast(spec["title"], is_premium=spec["is_premium"], author=spec["author"])
        for number, (title, filename, duration) in enumerate(spec["episodes"], 1):
            db.create_episode(podcast["id"], title, f"/audio/{filename}", duration=duration, episode_number=number)
            path = os.path.join(settings.audio_dir, filename)
            if not os.path.exists(path):
                # Placeholder bytes so the endpoint has something to serve
                with open(path, "wb") as f:
                    f.write(b"ID3" + b"\x00" * 1024)
        print(f"✅ {podcast['title']} ({'premium' if spec['is_premium'] else 'free'}): {podcast['id']}")

    for email, status in [("free@example.com", "inactive"), ("subscriber@example.com", "active")]:
        if db.get_user_by_email(email):
            continue
        user = register_user(db, email, "password123", email.split("@")[0])
        if status == "active":
            db.upsert_subscription(
                user["id"], "active",
                current_period_start=now_ms(),
                current_period_end=now_ms() + 30 * DAY_MS,
                plan_type="monthly",
            )
        print(f"✅ {email} ({status}) token: {issue_token(db, user['id'])}")


if __name__ == "__main__":
    main()
