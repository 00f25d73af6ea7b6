"""
SQLite store for Podstream.
Holds users, bearer tokens, subscriptions, the podcast catalog, playback
progress and play counts. All timestamps are epoch milliseconds.
"""

import sqlite3
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from podstream.config import settings


def now_ms() -> int:
    return int(time.time() * 1000)


class DatabaseManager:
    def __init__(self, db_path: Optional[str] = None):
        self.db_path = Path(db_path or settings.database_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self):
        """Initialize the database schema."""
        with self._get_connection() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    email TEXT UNIQUE NOT NULL,
                    password_hash TEXT NOT NULL,
                    name TEXT NOT NULL,
                    role TEXT NOT NULL DEFAULT 'user',
                    created_at INTEGER NOT NULL,
                    updated_at INTEGER NOT NULL
                );

                CREATE TABLE IF NOT EXISTS tokens (
                    token TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                    expires_at INTEGER NOT NULL
                );

                CREATE TABLE IF NOT EXISTS subscriptions (
                    id TEXT PRIMARY KEY,
                    user_id TEXT UNIQUE NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                    plan_type TEXT,
                    status TEXT NOT NULL,
                    current_period_start INTEGER,
                    current_period_end INTEGER,
                    cancel_at_period_end INTEGER NOT NULL DEFAULT 0,
                    created_at INTEGER NOT NULL,
                    updated_at INTEGER NOT NULL
                );

                CREATE TABLE IF NOT EXISTS podcasts (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT,
                    cover_art_url TEXT,
                    author TEXT,
                    is_premium INTEGER NOT NULL DEFAULT 0,
                    category TEXT,
                    created_at INTEGER NOT NULL
                );

                CREATE TABLE IF NOT EXISTS episodes (
                    id TEXT PRIMARY KEY,
                    podcast_id TEXT NOT NULL REFERENCES podcasts(id) ON DELETE CASCADE,
                    title TEXT NOT NULL,
                    description TEXT,
                    audio_url TEXT NOT NULL,
                    duration REAL,
                    episode_number INTEGER,
                    season_number INTEGER NOT NULL DEFAULT 1,
                    published_at INTEGER
                );

                CREATE TABLE IF NOT EXISTS playback_progress (
                    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                    episode_id TEXT NOT NULL REFERENCES episodes(id) ON DELETE CASCADE,
                    progress_seconds REAL NOT NULL,
                    completed INTEGER NOT NULL DEFAULT 0,
                    last_played_at INTEGER NOT NULL,
                    PRIMARY KEY (user_id, episode_id)
                );

                CREATE TABLE IF NOT EXISTS episode_plays (
                    id TEXT PRIMARY KEY,
                    episode_id TEXT NOT NULL,
                    user_id TEXT,
                    played_at INTEGER NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_episodes_podcast ON episodes(podcast_id);
                CREATE INDEX IF NOT EXISTS idx_episodes_audio ON episodes(audio_url);
            """)

    # ------------------------------------------------------------------
    # Users & tokens
    # ------------------------------------------------------------------

    def create_user(self, email: str, password_hash: str, name: str, role: str = "user") -> Dict[str, Any]:
        now = now_ms()
        user = {
            "id": str(uuid.uuid4()),
            "email": email,
            "password_hash": password_hash,
            "name": name,
            "role": role,
            "created_at": now,
            "updated_at": now,
        }
        with self._get_connection() as conn:
            conn.execute(
                "INSERT INTO users (id, email, password_hash, name, role, created_at, updated_at) "
                "VALUES (:id, :email, :password_hash, :name, :role, :created_at, :updated_at)",
                user,
            )
        return user

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
            return dict(row) if row else None

    def save_token(self, token: str, user_id: str, expires_at: int):
        with self._get_connection() as conn:
            conn.execute(
                "INSERT INTO tokens (token, user_id, expires_at) VALUES (?, ?, ?)",
                (token, user_id, expires_at),
            )

    def get_user_by_token(self, token: str, at: Optional[int] = None) -> Optional[Dict[str, Any]]:
        """Resolve a bearer token to its user. Expired tokens resolve to None."""
        at = now_ms() if at is None else at
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT u.* FROM tokens t JOIN users u ON u.id = t.user_id "
                "WHERE t.token = ? AND t.expires_at > ?",
                (token, at),
            ).fetchone()
            return dict(row) if row else None

    # ------------------------------------------------------------------
    # Subscriptions (lifecycle owned by billing; written here for seeding)
    # ------------------------------------------------------------------

    def upsert_subscription(
        self,
        user_id: str,
        status: str,
        current_period_end: Optional[int] = None,
        current_period_start: Optional[int] = None,
        plan_type: Optional[str] = None,
        cancel_at_period_end: bool = False,
    ) -> Dict[str, Any]:
        now = now_ms()
        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO subscriptions (
                    id, user_id, plan_type, status, current_period_start,
                    current_period_end, cancel_at_period_end, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    plan_type=excluded.plan_type,
                    status=excluded.status,
                    current_period_start=excluded.current_period_start,
                    current_period_end=excluded.current_period_end,
                    cancel_at_period_end=excluded.cancel_at_period_end,
                    updated_at=excluded.updated_at
            """, (
                str(uuid.uuid4()), user_id, plan_type, status, current_period_start,
                current_period_end, int(cancel_at_period_end), now, now,
            ))
        return self.get_subscription_by_user_id(user_id)

    def get_subscription_by_user_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM subscriptions WHERE user_id = ?", (user_id,)).fetchone()
            if not row:
                return None
            data = dict(row)
            data["cancel_at_period_end"] = bool(data["cancel_at_period_end"])
            return data

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def create_podcast(
        self,
        title: str,
        is_premium: bool = False,
        description: Optional[str] = None,
        cover_art_url: Optional[str] = None,
        author: Optional[str] = None,
        category: Optional[str] = None,
        podcast_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        podcast = {
            "id": podcast_id or str(uuid.uuid4()),
            "title": title,
            "description": description,
            "cover_art_url": cover_art_url,
            "author": author,
            "is_premium": int(is_premium),
            "category": category,
            "created_at": now_ms(),
        }
        with self._get_connection() as conn:
            conn.execute(
                "INSERT INTO podcasts (id, title, description, cover_art_url, author, is_premium, category, created_at) "
                "VALUES (:id, :title, :description, :cover_art_url, :author, :is_premium, :category, :created_at)",
                podcast,
            )
        return self._podcast_row(podcast)

    def create_episode(
        self,
        podcast_id: str,
        title: str,
        audio_url: str,
        duration: Optional[float] = None,
        description: Optional[str] = None,
        episode_number: Optional[int] = None,
        season_number: int = 1,
        published_at: Optional[int] = None,
        episode_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        episode = {
            "id": episode_id or str(uuid.uuid4()),
            "podcast_id": podcast_id,
            "title": title,
            "description": description,
            "audio_url": audio_url,
            "duration": duration,
            "episode_number": episode_number,
            "season_number": season_number,
            "published_at": published_at if published_at is not None else now_ms(),
        }
        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO episodes (
                    id, podcast_id, title, description, audio_url, duration,
                    episode_number, season_number, published_at
                ) VALUES (
                    :id, :podcast_id, :title, :description, :audio_url, :duration,
                    :episode_number, :season_number, :published_at
                )
            """, episode)
        return episode

    def get_podcasts(self, premium: Optional[bool] = None) -> List[Dict[str, Any]]:
        with self._get_connection() as conn:
            if premium is None:
                rows = conn.execute("SELECT * FROM podcasts ORDER BY created_at DESC").fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM podcasts WHERE is_premium = ? ORDER BY created_at DESC",
                    (int(premium),),
                ).fetchall()
            return [self._podcast_row(dict(row)) for row in rows]

    def get_podcast(self, podcast_id: str) -> Optional[Dict[str, Any]]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM podcasts WHERE id = ?", (podcast_id,)).fetchone()
            return self._podcast_row(dict(row)) if row else None

    def get_episodes_by_podcast(self, podcast_id: str) -> List[Dict[str, Any]]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM episodes WHERE podcast_id = ? "
                "ORDER BY season_number DESC, episode_number DESC, published_at DESC",
                (podcast_id,),
            ).fetchall()
            return [dict(row) for row in rows]

    def get_episode_with_podcast(self, episode_id: str) -> Optional[Dict[str, Any]]:
        with self._get_connection() as conn:
            row = conn.execute("""
                SELECT e.*, p.title AS podcast_title, p.cover_art_url, p.is_premium
                FROM episodes e JOIN podcasts p ON p.id = e.podcast_id
                WHERE e.id = ?
            """, (episode_id,)).fetchone()
            return self._podcast_row(dict(row)) if row else None

    def get_episode_by_audio_filename(self, filename: str) -> Optional[Dict[str, Any]]:
        """
        Resolve an audio object name to the episode that owns it.

        Episodes store either the bare object name or ``/audio/<filename>``.
        When several episodes reference the same object, a premium one wins.
        """
        with self._get_connection() as conn:
            row = conn.execute("""
                SELECT e.*, p.title AS podcast_title, p.cover_art_url, p.is_premium
                FROM episodes e JOIN podcasts p ON p.id = e.podcast_id
                WHERE e.audio_url = ? OR e.audio_url = '/audio/' || ?
                ORDER BY p.is_premium DESC, e.id
                LIMIT 1
            """, (filename, filename)).fetchone()
            return self._podcast_row(dict(row)) if row else None

    def _podcast_row(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if "is_premium" in data:
            data["is_premium"] = bool(data["is_premium"])
        return data

    # ------------------------------------------------------------------
    # Playback progress & analytics
    # ------------------------------------------------------------------

    def upsert_playback_progress(self, user_id: str, episode_id: str, progress_seconds: float, completed: bool):
        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO playback_progress (user_id, episode_id, progress_seconds, completed, last_played_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(user_id, episode_id) DO UPDATE SET
                    progress_seconds=excluded.progress_seconds,
                    completed=excluded.completed,
                    last_played_at=excluded.last_played_at
            """, (user_id, episode_id, progress_seconds, int(completed), now_ms()))

    def get_user_recent_progress(self, user_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM playback_progress WHERE user_id = ? ORDER BY last_played_at DESC LIMIT ?",
                (user_id, limit),
            ).fetchall()
            return [self._progress_row(row) for row in rows]

    def _progress_row(self, row: sqlite3.Row) -> Dict[str, Any]:
        data = dict(row)
        data["completed"] = bool(data["completed"])
        return data

    def record_episode_play(self, episode_id: str, user_id: Optional[str]):
        with self._get_connection() as conn:
            conn.execute(
                "INSERT INTO episode_plays (id, episode_id, user_id, played_at) VALUES (?, ?, ?, ?)",
                (str(uuid.uuid4()), episode_id, user_id, now_ms()),
            )

    def get_episode_play_count(self, episode_id: str) -> int:
        with self._get_connection() as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM episode_plays WHERE episode_id = ?", (episode_id,)
            ).fetchone()[0]

    def get_stats(self) -> Dict[str, int]:
        with self._get_connection() as conn:
            subscribers = conn.execute(
                "SELECT COUNT(*) FROM subscriptions WHERE status = 'active'"
            ).fetchone()[0]
            plays = conn.execute("SELECT COUNT(*) FROM episode_plays").fetchone()[0]
            podcasts = conn.execute("SELECT COUNT(*) FROM podcasts").fetchone()[0]
            premium = conn.execute("SELECT COUNT(*) FROM podcasts WHERE is_premium = 1").fetchone()[0]
            return {
                "total_subscribers": subscribers,
                "total_plays": plays,
                "total_podcasts": podcasts,
                "premium_podcasts": premium,
            }


_db: Optional[DatabaseManager] = None


def get_db() -> DatabaseManager:
    """FastAPI dependency returning the process-wide store."""
    global _db
    if _db is None:
        _db = DatabaseManager()
    return _db
