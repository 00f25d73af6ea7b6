"""
Tests for the local seed script.
"""
import seed_test_data
from podstream.config import settings
from podstream.db import DatabaseManager


class TestSeed:
    def test_seeding_twice_does_not_duplicate(self, temp_dir, audio_dir, monkeypatch):
        db_path = str(temp_dir / "seed.db")
        monkeypatch.setattr(settings, "database_path", db_path)

        seed_test_data.main()
        seed_test_data.main()

        db = DatabaseManager(db_path)
        podcasts = db.get_podcasts()
        assert sorted(p["title"] for p in podcasts) == ["Open Frequencies", "The Deep Archive"]
        for podcast in podcasts:
            assert len(db.get_episodes_by_podcast(podcast["id"])) == 2
        assert (audio_dir / "deep-archive-1.mp3").exists()
