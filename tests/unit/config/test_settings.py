"""Tests for environment driven settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from revyou.config import ImporterSettings, Settings


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """No .env file from the working directory leaks into these tests."""
    monkeypatch.chdir(tmp_path)


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings()

        assert settings.database.url.startswith("sqlite+aiosqlite:///")
        assert settings.deezer.base_url == "https://api.deezer.com"
        assert settings.itunes.base_url == "https://itunes.apple.com"
        assert settings.importer.artist_delay_seconds == 2.0
        assert settings.importer.playlist_delay_seconds == 5.0
        assert settings.importer.stale_after_hours == 24
        assert settings.importer.scheduled_playlists == []

    def test_nested_env_vars(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("IMPORTER__ARTIST_DELAY_SECONDS", "0")
        monkeypatch.setenv("DEEZER__DETAIL_CONCURRENCY", "2")
        monkeypatch.setenv("OBSERVABILITY__LOG_LEVEL", "debug")
        monkeypatch.setenv(
            "IMPORTER__SCHEDULED_PLAYLISTS", '["https://example.com/p/1", "https://example.com/p/2"]'
        )

        settings = Settings()

        assert settings.importer.artist_delay_seconds == 0
        assert settings.deezer.detail_concurrency == 2
        assert settings.log_level == "DEBUG"
        assert settings.importer.scheduled_playlists == [
            "https://example.com/p/1",
            "https://example.com/p/2",
        ]

    def test_env_file_is_read(self, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("DATABASE__URL=sqlite+aiosqlite:///./from-env-file.db\n")

        assert Settings().database.url == "sqlite+aiosqlite:///./from-env-file.db"

    def test_negative_delay_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ImporterSettings(artist_delay_seconds=-1)


class TestSqlitePath:
    def test_file_url(self) -> None:
        settings = Settings(database={"url": "sqlite+aiosqlite:///data/revyou.db"})

        assert settings._get_sqlite_db_path() == Path("data/revyou.db")

    @pytest.mark.parametrize(
        "url",
        ["sqlite+aiosqlite:///:memory:", "postgresql+asyncpg://user:pw@localhost/revyou"],
    )
    def test_non_file_urls(self, url: str) -> None:
        settings = Settings(database={"url": url})

        assert settings._get_sqlite_db_path() is None
