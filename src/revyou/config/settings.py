"""Application settings loaded from environment variables and .env files."""

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    """Database connection settings."""

    url: str = Field(
        default="sqlite+aiosqlite:///./revyou.db",
        description="SQLAlchemy async database URL",
    )
    echo: bool = Field(default=False, description="Log every SQL statement")
    pool_pre_ping: bool = Field(default=True)
    # Pool sizing only applies to PostgreSQL, SQLite ignores it
    pool_size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=10, ge=0)
    pool_timeout: int = Field(default=30, ge=1)
    pool_recycle: int = Field(default=3600, ge=-1)


class DeezerSettings(BaseModel):
    """Deezer public API settings (no auth needed)."""

    base_url: str = "https://api.deezer.com"
    timeout: float = Field(default=10.0, gt=0)
    album_limit: int = Field(default=500, ge=1)
    album_search_limit: int = Field(default=50, ge=0)
    # Max /album/{id} detail calls in flight per discography fetch
    detail_concurrency: int = Field(default=5, ge=1)


class ITunesSettings(BaseModel):
    """iTunes Search API settings."""

    base_url: str = "https://itunes.apple.com"
    timeout: float = Field(default=10.0, gt=0)
    album_limit: int = Field(default=200, ge=1)


class ImporterSettings(BaseModel):
    """Import pipeline pacing and batch sizes."""

    artist_delay_seconds: float = Field(default=2.0, ge=0)
    playlist_delay_seconds: float = Field(default=5.0, ge=0)
    batch_lookup_delay_seconds: float = Field(default=0.5, ge=0)
    stale_after_hours: int = Field(default=24, ge=0)
    backfill_batch_size: int = Field(default=50, ge=1)
    backfill_delay_seconds: float = Field(default=1.0, ge=0)
    job_list_limit: int = Field(default=20, ge=1)
    scheduled_playlists: list[str] = Field(default_factory=list)


class ObservabilitySettings(BaseModel):
    """Logging settings."""

    log_level: str = "INFO"
    log_json_format: bool = False

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


class Settings(BaseSettings):
    """Root settings object.

    Nested groups are read from env vars with a double underscore delimiter,
    e.g. ``IMPORTER__ARTIST_DELAY_SECONDS=0`` or ``DATABASE__URL=...``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app_name: str = "revyou"
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    deezer: DeezerSettings = Field(default_factory=DeezerSettings)
    itunes: ITunesSettings = Field(default_factory=ITunesSettings)
    importer: ImporterSettings = Field(default_factory=ImporterSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @property
    def log_level(self) -> str:
        """Shortcut used by the lifespan when configuring logging."""
        return self.observability.log_level

    def _get_sqlite_db_path(self) -> Path | None:
        """Return the SQLite file path, or None for non-file databases."""
        url = self.database.url
        if not url.startswith("sqlite") or ":memory:" in url:
            return None
        _, _, path = url.partition(":///")
        return Path(path) if path else None


# Yo, cached so every Depends(get_settings) gets the same object. Tests that need
# different values build Settings(...) directly instead of calling this.
@lru_cache
def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    return Settings()
