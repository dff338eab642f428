"""Application configuration models."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="MediaShelf", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    omdb_api_key: str | None = Field(default=None, alias="OMDB_API_KEY")
    google_books_api_key: str | None = Field(
        default=None, alias="GOOGLE_BOOKS_API_KEY"
    )
    podcast_index_api_key: str | None = Field(
        default=None, alias="PODCAST_INDEX_API_KEY"
    )
    podcast_index_api_secret: str | None = Field(
        default=None, alias="PODCAST_INDEX_API_SECRET"
    )
    nyt_api_key: str | None = Field(default=None, alias="NYT_API_KEY")

    openrouter_api_key: str | None = Field(
        default=None, alias="OPENROUTER_API_KEY"
    )
    openrouter_model: str = Field(
        default="google/gemini-2.5-flash-lite", alias="OPENROUTER_MODEL"
    )

    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )
    omdb_api_url: HttpUrl = Field(
        default="https://www.omdbapi.com", alias="OMDB_API_URL"
    )
    google_books_api_url: HttpUrl = Field(
        default="https://www.googleapis.com/books/v1", alias="GOOGLE_BOOKS_API_URL"
    )
    open_library_url: HttpUrl = Field(
        default="https://openlibrary.org", alias="OPEN_LIBRARY_URL"
    )
    itunes_api_url: HttpUrl = Field(
        default="https://itunes.apple.com", alias="ITUNES_API_URL"
    )
    podcast_index_api_url: HttpUrl = Field(
        default="https://api.podcastindex.org/api/1.0", alias="PODCAST_INDEX_API_URL"
    )
    nyt_api_url: HttpUrl = Field(
        default="https://api.nytimes.com/svc/search/v2", alias="NYT_API_URL"
    )
    openrouter_api_url: HttpUrl = Field(
        default="https://openrouter.ai/api/v1", alias="OPENROUTER_API_URL"
    )

    provider_request_interval_ms: int = Field(
        default=200, alias="PROVIDER_REQUEST_INTERVAL_MS", ge=0, le=10_000
    )
    provider_timeout_seconds: float = Field(
        default=15.0, alias="PROVIDER_TIMEOUT", gt=0, le=120
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./mediashelf.db", alias="DATABASE_URL"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> str:
        """Accept level names in any case and reject unknown ones."""

        if value is None or value == "":
            return "INFO"
        level = str(value).strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value}")
        return level

    @staticmethod
    def api_base(url: HttpUrl) -> str:
        """Return a configured API URL without its trailing slash."""

        return str(url).rstrip("/")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
