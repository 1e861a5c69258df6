"""
Application configuration using Pydantic Settings.

Centralizes all configuration loaded from environment variables with type validation.
The Last.fm API key is optional at load time; its absence is reported when a
fetch is requested (see ``require_api_key``).
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

from scrobble_guessr.errors import ValidationError

logger = logging.getLogger(__name__)

# Project root directory (parent of scrobble_guessr/)
BASE_DIR = Path(__file__).resolve().parents[1]

LASTFM_API_URL = "https://ws.audioscrobbler.com/2.0/"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Last.fm
    lastfm_api_key: str | None = Field(
        None,
        validation_alias=AliasChoices(
            "LASTFM_API_KEY", "NEXT_PUBLIC_LASTFM_API_KEY", "lastfm_api_key"
        ),
        description="Last.fm API key used for every request",
    )
    lastfm_api_url: str = Field(
        LASTFM_API_URL,
        validation_alias=AliasChoices("LASTFM_API_URL", "lastfm_api_url"),
        description="Base endpoint of the Last.fm web service",
    )

    # Fetching
    request_timeout: float = Field(
        10.0,
        validation_alias=AliasChoices("REQUEST_TIMEOUT", "request_timeout"),
        description="Per-request HTTP timeout in seconds",
    )
    max_retries: int = Field(
        2,
        ge=0,
        validation_alias=AliasChoices("MAX_RETRIES", "max_retries"),
        description="Additional attempts after a 429 or 5xx response",
    )
    backoff_base: float = Field(
        0.5,
        ge=0,
        validation_alias=AliasChoices("BACKOFF_BASE", "backoff_base"),
        description="Linear backoff step in seconds (delay = base * attempt)",
    )
    concurrency: int = Field(
        4,
        ge=1,
        validation_alias=AliasChoices("CONCURRENCY", "concurrency"),
        description="Maximum number of Last.fm requests in flight",
    )
    top_limit: int = Field(
        10,
        ge=1,
        validation_alias=AliasChoices("TOP_LIMIT", "top_limit"),
        description="Entries fetched per quiz slice",
    )
    rank_list_limit: int = Field(
        1000,
        ge=1,
        validation_alias=AliasChoices("RANK_LIST_LIMIT", "rank_list_limit"),
        description="Entries scanned when resolving rolling-window counts",
    )

    # Quiz
    max_subjects: int = Field(
        10,
        ge=1,
        validation_alias=AliasChoices("MAX_SUBJECTS", "max_subjects"),
        description="Maximum usernames per quiz session",
    )
    question_count: int = Field(
        10,
        ge=1,
        validation_alias=AliasChoices("QUESTION_COUNT", "question_count"),
        description="Questions generated per round",
    )
    shuffle_choices: bool = Field(
        False,
        validation_alias=AliasChoices("SHUFFLE_CHOICES", "shuffle_choices"),
        description="Shuffle answer choices instead of keeping input order",
    )

    model_config = {
        "env_file": BASE_DIR / ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns a singleton Settings instance. The settings are loaded once
    and cached for subsequent calls.
    """
    settings = Settings()
    logger.info(
        "Settings loaded: api_url=%s concurrency=%d api_key=%s",
        settings.lastfm_api_url,
        settings.concurrency,
        "set" if settings.lastfm_api_key else "missing",
    )
    return settings


def require_api_key(settings: Settings) -> str:
    """Return the configured API key or raise ``ValidationError``."""
    key = (settings.lastfm_api_key or "").strip()
    if not key:
        raise ValidationError(
            "Missing LASTFM_API_KEY. Add it to the environment or the .env file."
        )
    return key
