"""Configuration settings for the training-load analytics engine."""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# __file__ = src/training_engine/config.py
PROJECT_ROOT = Path(__file__).parent.parent.parent


class Settings(BaseSettings):
    """Engine defaults loaded from environment variables.

    Every value can be overridden with a ``TRAINING_ENGINE_`` prefixed
    environment variable, e.g. ``TRAINING_ENGINE_FTP=250``.
    """

    model_config = SettingsConfigDict(
        env_prefix="TRAINING_ENGINE_",
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Athlete physiology
    resting_heart_rate: int = 60
    max_heart_rate: int = 190
    ftp: int = 200
    gender: Literal["male", "female"] = "male"

    # Impulse-response model
    ctl_time_constant: float = Field(default=42, gt=0)
    atl_time_constant: float = Field(default=7, gt=0)
    initial_ctl: float = 0.0
    initial_atl: float = 0.0

    # Power estimation heuristics (used when no stream is available)
    short_duration_exponent: float = 0.1
    partial_duration_boost: float = 0.1
    partial_duration_cap: float = 1.15

    # Stream store
    stream_store_url: Optional[str] = None
    stream_store_token: Optional[str] = None
    stream_fetch_timeout: float = 30.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
