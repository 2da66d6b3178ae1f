"""Centralized settings management for the place visibility engine."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from placefilter.configs.config import Config
from placefilter.filtering.visibility import (
    RESTAURANT_ROOT_CATEGORIES as DEFAULT_RESTAURANT_ROOTS,
    VisibilityStrategy,
)


class Settings(BaseSettings):
    """
    Application settings powered by pydantic-settings.

    Loads configuration from environment variables (prefixed ``PLACEFILTER_``)
    and an optional .env file in the working directory. These are process
    settings fixed at startup; values that change at runtime (hide-list,
    restaurant distance) come from the remote config store.
    """

    # -------------------------------------------------------------------------
    # ENVIRONMENT
    # -------------------------------------------------------------------------
    ENV: str = "development"
    DEBUG: bool = False

    # -------------------------------------------------------------------------
    # LOGGING
    # -------------------------------------------------------------------------
    LOG_LEVEL: str = "INFO"
    JSON_LOGS: bool = False

    # -------------------------------------------------------------------------
    # PATHS
    # -------------------------------------------------------------------------
    TAXONOMY_DATA_PATH: Path = Config.TAXONOMY_DATA_PATH
    REMOTE_DEFAULTS_PATH: Path = Config.REMOTE_DEFAULTS_PATH

    # -------------------------------------------------------------------------
    # TAXONOMY & POLICY
    # -------------------------------------------------------------------------
    # Yelp's hierarchy is three levels deep (root -> mid -> leaf)
    MAX_HIERARCHY_DEPTH: int = Field(default=3, ge=1)
    RESTAURANT_ROOT_CATEGORIES: List[str] = list(DEFAULT_RESTAURANT_ROOTS)
    VISIBILITY_STRATEGY: VisibilityStrategy = VisibilityStrategy.HIDE_LIST

    # -------------------------------------------------------------------------
    # CONFIGURATION
    # -------------------------------------------------------------------------
    model_config = SettingsConfigDict(
        env_prefix="PLACEFILTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("VISIBILITY_STRATEGY", mode="before")
    @classmethod
    def _normalize_strategy(cls, value):
        # env values are matched case-insensitively
        if isinstance(value, str):
            return value.strip().lower()
        return value


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns
    -------
    Settings
        The singleton settings instance.
    """
    return Settings()
