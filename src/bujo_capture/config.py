"""Application configuration and settings management."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Project-level settings loaded from environment variables/.env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    timezone: str = Field("UTC", alias="BUJO_TIMEZONE")
    log_dir: Path = Field(Path("logs"), alias="BUJO_LOG_DIR")

    default_confidence: float = Field(0.9, ge=0.0, le=1.0, alias="BUJO_DEFAULT_CONFIDENCE")

    metadata_concurrency: int = Field(4, ge=1, alias="BUJO_METADATA_CONCURRENCY")
    metadata_timeout_seconds: float = Field(5.0, gt=0, alias="BUJO_METADATA_TIMEOUT_SECONDS")

    estimated_date_window_days: int = Field(30, ge=0, alias="BUJO_ESTIMATED_DATE_WINDOW_DAYS")
    created_at_window_days: int = Field(7, ge=0, alias="BUJO_CREATED_AT_WINDOW_DAYS")
    filename_date_window_days: int = Field(365, ge=0, alias="BUJO_FILENAME_DATE_WINDOW_DAYS")

    evening_cutoff_hour: int = Field(18, ge=0, le=23, alias="BUJO_EVENING_CUTOFF_HOUR")
    morning_cutoff_hour: int = Field(10, ge=0, le=23, alias="BUJO_MORNING_CUTOFF_HOUR")
    morning_rule_first: bool = Field(False, alias="BUJO_MORNING_RULE_FIRST")


_SETTINGS: Optional[Settings] = None


def get_settings() -> Settings:
    """Return cached settings instance."""

    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings()
    return _SETTINGS


__all__ = ["Settings", "get_settings"]
