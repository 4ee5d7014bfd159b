import logging
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class AppSettings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    # Storage Configuration
    data_file: Path = Field(
        Path("championship_data.json"),
        description="JSON document holding the whole ledger.",
    )
    save_attempts: int = Field(
        3,
        ge=1,
        description="Total attempts for a save before giving up (1 = no retry).",
    )
    save_retry_max_wait: float = Field(
        2.0,
        ge=0,
        description="Upper bound in seconds for the backoff between save attempts.",
    )

    # Display Configuration
    recent_matches_limit: int = Field(
        10, ge=1, description="How many matches the recent matches view shows."
    )

    # Logging Configuration
    log_level: str = Field(
        "INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."
    )
    log_file: Optional[Path] = Field(
        None, description="Optional path for a rotating log file."
    )

    # Pydantic Settings Configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )


def load_settings(**overrides) -> AppSettings:
    """Loads and validates application settings."""
    try:
        settings = AppSettings(**overrides)
    except Exception as e:
        logging.exception(f"Error loading application settings: {e}")
        raise SystemExit("Failed to load application settings. Exiting.")

    log_level_upper = settings.log_level.upper()
    # Validate log_level even if loaded from .env
    if log_level_upper not in VALID_LOG_LEVELS:
        logging.warning(
            f"Invalid LOG_LEVEL '{settings.log_level}' found in .env or default. Using INFO."
        )
        settings.log_level = "INFO"
    else:
        settings.log_level = log_level_upper
    return settings


settings: AppSettings = load_settings()
