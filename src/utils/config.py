"""
Configuration Management

Uses Pydantic Settings for environment-based configuration.
Loads from .env file automatically.
"""

from typing import Optional
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Claude API (Optional - playbooks fall back to templates without it)
    ANTHROPIC_API_KEY: Optional[str] = None
    CLAUDE_MODEL: str = "claude-sonnet-4-20250514"

    # Application Settings
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Scraping
    SCRAPE_TIMEOUT: float = 15.0
    SCRAPE_CACHE_HOURS: int = 24

    # Recommendations
    MAX_CANDIDATES: int = 50
    ITEMS_PER_BUCKET: int = 3

    # Watchlist monitoring
    WATCHLIST_BATCH_SIZE: int = 50
    WATCHLIST_RECHECK_HOURS: int = 6

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields in .env file
        case_sensitive = False  # Allow both UPPERCASE and lowercase


@lru_cache
def get_settings() -> Settings:
    """Get or create cached settings instance."""
    return Settings()
