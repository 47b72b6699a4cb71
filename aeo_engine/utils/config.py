"""
Configuration Management

Uses Pydantic Settings for environment-based configuration.
Loads from .env file automatically.

All provider credentials are optional: a provider without credentials reports
itself unavailable and the engine skips it instead of failing.
"""

from typing import Optional
from functools import lru_cache
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Claude API (business profiling, AI competitor suggestions)
    ANTHROPIC_API_KEY: Optional[str] = None
    CLAUDE_MODEL: str = "claude-sonnet-4-20250514"

    # Firecrawl (JS-rendered scraping)
    FIRECRAWL_API_KEY: Optional[str] = None
    FIRECRAWL_ENABLED: bool = True

    # DataForSEO (organic competitors, SERP, keyword gap)
    DATAFORSEO_LOGIN: Optional[str] = None
    DATAFORSEO_PASSWORD: Optional[str] = None
    DATAFORSEO_LOCATION_CODE: int = 2840
    DATAFORSEO_LANGUAGE_CODE: str = "en"

    # Google PageSpeed Insights (Lighthouse audits)
    PAGESPEED_API_KEY: Optional[str] = None
    PAGESPEED_ENABLED: bool = True

    # Application Settings
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Competitor resolution
    MAX_COMPETITORS: int = 5
    VALIDATION_CONCURRENCY: int = 3

    # Timeouts (seconds)
    VALIDATION_TIMEOUT: float = 5.0
    FETCH_TIMEOUT: float = 15.0
    AI_TIMEOUT: float = 60.0
    API_TIMEOUT: float = 30.0
    PAGESPEED_TIMEOUT: float = 60.0

    # Run state
    RUN_MAX_AGE_SECONDS: int = 3600
    STORAGE_PATH: Optional[str] = None

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("MAX_COMPETITORS", "VALIDATION_CONCURRENCY")
    @classmethod
    def at_least_one(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields in .env file
        case_sensitive = False  # Allow both UPPERCASE and lowercase


@lru_cache
def get_settings() -> Settings:
    """Get or create cached settings instance."""
    return Settings()
