"""
PivotFlow Configuration Management

Uses Pydantic Settings for type-safe configuration from environment variables.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # =========================================================================
    # APPLICATION
    # =========================================================================
    APP_NAME: str = "PivotFlow"
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "info"
    VERSION: str = "0.1.0"

    # =========================================================================
    # API SERVER
    # =========================================================================
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_WORKERS: int = 1
    CORS_ORIGINS: str = "http://localhost:3000"

    # =========================================================================
    # ALLOCATIONS
    # =========================================================================
    # Nominal working hours in a week; planned hours = percent / 100 * this.
    NOMINAL_WEEK_HOURS: float = 40.0
    # A user's summed allocation over an overlap may not exceed this.
    MAX_ALLOCATION_PERCENT: float = 100.0
    CAPACITY_DEFAULT_WEEKS: int = 8
    CAPACITY_MAX_WEEKS: int = 52
    # "overlap": any allocation intersecting the window counts.
    # "boundary": only allocations whose start or end lies in the window.
    CAPACITY_WINDOW_RULE: Literal["overlap", "boundary"] = "overlap"
    # Report the exact intersection in conflict reports instead of the
    # requested window.
    CONFLICT_PRECISE_OVERLAP: bool = False
    ALLOCATIONS_PAGE_SIZE: int = 20
    ALLOCATIONS_MAX_PAGE_SIZE: int = 100

    # =========================================================================
    # OBSERVABILITY
    # =========================================================================
    METRICS_ENABLED: bool = True

    # =========================================================================
    # DATABASE
    # =========================================================================
    # Create tables from the models on startup (development only).
    DB_CREATE_SCHEMA: bool = False

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Singleton instance for easy import
settings = get_settings()
