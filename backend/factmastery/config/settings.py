"""
Application Configuration

This module provides type-safe configuration loading using Pydantic settings.
Environment variables are loaded from .env file and validated.

Operational tunables (connection pools, Redis queue names) live in
config/default.yaml at the repository root; progression and goal tunables
live here so they can be overridden per environment.

Usage:
    from factmastery.config import settings

    # Access settings
    db_url = settings.POSTGRES_URL
    cap = settings.GOAL_CAP_FLUENCY
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

from factmastery.enums.api import RateLimitType


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Fact Mastery"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # PostgreSQL
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "factmastery"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "factmastery"

    @property
    def POSTGRES_URL(self) -> str:
        """Async PostgreSQL connection URL."""
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # Fact progression
    DEFAULT_GRADE: int = 12
    QUALIFYING_DAY_MIN_ATTEMPTS: int = 3
    DIRECT_FLUENCY_PROMOTION_CORRECT: int = 6
    ACCURACY_STREAK_REQUIRED: int = 2
    GOAL_CREDIT_MIN_CORRECT: int = 3
    RETENTION_PASS_ACCURACY: float = 0.9
    MISSING_RESPONSE_TIME_SEC: float = 6.0
    # A brand-new fact answered correctly once jumps straight to fluency6Practice.
    # Pending product review; flip off to keep new facts in notStarted.
    FAST_TRACK_FIRST_CORRECT_ATTEMPT: bool = True
    FACT_WRITE_MAX_RETRIES: int = 3

    # Daily goals
    GOAL_CAP_LEARNING: int = 4
    GOAL_CAP_ACCURACY: int = 4
    GOAL_CAP_FLUENCY: int = 8
    ASSESSMENT_QUESTION_CAPACITY: int = 60
    GOALS_SUMMARY_DEFAULT_DAYS: int = 8
    GOALS_SUMMARY_MAX_DAYS: int = 60

    # Placement-phase recalculation
    GOAL_RECALC_INTERVAL_SEC: float = 3.0
    GOAL_RECALC_MAX_CHECKS: int = 20

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "100/minute"
    RATE_LIMIT_ATTEMPTS: str = "120/minute"
    RATE_LIMIT_GOALS: str = "60/minute"

    def get_rate_limit(self, rate_limit_type: RateLimitType) -> str:
        """Return the configured limit string for an endpoint category."""
        limits = {
            RateLimitType.DEFAULT: self.RATE_LIMIT_DEFAULT,
            RateLimitType.ATTEMPTS: self.RATE_LIMIT_ATTEMPTS,
            RateLimitType.GOALS: self.RATE_LIMIT_GOALS,
        }
        return limits.get(rate_limit_type, self.RATE_LIMIT_DEFAULT)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()


@lru_cache()
def load_yaml_config() -> dict[str, Any]:
    """Load application configuration from config/default.yaml."""
    config_path = Path(__file__).parent.parent.parent.parent / "config" / "default.yaml"

    if not config_path.exists():
        return {}

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


yaml_config: dict[str, Any] = load_yaml_config()
