"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SAKEREC_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "sakerec"
    app_env: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    cache_key_prefix: str = "sakerec"

    # Preference analysis
    preference_half_life_days: float = 30.0
    preference_max_items: int = 50
    min_favorites_for_recommendations: int = 3

    # Caching
    recommendation_cache_ttl_hours: float = 12.0
    catalog_cache_ttl_minutes: float = 30.0

    # Composition
    default_recommendation_count: int = 20
    menu_default_count: int = 10

    @field_validator(
        "preference_half_life_days",
        "recommendation_cache_ttl_hours",
        "catalog_cache_ttl_minutes",
    )
    @classmethod
    def validate_positive_duration(cls, v: float) -> float:
        """Durations must be strictly positive."""
        if v <= 0:
            raise ValueError(f"Duration must be positive, got {v}")
        return v

    @field_validator(
        "preference_max_items",
        "min_favorites_for_recommendations",
        "default_recommendation_count",
        "menu_default_count",
    )
    @classmethod
    def validate_positive_count(cls, v: int) -> int:
        """Counts must be at least 1."""
        if v < 1:
            raise ValueError(f"Count must be at least 1, got {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate the log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
