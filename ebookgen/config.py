"""
Application configuration management using Pydantic Settings.

This module provides a type-safe, centralized configuration system
that loads from environment variables with sensible defaults.
"""

from typing import List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    """
    Application configuration loaded from environment variables.

    All settings can be overridden via .env file or environment variables.
    Timing settings for the worker pool are in milliseconds, matching the
    environment variables used by existing deployments.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ===== Required =====
    REDIS_URL: str | None = Field(
        default=None,
        validation_alias=AliasChoices("REDIS_URL", "REDIS_PUBLIC_URL"),
        description="Redis connection URL (redis:// or rediss://). REDIS_PUBLIC_URL is accepted as an alias."
    )

    ANTHROPIC_API_KEY: str | None = Field(
        default=None,
        description="Anthropic API key for page content generation"
    )

    # ===== Worker Pool =====
    CONCURRENT_WORKERS: int = Field(
        default=3,
        ge=1,
        le=64,
        description="Number of independent polling workers"
    )

    PROCESSING_DELAY: int = Field(
        default=1000,
        ge=0,
        description="Delay (ms) after each resolved job, to avoid overwhelming the generation service"
    )

    GENERATION_TIMEOUT: int = Field(
        default=60000,
        ge=1000,
        description="Hard wall-clock timeout (ms) for a single generation call"
    )

    POLL_INTERVAL: int = Field(
        default=2000,
        ge=100,
        description="Sleep (ms) between polls when the queue is empty"
    )

    MAX_RETRIES: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Maximum retries for a page after a transient generation failure"
    )

    STATS_INTERVAL: int = Field(
        default=30,
        ge=1,
        description="Seconds between pool statistics log lines"
    )

    # ===== LLM Configuration =====
    MODEL_NAME: str = Field(
        default="claude-sonnet-4-5-20250929",
        description="Claude model used to write page content"
    )

    TEMPERATURE: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="LLM temperature for page prose"
    )

    TARGET_LANGUAGE: str = Field(
        default="Brazilian Portuguese",
        description="Language the page content is written in"
    )

    # ===== Application Settings =====
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    # ===== Computed Properties =====

    @property
    def processing_delay_seconds(self) -> float:
        return self.PROCESSING_DELAY / 1000

    @property
    def generation_timeout_seconds(self) -> float:
        return self.GENERATION_TIMEOUT / 1000

    @property
    def poll_interval_seconds(self) -> float:
        return self.POLL_INTERVAL / 1000

    @property
    def missing_required_settings(self) -> List[str]:
        """Names of required settings that are not configured."""
        missing = []
        if not self.REDIS_URL:
            missing.append("REDIS_URL")
        if not self.ANTHROPIC_API_KEY:
            missing.append("ANTHROPIC_API_KEY")
        return missing

    @property
    def worker_settings(self) -> dict:
        """Worker pool settings, for the startup banner."""
        return {
            "CONCURRENT_WORKERS": self.CONCURRENT_WORKERS,
            "PROCESSING_DELAY": self.PROCESSING_DELAY,
            "GENERATION_TIMEOUT": self.GENERATION_TIMEOUT,
            "POLL_INTERVAL": self.POLL_INTERVAL,
            "MAX_RETRIES": self.MAX_RETRIES,
        }


# Global configuration instance
# Import this in other modules: from ebookgen.config import config
config = AppConfig()


if __name__ == "__main__":
    print("Configuration loaded successfully!")
    print(f"Model: {config.MODEL_NAME}")
    print(f"Worker pool: {config.worker_settings}")
    print(f"Redis: {'✓' if config.REDIS_URL else '✗'}")
    print(f"Anthropic: {'✓' if config.ANTHROPIC_API_KEY else '✗'}")
