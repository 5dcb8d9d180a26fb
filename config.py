"""
Configuration settings for the study planner.

Uses Pydantic Settings for environment variable management with .env file support.
Engine functions never read these settings directly; the CLI resolves them and
passes the values in as explicit parameters.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="STUDY_PLANNER_",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # FSRS Settings (for spaced repetition)
    # ========================================
    fsrs_target_retention: float = Field(
        default=0.85,
        ge=0.5,
        le=0.99,
        description="Target retrievability when scheduling the next review",
    )
    fsrs_max_interval: int = Field(
        default=180,
        ge=1,
        description="Maximum stability / interval in days",
    )
    fsrs_max_reviews_per_day: int = Field(
        default=8,
        ge=1,
        description="Cap on topics surfaced by the daily review queue",
    )

    # ========================================
    # Monte Carlo Exam Simulation
    # ========================================
    simulation_iterations: int = Field(
        default=1000,
        ge=1,
        description="Number of simulated exam draws",
    )
    simulation_seed: int | None = Field(
        default=None,
        description="Seed for reproducible simulations (None = nondeterministic)",
    )
    simulation_workers: int = Field(
        default=1,
        ge=1,
        description="Worker threads used to run simulation trials",
    )
    default_topics_on_exam: int = Field(
        default=3,
        ge=1,
        description="Topics drawn per exam when the exam format does not say",
    )

    # ========================================
    # Daily Plan
    # ========================================
    plan_min_normal_minutes: int = Field(
        default=15,
        ge=0,
        description="New-material pass only runs while more than this many minutes remain",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
