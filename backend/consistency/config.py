"""
Consistency-check configuration.
Uses the LW_CONSISTENCY_ prefix; credentials and the database come from shared.config.
"""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConsistencySettings(BaseSettings):
    """Pagination, sampling and retry limits for reconciliation runs."""

    model_config = SettingsConfigDict(
        env_prefix="LW_CONSISTENCY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    page_size: int = Field(default=100, description="Match ids requested per page")
    max_pages: int = Field(default=80, description="Hard cap on listing pages per run")
    sample_size: int = Field(default=20, description="Ids kept in extra/missing samples")

    fetch_timeout_s: float = Field(default=10.0, description="HTTP timeout per attempt")
    max_retries: int = Field(default=3, description="Retries after the first attempt")
    retry_delay_s: float = Field(default=1.0, description="Fixed delay between attempts")

    reference_timeout_s: float = Field(default=0.8, description="Bound on a reference-data refresh")


def get_consistency_settings() -> ConsistencySettings:
    return ConsistencySettings()
