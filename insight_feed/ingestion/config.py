"""Configuration for source ingestion.

All settings can be overridden via environment variables with the
INGESTION_ prefix, e.g. INGESTION_FETCH_TIMEOUT_SECONDS=5.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class IngestionConfig(BaseSettings):
    """Settings for the fetcher and its content sources."""

    model_config = SettingsConfigDict(
        env_prefix="INGESTION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Fetcher
    fetch_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        description="Per-source timeout; a stalled fetch becomes a failure record",
    )

    # Simulated content source
    simulated_base_delay: float = Field(
        default=0.5,
        ge=0.0,
        description="Minimum simulated fetch latency in seconds",
    )
    simulated_jitter: float = Field(
        default=0.5,
        ge=0.0,
        description="Upper bound of the random latency added to the base delay",
    )
    simulated_failure_rate: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Probability that a simulated fetch fails",
    )

    # HTTP content source
    http_timeout_seconds: float = Field(default=15.0, gt=0.0)
    max_http_retries: int = Field(default=2, ge=0, le=10)
    max_backoff_seconds: float = Field(default=30.0, ge=1.0, le=300.0)
    user_agent: str = "insight-feed/0.1 (content monitor)"
    max_entries_per_feed: int = Field(default=10, ge=1)
    max_content_chars: int = Field(
        default=8000,
        ge=100,
        description="Raw content longer than this is truncated",
    )
