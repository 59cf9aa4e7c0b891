"""Configuration for AI enrichment.

Settings can be overridden via ENRICHMENT_* environment variables.

Example:
    ENRICHMENT_PROVIDER=anthropic
    ENRICHMENT_ANTHROPIC_API_KEY=sk-ant-...
    ENRICHMENT_MALFORMED_RETRIES=1
"""

from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnrichmentConfig(BaseSettings):
    """Settings for the enricher and its analysis clients."""

    model_config = SettingsConfigDict(
        env_prefix="ENRICHMENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    provider: Literal["openai", "anthropic", "mock"] = Field(
        default="openai",
        description="Which analysis client to use",
    )

    # API keys
    openai_api_key: SecretStr | None = None
    anthropic_api_key: SecretStr | None = None

    # Model selection
    openai_model: str = "gpt-4o-mini"
    anthropic_model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = Field(default=1024, ge=64, le=8192)

    llm_timeout: float = Field(
        default=30.0,
        ge=1.0,
        le=120.0,
        description="Timeout in seconds for analysis API calls",
    )

    # Circuit breaker
    circuit_failure_threshold: int = Field(default=5, ge=1)
    circuit_recovery_timeout: float = Field(default=60.0, ge=1.0)

    # Enricher behavior
    max_content_chars: int = Field(
        default=6000,
        ge=100,
        description="Content longer than this is truncated before analysis",
    )
    malformed_retries: int = Field(
        default=0,
        ge=0,
        le=3,
        description="Extra attempts when the client returns a malformed payload",
    )

    # Mock client
    mock_malformed_markers: list[str] = Field(
        default_factory=list,
        description="Content containing any of these makes the mock client return bad JSON",
    )

    @property
    def api_key(self) -> SecretStr | None:
        """Key for the selected provider (None for mock)."""
        if self.provider == "openai":
            return self.openai_api_key
        if self.provider == "anthropic":
            return self.anthropic_api_key
        return None
