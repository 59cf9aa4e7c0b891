"""Configuration for the source registry."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SEED_FILE = Path(__file__).parent / "data" / "seed_sources.json"


class SourcesConfig(BaseSettings):
    """Settings for monitored-source seeding."""

    model_config = SettingsConfigDict(
        env_prefix="SOURCES_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    seed_file: Path = Field(
        default=DEFAULT_SEED_FILE,
        description="JSON file with the initial list of monitored sources",
    )
    seed_on_init: bool = Field(
        default=True,
        description="Load the seed file when the registry is built from config",
    )
