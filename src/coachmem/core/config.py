"""
Configuration management.

Loads settings from environment variables and .env file.
Prefix: COACHMEM_
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="COACHMEM_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Storage
    data_dir: Path = Field(default=Path("data"), description="Data storage directory")
    db_name: str = Field(default="coachmem.db", description="SQLite database name")

    # Model-assisted extraction
    llm_extraction_enabled: bool = Field(
        default=True, description="Ask the completion service for facts/insights"
    )
    extraction_model: str = Field(
        default="gpt-4o-mini", description="Model id from the model registry"
    )
    llm_timeout_seconds: float = Field(default=30.0, description="Completion call timeout")
    llm_max_tokens: int = Field(default=400, description="Max tokens for extraction output")
    llm_temperature: float = Field(default=0.2, description="Extraction sampling temperature")

    # Background ingestion
    ingest_timeout_seconds: float = Field(
        default=60.0, description="Upper bound for one post-turn ingestion task"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Package log level name")
    log_file: Path | None = Field(default=None, description="Optional log file path")

    # Retrieval
    hit_ttl_minutes: int = Field(default=10, description="Memory-hit snapshot lifetime")
    relevance_scan_limit: int | None = Field(
        default=None,
        description="Most recent active records scored per query (None = all)",
    )

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


def get_settings() -> Settings:
    """Get settings instance."""
    return Settings()
