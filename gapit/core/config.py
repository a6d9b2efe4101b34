"""
Application configuration using pydantic-settings.

All settings are loaded from environment variables or .env file, using the
``GAPIT_`` prefix. These are process-level defaults; each polling node
carries its own ``NodeConfig`` (gapit.schemas.node) which may override them.

    GAPIT_SNMP_TIMEOUT=5
    GAPIT_SNMP_TUNING_STEP=10
    GAPIT_SNMP_MOCK=true
"""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GAPIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    # SNMP transport
    snmp_timeout: float = Field(
        default=5.0,
        description="Per-request timeout in seconds (node config may override).",
    )
    snmp_retries: int = Field(
        default=0,
        description="Transport-level retransmissions before a request times out.",
    )
    snmp_version: str = Field(default="2c", description="Default SNMP version (1 or 2c)")
    snmp_mock: bool = Field(
        default=False,
        description="Use the in-process mock agent instead of real UDP traffic.",
    )

    # Adaptive batching
    snmp_tuning_step: int = Field(
        default=10,
        description="Block size decrement when an agent answers tooBig.",
    )
    snmp_individual_concurrency: int = Field(
        default=8,
        description="Max in-flight single-OID requests in noSuchName fallback.",
    )

    # Runner
    nodes_file: str = Field(
        default="config/nodes.yaml",
        description="YAML file listing polling nodes for the CLI runner.",
    )
    context_store_path: str = Field(
        default="",
        description="JSON file for node context; empty keeps context in memory.",
    )
    reset_nonexistent_oids_on_start: bool = Field(
        default=True,
        description="Clear the nonexistent-OID set when a node is created.",
    )
    poll_interval_seconds: int = Field(
        default=60,
        description="Default tick interval for nodes that do not set one.",
    )
    log_level: str = Field(default="INFO", description="Root log level for the CLI")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance (Singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
