"""Configuration management for the RAMS engine."""

from __future__ import annotations

import tomllib
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingConfig(BaseModel):
    """Logging configuration settings."""

    # Logging severity threshold (INFO/DEBUG/etc.).
    level: str = Field(default="INFO", description="Logging level")
    # Emit JSON if True; otherwise emit a human-readable format.
    json_format: bool = Field(default=True, description="Emit JSON logs")
    # Optional file path for log output; if None, logs go to stderr.
    log_file: str | None = Field(default=None, description="Optional log file path")
    # Maximum size (bytes) before log rotation.
    max_bytes: int = Field(default=1_000_000, description="Max log file size before rotation")
    # Number of backup files to retain.
    backup_count: int = Field(default=3, description="Number of rotated log files to keep")


class KnowledgeBaseConfig(BaseModel):
    """Where the reference tables are read from."""

    # Directory holding hazards.json, controls.json, ...; None uses the bundled data.
    data_dir: str | None = Field(default=None, description="Knowledge base override directory")


class ServiceConfig(BaseModel):
    """HTTP service configuration."""

    # Start the HTTP service when the engine is built.
    enabled: bool = Field(default=False, description="Enable HTTP service")
    host: str = Field(default="127.0.0.1", description="Service host")
    port: int = Field(default=8080, ge=0, le=65535, description="Service port")


class RamsEngineSettings(BaseSettings):
    """Configuration settings loaded from env or optional TOML."""

    # Environment keys use RAMS_ prefix and "__" nesting, e.g. RAMS_LOGGING__LEVEL.
    model_config = SettingsConfigDict(env_prefix="RAMS_", env_nested_delimiter="__", extra="ignore")

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    knowledge_base: KnowledgeBaseConfig = Field(default_factory=KnowledgeBaseConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)

    @classmethod
    def from_toml(cls, path: str | Path) -> "RamsEngineSettings":
        data = tomllib.loads(Path(path).read_text())
        # Keyword data wins over environment values, key by key.
        return cls(**data)
