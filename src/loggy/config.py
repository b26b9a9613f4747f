"""Runtime settings via pydantic-settings — 12-factor app style.

Every CLI option without an explicit value falls back to these, so a
container can be configured entirely through ``LOGGY_*`` variables.
"""
from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Loggy runtime settings, loaded from env vars / .env file."""

    model_config = SettingsConfigDict(env_prefix="LOGGY_", env_file=".env", extra="ignore")

    config_path: Path | None = Field(default=None, description="Module chain config file (JSON)")
    debug: bool = Field(default=False, description="Debug mode for modules and logging")
    watch_interval: float = Field(default=5.0, gt=0, description="Seconds between config file checks")
    poll_interval: float = Field(default=0.25, gt=0, description="Seconds between input file checks")
    log_level: str = Field(default="INFO", description="Log level when not in debug mode")
