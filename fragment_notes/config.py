"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Fragment Notes settings loaded from the environment or a .env file."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "FRAGMENT_NOTES_",
    }

    # Storage
    storage_dir: Path = Field(default_factory=lambda: Path.home() / ".fragment_notes")
    notes_key: str = "notes"
    theme_key: str = "theme"

    # Editing
    title_debounce_seconds: float = 0.5
    content_debounce_seconds: float = 0.3
    status_timeout_seconds: float = 2.0

    # MCP server
    server_host: str = "0.0.0.0"
    server_port: int = 8001
    log_level: str = "INFO"


settings = Settings()
