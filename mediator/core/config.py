"""
Configuration management using pydantic-settings.

Handles environment variables for the broker process and for the
agent-side tool server.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _get_data_dir() -> Path:
    """Get the default data directory (durable conversation store lives here)."""
    return Path.home() / ".local/share/mediator"


class Settings(BaseSettings):
    """
    Broker-wide configuration.

    Loads from .env file and environment variables.
    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # HTTP server
    host: str = Field(default="127.0.0.1", description="Interface the broker binds to")
    port: int = Field(default=3001, description="Port the broker listens on")

    # Durable conversation store
    data_dir: Path = Field(
        default_factory=_get_data_dir,
        description="Directory holding the conversation database",
    )
    database_url: str | None = Field(
        default=None,
        description="SQLAlchemy async URL (defaults to sqlite+aiosqlite in data_dir)",
    )

    # Run lifecycle
    run_idle_timeout_hours: int = Field(
        default=24,
        description="Hours without activity before a run is reaped and its requests cleaned up",
    )
    watchdog_interval_seconds: int = Field(
        default=60,
        description="Interval between stale-run sweeps",
    )

    # Logging
    log_max_bytes: int = Field(default=5 * 1024 * 1024, description="Rotate server.log at this size")
    log_backup_count: int = Field(default=3, description="Rotated log files to keep")

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.data_dir = self.data_dir.resolve()
        if self.database_url is None:
            self.database_url = f"sqlite+aiosqlite:///{self.data_dir / 'mediator.db'}"


class ToolServerSettings(BaseSettings):
    """
    Settings for the agent-side tool server.

    The process supervisor injects both values into the agent's environment
    at spawn time (MEDIATOR_SERVER_URL, MEDIATOR_STREAMING_ID).
    """

    model_config = SettingsConfigDict(
        env_prefix="MEDIATOR_",
        case_sensitive=False,
        extra="ignore",
    )

    server_url: str = Field(
        default="http://localhost:3001",
        description="Base URL of the mediation broker",
    )
    streaming_id: str = Field(
        default="unknown",
        description="Correlation id of the agent run this tool server belongs to",
    )


# Global settings instance
# Import this in other modules: `from mediator.core.config import settings`
settings = Settings()
