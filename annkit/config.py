"""Configuration management with Pydantic and XDG base directory support."""

import os
from pathlib import Path

from pydantic import Field, PrivateAttr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def get_xdg_data_home() -> Path:
    """Get XDG_DATA_HOME directory, defaulting to ~/.local/share."""
    xdg_data = os.getenv("XDG_DATA_HOME")
    if xdg_data:
        return Path(xdg_data)
    return Path.home() / ".local" / "share"


class Settings(BaseSettings):
    """annkit configuration settings.

    Precedence: CLI flag > environment variable > .env file > defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="ANNKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    print_progress: bool = Field(
        default=True,
        description="Log progress while indexes are built or loaded",
    )

    default_batch_workers: int = Field(
        default=4,
        ge=1,
        description="Worker threads used by batch queries when the caller does not say",
    )

    max_batch_workers: int = Field(
        default=64,
        ge=1,
        description="Upper bound on the batch query thread pool",
    )

    log_level: str = Field(
        default="WARNING",
        description="Root log level applied by the CLI",
    )

    data_dir: Path | None = Field(
        default=None,
        description="Override data directory (defaults to XDG_DATA_HOME/annkit)",
    )

    _resolved_data_dir: Path | None = PrivateAttr(default=None)

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    def get_data_dir(self) -> Path:
        """Get the data directory, creating if necessary."""
        if self._resolved_data_dir is not None:
            return self._resolved_data_dir

        data_dir = self.data_dir if self.data_dir else get_xdg_data_home() / "annkit"
        data_dir.mkdir(parents=True, exist_ok=True)
        self._resolved_data_dir = data_dir
        return data_dir

    def get_index_dir(self) -> Path:
        """Get path to the default directory for saved indexes."""
        index_dir = self.get_data_dir() / "indexes"
        index_dir.mkdir(parents=True, exist_ok=True)
        return index_dir


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Settings) -> None:
    """Set the global settings instance (useful for testing)."""
    global _settings
    _settings = settings
