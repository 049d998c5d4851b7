"""Configuration for the `flowtree` launcher.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

The workflow engine itself takes no configuration; only the launcher reads
these settings.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from flowtree.logging import LogFormat


class FlowtreeSettings(BaseSettings):
    """Settings for the launcher.

    Environment variables:
    - FLOWTREE_HOME        (optional)
    - LOG_LEVEL            (optional)
    - FLOWTREE_LOG_FORMAT  (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `FlowtreeSettings(_env_file=path_to_env)`.
    """

    home: Path = Field(
        default_factory=lambda: Path.home() / ".flowtree",
        validation_alias="FLOWTREE_HOME",
        description="Directory holding installed workflow scripts",
    )

    log_level: str = Field(
        default="WARNING",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    log_format: LogFormat = Field(
        default="text",
        validation_alias="FLOWTREE_LOG_FORMAT",
        description="Log record format: 'text' or 'json'",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        if value.upper() not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return value.upper()

    @property
    def workflows_dir(self) -> Path:
        """Directory scanned by `flowtree list` and `flowtree run <name>`."""

        return self.home / "workflows"
