from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class FileRotationSettings(BaseModel):
    """
    Date-based rotation settings (daily).

    This maps cleanly to Python's standard library TimedRotatingFileHandler behavior.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    backup_count: int = 5


class FileLoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = False
    path: str = "logs/layered-options.log"
    rotation: FileRotationSettings = Field(default_factory=FileRotationSettings)


class LoggingSettings(BaseModel):
    """Bound from the ``Logging`` section of the merged view."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    level: str = "WARNING"
    format: str = "%(asctime)s %(levelname)s %(name)s %(message)s"
    file: FileLoggingSettings = Field(default_factory=FileLoggingSettings)

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return level


@dataclass(frozen=True, slots=True)
class ConfigLoadRequest:
    """
    Inputs for the default source layering.

    Sources are layered lowest to highest: ``<file_name>.json``,
    ``<file_name>.<environment>.json``, the ``.env`` file, environment variables,
    command-line arguments, then ``overrides``.
    """

    base_dir: str = "."
    file_name: str = "appsettings"
    file_extension: str = ".json"
    require_file: bool = False
    environment: Optional[str] = None
    env_prefix: str = ""
    dotenv_path: Optional[str] = ".env"
    args: Sequence[str] = ()
    switch_mappings: Optional[Mapping[str, str]] = None
    overrides: Optional[Mapping[str, Any]] = None
    environ: Optional[Mapping[str, str]] = None
