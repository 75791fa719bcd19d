#!/usr/bin/env python3
"""
Persistent settings for the compile runner.

Settings live in ``~/.compile_runner/config.json`` (the directory can be
moved with ``COMPILE_RUNNER_HOME``). They only tune ambient behaviour;
the command-line switches always start from their documented defaults.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .core_types import DEFAULT_OUTPUT_DIR, ConfigurationError, PathLike

CONFIG_HOME_ENV = "COMPILE_RUNNER_HOME"
CONFIG_FILE_NAME = "config.json"


class RunnerSettings(BaseModel):
    """Validated contents of the settings file."""

    model_config = ConfigDict(
        extra="forbid", validate_assignment=True, str_strip_whitespace=True
    )

    default_output_dir: Path = Field(
        default=DEFAULT_OUTPUT_DIR,
        description="Output directory used when --outdir is not given",
    )
    warning_marker: str = Field(
        default="warning",
        description="Compiler stderr lines containing this text are hidden",
    )
    log_file: Optional[Path] = Field(
        default=None, description="Optional file receiving a copy of the log"
    )
    make_jobs: Optional[int] = Field(
        default=None, ge=1, description="Override for the make -j hint"
    )

    @field_validator("warning_marker")
    @classmethod
    def validate_marker(cls, v: str) -> str:
        if not v:
            raise ValueError("warning_marker must not be empty")
        return v

    @field_validator("default_output_dir", "log_file")
    @classmethod
    def expand_user(cls, v: Optional[Path]) -> Optional[Path]:
        return v.expanduser() if v is not None else v


class ConfigurationManager:
    """Locates, loads and validates the settings file."""

    def __init__(self, config_dir: Optional[PathLike] = None) -> None:
        if config_dir is None:
            env_dir = os.environ.get(CONFIG_HOME_ENV)
            config_dir = Path(env_dir) if env_dir else Path.home() / ".compile_runner"
        self.config_dir = Path(config_dir)

    @property
    def config_file(self) -> Path:
        return self.config_dir / CONFIG_FILE_NAME

    def load_json(self, file_path: PathLike) -> Dict[str, Any]:
        """
        Load and parse a JSON file with error handling.

        Raises:
            ConfigurationError: If the file cannot be read or parsed
        """
        path = Path(file_path)
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"invalid JSON in settings file {path}: {e}",
                error_code="INVALID_JSON",
                file_path=str(path),
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"cannot read settings file {path}: {e}",
                error_code="FILE_READ_ERROR",
                file_path=str(path),
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"settings file {path} must contain a JSON object",
                error_code="INVALID_CONFIGURATION",
                file_path=str(path),
            )
        return data

    def load_settings(self) -> RunnerSettings:
        """
        Load the settings file, falling back to defaults when it is absent.

        Raises:
            ConfigurationError: If the file exists but is invalid
        """
        path = self.config_file
        if not path.exists():
            logger.debug(f"No settings file at {path}, using defaults")
            return RunnerSettings()

        data = self.load_json(path)
        try:
            settings = RunnerSettings.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(
                f"invalid settings in {path}: {e.error_count()} error(s)",
                error_code="INVALID_CONFIGURATION",
                file_path=str(path),
                validation_errors=e.errors(),
            ) from e

        logger.debug(f"Loaded settings from {path}")
        return settings


def load_settings(config_dir: Optional[PathLike] = None) -> RunnerSettings:
    """Load settings using a default configuration manager."""
    return ConfigurationManager(config_dir).load_settings()
