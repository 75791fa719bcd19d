#!/usr/bin/env python3
"""
Core types and data models for the compile runner.

This module holds the immutable configuration record produced by the option
parser, the values derived from it (build target, toolchain selection), the
result type shared by every external process invocation, and the exception
hierarchy used to classify fatal conditions.
"""

from __future__ import annotations

import tempfile
import time
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, Dict, List, Optional, TypeAlias, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

PathLike: TypeAlias = Union[str, Path]

DEFAULT_OUTPUT_DIR = Path(tempfile.gettempdir()) / "compile_runner"


class OptimizationLevel(StrEnum):
    """Optimization levels accepted on the command line."""

    NONE = "-O0"
    BASIC = "-O1"
    STANDARD = "-O2"
    AGGRESSIVE = "-O3"

    def __str__(self) -> str:
        descriptions = {
            self.NONE: "No Optimization (-O0)",
            self.BASIC: "Basic Optimization (-O1)",
            self.STANDARD: "Standard Optimization (-O2)",
            self.AGGRESSIVE: "Aggressive Optimization (-O3)",
        }
        return descriptions.get(self, self.value)


class Language(StrEnum):
    """Source languages the runner knows how to compile."""

    C = "c"
    CPP = "c++"

    def __str__(self) -> str:
        return {self.C: "C", self.CPP: "C++"}.get(self, self.value)


class Severity(StrEnum):
    """How the pipeline treats the outcome of an external invocation."""

    OK = "ok"
    ADVISORY = "advisory"  # logged, never stops the pipeline
    FATAL = "fatal"


class RunnerOptions(BaseModel):
    """
    Configuration record built once by the option parser.

    The model is frozen: downstream components receive it explicitly and
    can never mutate it.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    optimization: OptimizationLevel = Field(
        default=OptimizationLevel.STANDARD, description="Optimization level"
    )
    keep_binary: bool = Field(
        default=False, description="Keep the compiled binary after the run"
    )
    debug: bool = Field(default=False, description="Emit debug symbols")
    sanitize: bool = Field(
        default=False, description="Enable address and undefined-behavior sanitizers"
    )
    profile: bool = Field(default=False, description="Enable gprof instrumentation")
    verbose: bool = Field(
        default=False, description="Trace commands and show all compiler output"
    )
    static_link: bool = Field(default=False, description="Link statically")
    lint: bool = Field(
        default=False, description="Run static analysis before compiling"
    )
    force_install: bool = Field(
        default=False, description="Resolve and install dependencies first"
    )
    output_dir: Path = Field(
        default=DEFAULT_OUTPUT_DIR, description="Directory receiving the binary"
    )


@dataclass(frozen=True, slots=True)
class BuildTarget:
    """Per-invocation values derived from the source file and output directory."""

    source_file: Path
    base_name: str
    extension: str
    output_path: Path

    @classmethod
    def from_source(cls, source_file: PathLike, output_dir: PathLike) -> BuildTarget:
        """Derive the target; the output path always follows the given directory."""
        source = Path(source_file)
        name = source.name
        if "." in name:
            base_name, extension = name.rsplit(".", 1)
        else:
            base_name, extension = name, ""
        return cls(
            source_file=source,
            base_name=base_name,
            extension=extension,
            output_path=Path(output_dir) / base_name,
        )


@dataclass(frozen=True, slots=True)
class ToolchainPair:
    """Primary and fallback compiler names for one source extension."""

    language: Language
    primary: str
    fallback: str

    def candidates(self) -> tuple[str, str]:
        return (self.primary, self.fallback)


@dataclass(frozen=True, slots=True)
class ToolchainSelection:
    """A toolchain pair resolved against the host."""

    language: Language
    compiler: str
    path: str
    base_name: str


@dataclass(frozen=True, slots=True)
class CommandResult:
    """
    Immutable result of an external process invocation.

    ``severity`` records how the caller classified a non-zero exit, so
    advisory failures stay observable without aborting the pipeline.
    """

    success: bool
    stdout: str = ""
    stderr: str = ""
    return_code: int = 0
    command: List[str] = field(default_factory=list)
    execution_time: float = 0.0
    severity: Severity = Severity.OK
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        if self.execution_time < 0:
            raise ValueError("execution_time cannot be negative")

    @property
    def output(self) -> str:
        """Get combined output (stdout + stderr)."""
        return f"{self.stdout}\n{self.stderr}".strip()

    @property
    def failed(self) -> bool:
        return not self.success

    @property
    def is_advisory(self) -> bool:
        return self.severity == Severity.ADVISORY

    @property
    def command_str(self) -> str:
        return " ".join(self.command)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "success": self.success,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "return_code": self.return_code,
            "command": self.command,
            "execution_time": self.execution_time,
            "severity": self.severity.value,
            "timestamp": self.timestamp,
        }


class RunnerException(Exception):
    """Base exception for every fatal condition of the runner."""

    def __init__(
        self, message: str, *, error_code: Optional[str] = None, **kwargs: Any
    ):
        super().__init__(message)
        self.error_code = error_code
        self.context = kwargs

        # The CLI reports the single user-facing line; keep context for tracing.
        logger.debug(
            f"{type(self).__name__}: {message}",
            extra={"error_code": error_code, "context": kwargs},
        )


# Usage errors
class UsageError(RunnerException):
    """Raised for unknown options or a malformed argument vector."""


class SourceNotFoundError(UsageError):
    """Raised when the source file does not exist."""


class UnsupportedExtensionError(UsageError):
    """Raised when the source extension maps to no toolchain pair."""

    def __init__(self, extension: str, **kwargs: Any):
        super().__init__(
            f"unsupported file extension: '.{extension}'"
            if extension
            else "unsupported file extension: source file has no extension",
            error_code="UNSUPPORTED_EXTENSION",
            extension=extension,
            **kwargs,
        )
        self.extension = extension


# Environment errors
class CompilerNotFoundError(RunnerException):
    """Raised when neither compiler of a toolchain pair is installed."""


class AnalysisToolMissingError(RunnerException):
    """Raised when lint mode is enabled but an analyzer is missing."""


class DependencyError(RunnerException):
    """Raised when a missing tool cannot be installed automatically."""


class ConfigurationError(RunnerException):
    """Raised when the settings file cannot be loaded or validated."""


class OutputDirectoryError(RunnerException):
    """Raised when the output directory cannot be created."""


# External tool failures
class InstallationError(RunnerException):
    """Raised when the package manager fails to install a tool."""


class BuildError(RunnerException):
    """Raised when the delegated make build fails."""


class CompilationError(RunnerException):
    """Raised when direct compilation fails."""

    def __init__(
        self,
        message: str,
        command: Optional[List[str]] = None,
        return_code: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(message, command=command, return_code=return_code, **kwargs)
        self.command = command
        self.return_code = return_code
