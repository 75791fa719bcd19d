#!/usr/bin/env python3
"""
Flag assembly and direct single-file compilation.

:class:`FlagAssembler` turns the configuration record into the ordered
compiler flag list; :class:`Compiler` runs the resulting invocation and
filters the compiler's stderr.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from loguru import logger

from .core_types import (
    BuildTarget,
    CommandResult,
    CompilationError,
    OutputDirectoryError,
    RunnerOptions,
    Severity,
    ToolchainSelection,
)
from .utils import FileManager, FileOperationError, ProcessManager

BASELINE_FLAGS: tuple[str, ...] = (
    "-pipe",
    "-Wall",
    "-Wextra",
    "-Werror",
    "-pthread",
    "-march=native",
)
DEBUG_FLAGS: tuple[str, ...] = ("-g",)
SANITIZER_FLAGS: tuple[str, ...] = ("-fsanitize=address", "-fsanitize=undefined")
PROFILE_FLAGS: tuple[str, ...] = ("-pg",)
STATIC_FLAGS: tuple[str, ...] = ("-static",)


class FlagAssembler:
    """Derives the compiler flags and output path from the configuration record."""

    def __init__(
        self, options: RunnerOptions, file_manager: Optional[FileManager] = None
    ) -> None:
        self.options = options
        self.file_manager = file_manager or FileManager()

    def flags(self) -> List[str]:
        """
        Build the ordered flag list.

        The optimization level always comes first, followed by the baseline
        set and then the optional instrumentation flags.
        """
        flags = [self.options.optimization.value, *BASELINE_FLAGS]
        if self.options.debug:
            flags.extend(DEBUG_FLAGS)
        if self.options.sanitize:
            flags.extend(SANITIZER_FLAGS)
        if self.options.profile:
            flags.extend(PROFILE_FLAGS)
        if self.options.static_link:
            flags.extend(STATIC_FLAGS)
        return flags

    def prepare_output(self, target: BuildTarget) -> Path:
        """
        Ensure the output directory exists and return the binary path.

        Raises:
            OutputDirectoryError: If the directory cannot be created
        """
        try:
            output_dir = self.file_manager.ensure_directory(self.options.output_dir)
        except FileOperationError as e:
            raise OutputDirectoryError(
                f"cannot create output directory {self.options.output_dir}",
                error_code="OUTPUT_DIR_FAILED",
                output_dir=str(self.options.output_dir),
            ) from e
        return output_dir / target.base_name

    def compile_command(
        self, selection: ToolchainSelection, target: BuildTarget
    ) -> List[str]:
        """Full compiler invocation for a single source file."""
        return [
            selection.compiler,
            *self.flags(),
            str(target.source_file),
            "-o",
            str(target.output_path),
        ]


class Compiler:
    """
    Runs a direct compilation.

    In verbose mode the compiler's output passes through untouched;
    otherwise stderr lines containing the warning marker are dropped.
    """

    def __init__(
        self,
        options: RunnerOptions,
        warning_marker: str = "warning",
        process_manager: Optional[ProcessManager] = None,
    ) -> None:
        self.options = options
        self.warning_marker = warning_marker
        self.process_manager = process_manager or ProcessManager()

    def run(self, command: List[str]) -> CommandResult:
        """
        Execute a compiler invocation.

        Raises:
            CompilationError: If the compiler exits non-zero
        """
        logger.info(f"Compiling: {' '.join(command)}")
        if self.options.verbose:
            result = self.process_manager.run_foreground(command)
        else:
            result = self.process_manager.run_filtered(command, self.warning_marker)

        if result.failed:
            raise CompilationError(
                "compilation failed",
                command=command,
                return_code=result.return_code,
                severity=Severity.FATAL.value,
            )
        return result
