#!/usr/bin/env python3
"""
Process execution, host inspection and file helpers for the compile runner.

Every external tool the runner talks to (package manager, analyzers,
compiler, make, the compiled program) goes through :class:`ProcessManager`,
which blocks until the child finishes and reports a :class:`CommandResult`.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
import time
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, TextIO

from loguru import logger

from .core_types import CommandResult, PathLike, RunnerException


class FileOperationError(RunnerException):
    """Exception raised for file operation errors."""


def normalize_exit_code(return_code: int) -> int:
    """Map a subprocess return code to a shell-style exit status."""
    if return_code < 0:
        # Child terminated by signal N.
        return 128 + (-return_code)
    return return_code


class SystemInfo:
    """Host queries used by the resolver, selector and dispatcher."""

    @staticmethod
    def get_cpu_count() -> int:
        """Get the number of available CPU cores."""
        return os.cpu_count() or 1

    @staticmethod
    def find_executable(name: str) -> Optional[Path]:
        """Look a tool up on the execution search path."""
        result = shutil.which(name)
        return Path(result) if result else None

    @staticmethod
    def is_root() -> bool:
        geteuid = getattr(os, "geteuid", None)
        return geteuid is not None and geteuid() == 0


class FileManager:
    """Filesystem helpers for the output directory and the compiled binary."""

    @staticmethod
    def ensure_directory(path: PathLike, mode: int = 0o755) -> Path:
        """
        Ensure a directory exists, creating it and its parents if necessary.

        Raises:
            FileOperationError: If the directory cannot be created
        """
        dir_path = Path(path)
        try:
            dir_path.mkdir(parents=True, exist_ok=True, mode=mode)
        except OSError as e:
            raise FileOperationError(
                f"Failed to create directory {dir_path}: {e}",
                error_code="MKDIR_FAILED",
                path=str(dir_path),
                os_error=str(e),
            ) from e
        if not dir_path.is_dir():
            raise FileOperationError(
                f"Not a directory: {dir_path}",
                error_code="NOT_A_DIRECTORY",
                path=str(dir_path),
            )
        return dir_path

    @staticmethod
    def remove_file(path: PathLike) -> bool:
        """
        Remove a file if it exists.

        Returns:
            True if a file was removed, False if it was already absent
        """
        file_path = Path(path)
        try:
            file_path.unlink()
        except FileNotFoundError:
            return False
        logger.debug(f"Removed {file_path}")
        return True

    @staticmethod
    def is_executable(path: PathLike) -> bool:
        file_path = Path(path)
        return file_path.is_file() and os.access(file_path, os.X_OK)


def filter_lines(
    lines: Iterable[str], marker: str, sink: TextIO
) -> int:
    """
    Copy ``lines`` to ``sink``, dropping every line containing ``marker``.

    Returns:
        Number of lines dropped
    """
    dropped = 0
    for line in lines:
        if marker in line:
            dropped += 1
            continue
        sink.write(line)
    sink.flush()
    return dropped


class ProcessManager:
    """Blocking process execution utilities."""

    @staticmethod
    def run_command(
        command: List[str],
        cwd: Optional[PathLike] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> CommandResult:
        """
        Run a command, capturing its output.

        Args:
            command: Command and arguments to execute
            cwd: Working directory for the command
            env: Extra environment variables

        Returns:
            CommandResult with execution details; a command that cannot be
            launched yields a failed result with return code 127
        """
        start_time = time.time()
        logger.debug(f"Executing command: {' '.join(command)}")

        final_env = os.environ.copy()
        if env:
            final_env.update(env)

        try:
            result = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=cwd,
                env=final_env,
                text=False,
            )
        except FileNotFoundError:
            return CommandResult(
                success=False,
                stderr=f"Command not found: {command[0]}",
                return_code=127,
                command=command,
                execution_time=time.time() - start_time,
            )
        except OSError as e:
            return CommandResult(
                success=False,
                stderr=f"Failed to launch {command[0]}: {e}",
                return_code=126,
                command=command,
                execution_time=time.time() - start_time,
            )

        execution_time = time.time() - start_time
        cmd_result = CommandResult(
            success=result.returncode == 0,
            stdout=result.stdout.decode("utf-8", errors="replace").strip(),
            stderr=result.stderr.decode("utf-8", errors="replace").strip(),
            return_code=normalize_exit_code(result.returncode),
            command=command,
            execution_time=execution_time,
        )
        logger.debug(
            f"Command exited with code {cmd_result.return_code} in {execution_time:.2f}s"
        )
        return cmd_result

    @staticmethod
    def run_quiet(
        command: List[str], cwd: Optional[PathLike] = None
    ) -> CommandResult:
        """Run a command with all of its standard streams discarded."""
        start_time = time.time()
        logger.debug(f"Executing command: {' '.join(command)}")
        try:
            result = subprocess.run(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                cwd=cwd,
            )
        except FileNotFoundError:
            return CommandResult(
                success=False,
                stderr=f"Command not found: {command[0]}",
                return_code=127,
                command=command,
                execution_time=time.time() - start_time,
            )
        return CommandResult(
            success=result.returncode == 0,
            return_code=normalize_exit_code(result.returncode),
            command=command,
            execution_time=time.time() - start_time,
        )

    @staticmethod
    def run_foreground(
        command: List[str], cwd: Optional[PathLike] = None
    ) -> CommandResult:
        """
        Run a command attached to the runner's own standard streams.

        Used for the compiled program itself and for unfiltered compiler
        output; nothing is captured.
        """
        start_time = time.time()
        logger.debug(f"Executing command: {' '.join(command)}")
        try:
            result = subprocess.run(command, cwd=cwd)
        except FileNotFoundError:
            return CommandResult(
                success=False,
                stderr=f"Command not found: {command[0]}",
                return_code=127,
                command=command,
                execution_time=time.time() - start_time,
            )
        except PermissionError:
            return CommandResult(
                success=False,
                stderr=f"Permission denied: {command[0]}",
                return_code=126,
                command=command,
                execution_time=time.time() - start_time,
            )
        return CommandResult(
            success=result.returncode == 0,
            return_code=normalize_exit_code(result.returncode),
            command=command,
            execution_time=time.time() - start_time,
        )

    @staticmethod
    def run_filtered(
        command: List[str],
        marker: str,
        sink: Optional[TextIO] = None,
        line_filter: Callable[[Iterable[str], str, TextIO], int] = filter_lines,
    ) -> CommandResult:
        """
        Run a command, streaming its stderr through a line filter.

        Standard output stays attached to the runner's stdout.
        """
        start_time = time.time()
        sink = sink or sys.stderr
        logger.debug(f"Executing command: {' '.join(command)}")
        try:
            process = subprocess.Popen(
                command,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except FileNotFoundError:
            return CommandResult(
                success=False,
                stderr=f"Command not found: {command[0]}",
                return_code=127,
                command=command,
                execution_time=time.time() - start_time,
            )

        with process:
            dropped = line_filter(process.stderr, marker, sink)
            return_code = process.wait()

        if dropped:
            logger.debug(f"Suppressed {dropped} line(s) containing {marker!r}")
        return CommandResult(
            success=return_code == 0,
            return_code=normalize_exit_code(return_code),
            command=command,
            execution_time=time.time() - start_time,
        )
