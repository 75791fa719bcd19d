#!/usr/bin/env python3
"""
Build dispatch: delegate to an existing Makefile or compile directly.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import List, Optional, Sequence

from loguru import logger

from .compiler import Compiler
from .config import RunnerSettings
from .core_types import BuildError, CommandResult, PathLike, RunnerOptions
from .executor import ExecutionManager
from .utils import FileManager, ProcessManager, SystemInfo

MAKEFILE_NAMES: tuple[str, ...] = ("Makefile", "makefile")


class BuildPath(StrEnum):
    """The two terminal paths of a run."""

    MAKE = "make"
    DIRECT = "direct"


class BuildDispatcher:
    """
    Chooses once between a make-delegated build and direct compilation.

    The make path ends in a tail dispatch: the built program runs and its
    exit status becomes the runner's, with no further pipeline steps.
    """

    def __init__(
        self,
        options: RunnerOptions,
        settings: Optional[RunnerSettings] = None,
        working_dir: Optional[PathLike] = None,
        process_manager: Optional[ProcessManager] = None,
        system_info: Optional[SystemInfo] = None,
        compiler: Optional[Compiler] = None,
        executor: Optional[ExecutionManager] = None,
    ) -> None:
        self.options = options
        self.settings = settings or RunnerSettings()
        self.working_dir = Path(working_dir) if working_dir else Path.cwd()
        self.process_manager = process_manager or ProcessManager()
        self.system_info = system_info or SystemInfo()
        self.compiler = compiler or Compiler(
            options,
            warning_marker=self.settings.warning_marker,
            process_manager=self.process_manager,
        )
        self.executor = executor or ExecutionManager(self.process_manager)

    def find_makefile(self) -> Optional[Path]:
        for name in MAKEFILE_NAMES:
            candidate = self.working_dir / name
            if candidate.is_file():
                return candidate
        return None

    def choose_path(self) -> BuildPath:
        makefile = self.find_makefile()
        if makefile is not None:
            logger.debug(f"Found {makefile}, delegating to make")
            return BuildPath.MAKE
        return BuildPath.DIRECT

    def make_command(self) -> List[str]:
        jobs = self.settings.make_jobs or self.system_info.get_cpu_count()
        return ["make", f"-j{jobs}"]

    def build_with_make(self, base_name: str, program_args: Sequence[str] = ()) -> int:
        """
        Run make, then hand over to the built program.

        Returns:
            The built program's exit status

        Raises:
            BuildError: If make fails or the program was not produced
        """
        command = self.make_command()
        logger.info(f"Building with: {' '.join(command)}")
        result = self.process_manager.run_quiet(command, cwd=self.working_dir)
        if result.failed:
            raise BuildError(
                "build failed",
                error_code="MAKE_FAILED",
                command=command,
                return_code=result.return_code,
            )

        binary = self.working_dir / base_name
        if not FileManager.is_executable(binary):
            raise BuildError(
                f"build succeeded but no executable ./{base_name} was produced",
                error_code="MAKE_NO_BINARY",
                binary=str(binary),
            )
        return self.executor.execute(binary, program_args)

    def compile_direct(self, command: List[str]) -> CommandResult:
        """
        Run a direct compiler invocation.

        Raises:
            CompilationError: If the compiler fails
        """
        return self.compiler.run(command)
