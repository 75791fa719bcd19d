#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
High-level API for the compile runner.
"""
from pathlib import Path
from typing import List, Optional, Sequence

from loguru import logger

from .analysis import AnalysisRunner
from .build_manager import BuildDispatcher, BuildPath
from .compiler import FlagAssembler
from .compiler_manager import CompilerSelector
from .config import RunnerSettings
from .core_types import (
    PathLike,
    RunnerOptions,
    SourceNotFoundError,
    UsageError,
)
from .dependency_manager import DependencyResolver
from .executor import ArtifactCleaner, ExecutionManager
from .utils import ProcessManager, SystemInfo


class CompileRunner:
    """
    Sequences one invocation: dependencies, selection, flags, analysis,
    build and execution.

    The artifact cleaner must already be registered by the caller; the
    runner only tells it which binary to guard.
    """

    def __init__(
        self,
        options: RunnerOptions,
        settings: Optional[RunnerSettings] = None,
        cleaner: Optional[ArtifactCleaner] = None,
        working_dir: Optional[PathLike] = None,
        process_manager: Optional[ProcessManager] = None,
        system_info: Optional[SystemInfo] = None,
        resolver: Optional[DependencyResolver] = None,
        selector: Optional[CompilerSelector] = None,
        analysis: Optional[AnalysisRunner] = None,
        dispatcher: Optional[BuildDispatcher] = None,
        executor: Optional[ExecutionManager] = None,
    ) -> None:
        self.options = options
        self.settings = settings or RunnerSettings()
        self.working_dir = Path(working_dir) if working_dir else Path.cwd()
        process_manager = process_manager or ProcessManager()
        system_info = system_info or SystemInfo()

        self.cleaner = cleaner or ArtifactCleaner(keep_binary=options.keep_binary)
        self.resolver = resolver or DependencyResolver(process_manager, system_info)
        self.selector = selector or CompilerSelector(system_info)
        self.assembler = FlagAssembler(options)
        self.analysis = analysis or AnalysisRunner(
            options, process_manager, system_info
        )
        self.executor = executor or ExecutionManager(process_manager)
        self.dispatcher = dispatcher or BuildDispatcher(
            options,
            settings=self.settings,
            working_dir=self.working_dir,
            process_manager=process_manager,
            system_info=system_info,
            executor=self.executor,
        )

    def install_dependencies(self) -> List[str]:
        return self.resolver.resolve()

    def _source_path(self, source_file: PathLike) -> Path:
        source = Path(source_file)
        if not source.is_absolute():
            source = self.working_dir / source
        if not source.is_file():
            raise SourceNotFoundError(
                f"source file not found: {source_file}",
                error_code="SOURCE_NOT_FOUND",
                source=str(source_file),
            )
        return source

    def run(
        self, source_file: Optional[PathLike], program_args: Sequence[str] = ()
    ) -> int:
        """
        Execute the pipeline for one source file.

        Returns:
            Exit status for the runner process (0 for a dependency-only run)
        """
        if self.options.force_install:
            self.install_dependencies()
            if source_file is None:
                logger.info("All dependencies are installed")
                return 0

        if source_file is None:
            raise UsageError("missing source file", error_code="MISSING_SOURCE")

        source = self._source_path(source_file)

        target, selection = self.selector.select_for_source(
            source, self.options.output_dir
        )
        self.analysis.run(target, selection.language)

        if self.dispatcher.choose_path() == BuildPath.MAKE:
            # Compile flags and the output directory only apply to direct builds.
            return self.dispatcher.build_with_make(target.base_name, program_args)

        output_path = self.assembler.prepare_output(target)
        self.cleaner.track(output_path)

        command = self.assembler.compile_command(selection, target)
        self.dispatcher.compile_direct(command)

        return self.executor.execute(output_path, program_args)


def run_source(
    source_file: PathLike,
    program_args: Sequence[str] = (),
    options: Optional[RunnerOptions] = None,
    settings: Optional[RunnerSettings] = None,
) -> int:
    """
    Compile and run a single source file, removing the binary afterwards.
    """
    options = options or RunnerOptions()
    with ArtifactCleaner(keep_binary=options.keep_binary) as cleaner:
        runner = CompileRunner(options, settings=settings, cleaner=cleaner)
        return runner.run(source_file, program_args)
