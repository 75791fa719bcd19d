#!/usr/bin/env python3
"""
Best-effort static analysis run before compilation.
"""

from __future__ import annotations

import sys
from dataclasses import replace
from typing import List, Optional, TextIO

from loguru import logger

from .core_types import (
    AnalysisToolMissingError,
    BuildTarget,
    CommandResult,
    Language,
    RunnerOptions,
    Severity,
)
from .utils import ProcessManager, SystemInfo

ANALYSIS_TOOLS: tuple[str, ...] = ("clang-tidy", "cppcheck")


class AnalysisRunner:
    """
    Runs clang-tidy and cppcheck against the source file when lint is on.

    Every analyzer outcome is advisory: findings and non-zero exits are
    reported, never raised.
    """

    def __init__(
        self,
        options: RunnerOptions,
        process_manager: Optional[ProcessManager] = None,
        system_info: Optional[SystemInfo] = None,
        stream: Optional[TextIO] = None,
    ) -> None:
        self.options = options
        self.process_manager = process_manager or ProcessManager()
        self.system_info = system_info or SystemInfo()
        self.stream = stream

    def check_tools(self) -> None:
        missing = [
            tool
            for tool in ANALYSIS_TOOLS
            if self.system_info.find_executable(tool) is None
        ]
        if missing:
            raise AnalysisToolMissingError(
                f"lint requires {', '.join(missing)}; "
                "run with --install to install dependencies",
                error_code="ANALYZER_MISSING",
                missing=missing,
            )

    def commands(self, target: BuildTarget, language: Language) -> List[List[str]]:
        source = str(target.source_file)
        language_flag = "c" if language == Language.C else "c++"
        return [
            ["clang-tidy", "--quiet", source, "--", "-x", language_flag],
            [
                "cppcheck",
                "--enable=warning,style,performance,portability",
                "--quiet",
                f"--language={language_flag}",
                source,
            ],
        ]

    def run(self, target: BuildTarget, language: Language) -> List[CommandResult]:
        """
        Run every analyzer; returns their results, marked advisory on failure.

        Raises:
            AnalysisToolMissingError: If an analyzer is not installed
        """
        if not self.options.lint:
            return []

        self.check_tools()
        results = []
        for command in self.commands(target, language):
            result = self.process_manager.run_command(command)
            if result.failed:
                result = replace(result, severity=Severity.ADVISORY)
            self._report(result)
            results.append(result)
        return results

    def _report(self, result: CommandResult) -> None:
        tool = result.command[0]
        if not self.options.verbose:
            logger.debug(
                f"{tool} finished with code {result.return_code}",
                extra={"severity": result.severity.value},
            )
            return

        stream = self.stream or sys.stderr
        if result.output:
            stream.write(result.output + "\n")
            stream.flush()
        if result.is_advisory:
            logger.warning(
                f"{tool} exited with code {result.return_code} (ignored)"
            )
        else:
            logger.info(f"{tool} finished")
