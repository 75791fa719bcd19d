#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Compiler selection for detecting the toolchain of a source file.
"""
from pathlib import Path
from typing import Dict, Optional

from loguru import logger

from .core_types import (
    BuildTarget,
    CompilerNotFoundError,
    Language,
    PathLike,
    SourceNotFoundError,
    ToolchainPair,
    ToolchainSelection,
    UnsupportedExtensionError,
)
from .utils import SystemInfo

TOOLCHAINS: Dict[str, ToolchainPair] = {
    "c": ToolchainPair(language=Language.C, primary="gcc", fallback="clang"),
    "cpp": ToolchainPair(language=Language.CPP, primary="g++", fallback="clang++"),
}


class CompilerSelector:
    """
    Maps a source extension to a toolchain pair and resolves it on the host.
    """

    def __init__(
        self,
        system_info: Optional[SystemInfo] = None,
        toolchains: Optional[Dict[str, ToolchainPair]] = None,
    ):
        self.system_info = system_info or SystemInfo()
        self.toolchains = toolchains if toolchains is not None else TOOLCHAINS

    def toolchain_for(self, extension: str) -> ToolchainPair:
        """Return the toolchain pair for an extension (without the dot)."""
        try:
            return self.toolchains[extension]
        except KeyError:
            raise UnsupportedExtensionError(extension) from None

    def select(self, target: BuildTarget) -> ToolchainSelection:
        """
        Resolve the compiler for a build target, preferring the primary.

        Raises:
            UnsupportedExtensionError: If the extension has no toolchain
            CompilerNotFoundError: If neither compiler is installed
        """
        pair = self.toolchain_for(target.extension)

        for candidate in pair.candidates():
            path = self.system_info.find_executable(candidate)
            if path is not None:
                if candidate != pair.primary:
                    logger.debug(
                        f"'{pair.primary}' not found, falling back to '{candidate}'"
                    )
                logger.debug(f"Selected {pair.language} compiler: {path}")
                return ToolchainSelection(
                    language=pair.language,
                    compiler=candidate,
                    path=str(path),
                    base_name=target.base_name,
                )

        raise CompilerNotFoundError(
            f"no {pair.language} compiler found (tried {pair.primary}, {pair.fallback}); "
            "run with --install to install dependencies",
            error_code="COMPILER_NOT_FOUND",
            candidates=list(pair.candidates()),
        )

    def select_for_source(
        self, source_file: PathLike, output_dir: PathLike
    ) -> tuple[BuildTarget, ToolchainSelection]:
        """
        Confirm the source exists, then derive its target and toolchain.

        Raises:
            SourceNotFoundError: If the source file does not exist
        """
        source = Path(source_file)
        if not source.is_file():
            raise SourceNotFoundError(
                f"source file not found: {source}",
                error_code="SOURCE_NOT_FOUND",
                source=str(source),
            )
        target = BuildTarget.from_source(source, output_dir)
        return target, self.select(target)
