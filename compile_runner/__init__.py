#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Compile Runner

Compiles a single C or C++ source file (or delegates to an existing
Makefile), runs the result and removes the binary afterwards.

Features:
- Compiler selection by extension with gcc/g++ preferred and clang fallback
- Deterministic flag assembly (optimization, warnings, sanitizers, profiling)
- Optional clang-tidy and cppcheck pass before compilation
- Automatic installation of missing tools through the host package manager
- Exit-code forwarding and binary cleanup on exit or interruption
"""

from .api import CompileRunner, run_source
from .analysis import AnalysisRunner
from .build_manager import BuildDispatcher, BuildPath
from .compiler import Compiler, FlagAssembler
from .compiler_manager import CompilerSelector
from .config import ConfigurationManager, RunnerSettings, load_settings
from .core_types import (
    BuildTarget,
    CommandResult,
    Language,
    OptimizationLevel,
    RunnerException,
    RunnerOptions,
    Severity,
    ToolchainPair,
    ToolchainSelection,
)
from .dependency_manager import REQUIRED_TOOLS, DependencyResolver
from .executor import ArtifactCleaner, ExecutionManager
from .cli import main, parse_arguments

__version__ = "0.1.0"
__license__ = "GPL-3.0-or-later"

__all__ = [
    # Core types
    "BuildTarget",
    "CommandResult",
    "Language",
    "OptimizationLevel",
    "RunnerException",
    "RunnerOptions",
    "Severity",
    "ToolchainPair",
    "ToolchainSelection",
    # Components
    "AnalysisRunner",
    "ArtifactCleaner",
    "BuildDispatcher",
    "BuildPath",
    "Compiler",
    "CompilerSelector",
    "CompileRunner",
    "ConfigurationManager",
    "DependencyResolver",
    "ExecutionManager",
    "FlagAssembler",
    "RunnerSettings",
    "REQUIRED_TOOLS",
    # Functions
    "load_settings",
    "main",
    "parse_arguments",
    "run_source",
]
