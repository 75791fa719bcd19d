#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Command-line interface for the compile runner.
"""
import argparse
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, NoReturn, Optional, Sequence

from loguru import logger

from .api import CompileRunner
from .config import RunnerSettings, load_settings
from .core_types import OptimizationLevel, RunnerException, RunnerOptions, UsageError
from .executor import ArtifactCleaner
from .logging_config import setup_logging

PROG = "compile_runner"

# Exact tokens recognized ahead of the source file.
FLAG_OPTIONS = frozenset(
    {
        "--help",
        "--keep",
        "--debug",
        "-d",
        "--sanitize",
        "-s",
        "--profile",
        "-p",
        "--verbose",
        "-v",
        "--static",
        "--lint",
        "--install",
        *(level.value for level in OptimizationLevel),
    }
)
VALUE_OPTIONS = frozenset({"--outdir"})


class RunnerArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting."""

    def error(self, message: str) -> NoReturn:
        raise UsageError(message, error_code="USAGE")


@dataclass(frozen=True)
class ParsedArguments:
    """Result of parsing the argument vector."""

    options: RunnerOptions
    source_file: Optional[str] = None
    program_args: List[str] = field(default_factory=list)
    help_requested: bool = False


def build_parser() -> RunnerArgumentParser:
    parser = RunnerArgumentParser(
        prog=PROG,
        usage="%(prog)s [OPTIONS] <source_file> [program_args...]",
        description="Compile a C or C++ source file (or a Makefile project), run it and clean up.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        allow_abbrev=False,
        epilog="""
Examples:
  # Compile with -O2 and run with two arguments
  compile_runner program.c foo bar

  # Debug build with sanitizers, keep the binary
  compile_runner --sanitize --debug --keep program.cpp

  # Install compilers, analyzers and make, then exit
  compile_runner --install
""",
    )

    parser.add_argument(
        "--help", action="store_true", help="Show this help message and exit"
    )

    build_group = parser.add_argument_group("Build options")
    build_group.add_argument(
        "--debug", "-d", action="store_true", help="Include debug symbols (-g)"
    )
    build_group.add_argument(
        "--sanitize",
        "-s",
        action="store_true",
        help="Enable address and undefined-behavior sanitizers",
    )
    build_group.add_argument(
        "--profile", "-p", action="store_true", help="Instrument for gprof (-pg)"
    )
    build_group.add_argument(
        "--static", action="store_true", dest="static_link", help="Link statically"
    )
    for level in OptimizationLevel:
        build_group.add_argument(
            level.value,
            action="store_const",
            dest="optimization",
            const=level,
            help=str(level) + (" [default]" if level == OptimizationLevel.STANDARD else ""),
        )
    build_group.add_argument(
        "--outdir",
        dest="output_dir",
        metavar="DIR",
        type=Path,
        help="Directory for the compiled binary",
    )

    run_group = parser.add_argument_group("Run options")
    run_group.add_argument(
        "--keep", action="store_true", dest="keep_binary", help="Keep the binary"
    )
    run_group.add_argument(
        "--lint",
        action="store_true",
        help="Run clang-tidy and cppcheck before compiling",
    )
    run_group.add_argument(
        "--install",
        action="store_true",
        dest="force_install",
        help="Install missing dependencies (alone: install and exit)",
    )
    run_group.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show commands and all compiler output",
    )

    parser.add_argument("source_file", nargs="?", help="C (.c) or C++ (.cpp) source")
    parser.add_argument(
        "program_args",
        nargs=argparse.REMAINDER,
        help="Arguments forwarded to the program",
    )
    return parser


def split_arguments(
    argv: Sequence[str],
) -> tuple[List[str], Optional[str], List[str], List[str]]:
    """
    Split the argument vector at the source file.

    Only the exact tokens in ``FLAG_OPTIONS`` and ``VALUE_OPTIONS`` count
    as runner options; anything else starting with ``-`` is unknown. The
    first remaining token is the source file and everything after it is
    returned untouched.

    Returns:
        (option tokens, source file, program arguments, unknown tokens)
    """
    argv = list(argv)
    option_tokens: List[str] = []
    unknown: List[str] = []
    index = 0
    while index < len(argv):
        token = argv[index]
        if token in VALUE_OPTIONS:
            option_tokens.extend(argv[index : index + 2])
            index += 2
            continue
        if token in FLAG_OPTIONS:
            option_tokens.append(token)
        elif token.startswith("-"):
            unknown.append(token)
        else:
            return option_tokens, token, argv[index + 1 :], unknown
        index += 1
    return option_tokens, None, [], unknown


def scan_arguments(
    argv: Sequence[str], parser: Optional[RunnerArgumentParser] = None
) -> tuple[argparse.Namespace, List[str]]:
    """
    Parse the runner's own options without validating the rest.

    argparse only sees the option tokens ahead of the source file, so
    program arguments such as ``--`` reach the program unmodified.

    Returns:
        The namespace and the unrecognized tokens seen before the source
    """
    parser = parser or build_parser()
    option_tokens, source_file, program_args, unknown = split_arguments(argv)
    namespace = parser.parse_args(option_tokens)
    namespace.source_file = source_file
    namespace.program_args = program_args
    return namespace, unknown


def build_options(
    namespace: argparse.Namespace,
    unknown: Sequence[str],
    settings: Optional[RunnerSettings] = None,
) -> ParsedArguments:
    """
    Validate a scanned namespace and build the configuration record.

    Raises:
        UsageError: For unknown options or a missing source file
    """
    settings = settings or RunnerSettings()

    if unknown:
        raise UsageError(f"unknown option: {unknown[0]}", error_code="UNKNOWN_OPTION")

    source_file = namespace.source_file
    if source_file is None and not namespace.force_install:
        raise UsageError("missing source file", error_code="MISSING_SOURCE")

    options = RunnerOptions(
        optimization=namespace.optimization or OptimizationLevel.STANDARD,
        keep_binary=namespace.keep_binary,
        debug=namespace.debug,
        sanitize=namespace.sanitize,
        profile=namespace.profile,
        verbose=namespace.verbose,
        static_link=namespace.static_link,
        lint=namespace.lint,
        force_install=namespace.force_install,
        output_dir=namespace.output_dir or settings.default_output_dir,
    )
    return ParsedArguments(
        options=options,
        source_file=source_file,
        program_args=list(namespace.program_args or []),
    )


def parse_arguments(
    argv: Sequence[str], settings: Optional[RunnerSettings] = None
) -> ParsedArguments:
    """
    Parse the argument vector in one left-to-right pass.

    ``--help`` before the source file wins over everything else; the first
    non-option token is the source file and every later token is forwarded
    to the program untouched.
    """
    namespace, unknown = scan_arguments(argv)
    if namespace.help:
        return ParsedArguments(options=RunnerOptions(), help_requested=True)
    return build_options(namespace, unknown, settings)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main function for command-line usage.
    """
    argv = sys.argv[1:] if argv is None else list(argv)
    setup_logging(verbose=False)

    parser = build_parser()
    try:
        namespace, unknown = scan_arguments(argv, parser)
    except UsageError as e:
        logger.error(str(e))
        return 1

    if namespace.help:
        parser.print_help(sys.stdout)
        return 0

    if namespace.verbose:
        setup_logging(verbose=True)

    # Registered before anything can produce a binary.
    with ArtifactCleaner(keep_binary=namespace.keep_binary) as cleaner:
        try:
            settings = load_settings()
            if settings.log_file:
                setup_logging(verbose=namespace.verbose, log_file=settings.log_file)
            parsed = build_options(namespace, unknown, settings)
            logger.debug(f"Options: {parsed.options.model_dump(mode='json')}")

            runner = CompileRunner(parsed.options, settings=settings, cleaner=cleaner)
            return runner.run(parsed.source_file, parsed.program_args)
        except RunnerException as e:
            logger.error(str(e))
            return 1


def run() -> NoReturn:
    """Console-script entry point."""
    sys.exit(main())
