import signal
import sys
from pathlib import Path

import pytest

from .cli import build_parser, main, parse_arguments, split_arguments
from .config import RunnerSettings
from .core_types import (
    DEFAULT_OUTPUT_DIR,
    CompilationError,
    OptimizationLevel,
    UsageError,
)
from .executor import ExecutionManager


# --- Tests for parse_arguments ---


def test_parse_source_only():
    parsed = parse_arguments(["program.c"])
    assert parsed.source_file == "program.c"
    assert parsed.program_args == []
    assert parsed.help_requested is False
    assert parsed.options.optimization == OptimizationLevel.STANDARD
    assert parsed.options.output_dir == DEFAULT_OUTPUT_DIR


def test_parse_flags_in_any_order():
    parsed = parse_arguments(
        ["--static", "-d", "--keep", "-s", "--lint", "-p", "-v", "prog.cpp"]
    )
    options = parsed.options
    assert options.static_link and options.debug and options.keep_binary
    assert options.sanitize and options.lint and options.profile and options.verbose
    assert options.force_install is False
    assert parsed.source_file == "prog.cpp"


def test_parse_long_flag_spellings():
    parsed = parse_arguments(
        ["--debug", "--sanitize", "--profile", "--verbose", "prog.c"]
    )
    assert parsed.options.debug
    assert parsed.options.sanitize
    assert parsed.options.profile
    assert parsed.options.verbose


@pytest.mark.parametrize("level", list(OptimizationLevel))
def test_parse_optimization_level(level):
    parsed = parse_arguments([level.value, "prog.c"])
    assert parsed.options.optimization == level


def test_last_optimization_level_wins():
    parsed = parse_arguments(["-O3", "-O0", "prog.c"])
    assert parsed.options.optimization == OptimizationLevel.NONE


def test_parse_outdir(tmp_path):
    parsed = parse_arguments(["--outdir", str(tmp_path / "bin"), "prog.c"])
    assert parsed.options.output_dir == tmp_path / "bin"


def test_outdir_requires_value():
    with pytest.raises(UsageError):
        parse_arguments(["--outdir"])


def test_settings_default_output_dir(tmp_path):
    settings = RunnerSettings(default_output_dir=tmp_path)
    parsed = parse_arguments(["prog.c"], settings=settings)
    assert parsed.options.output_dir == tmp_path


def test_explicit_outdir_beats_settings(tmp_path):
    settings = RunnerSettings(default_output_dir=tmp_path / "a")
    parsed = parse_arguments(["--outdir", str(tmp_path / "b"), "p.c"], settings=settings)
    assert parsed.options.output_dir == tmp_path / "b"


def test_tokens_after_source_are_forwarded_verbatim():
    parsed = parse_arguments(
        ["-O1", "prog.c", "-v", "--keep", "--help", "plain", "-O3", "--bogus"]
    )
    assert parsed.source_file == "prog.c"
    assert parsed.program_args == ["-v", "--keep", "--help", "plain", "-O3", "--bogus"]
    assert parsed.options.verbose is False
    assert parsed.options.keep_binary is False
    assert parsed.options.optimization == OptimizationLevel.BASIC


def test_double_dash_after_source_is_forwarded():
    parsed = parse_arguments(["prog.c", "--", "x"])
    assert parsed.source_file == "prog.c"
    assert parsed.program_args == ["--", "x"]


def test_double_dash_between_program_args_is_forwarded():
    parsed = parse_arguments(["-d", "prog.c", "x", "--", "y"])
    assert parsed.program_args == ["x", "--", "y"]
    assert parsed.options.debug is True


def test_outdir_value_is_not_the_source():
    parsed = parse_arguments(["--outdir", "bin", "prog.c", "bin"])
    assert parsed.options.output_dir == Path("bin")
    assert parsed.source_file == "prog.c"
    assert parsed.program_args == ["bin"]


@pytest.mark.parametrize("token", ["-dv", "-sd", "--", "--outdir=bin", "--deb"])
def test_only_exact_option_tokens_are_recognized(token):
    with pytest.raises(UsageError, match=f"unknown option: {token}"):
        parse_arguments([token, "prog.c"])


def test_split_arguments():
    assert split_arguments(["-O1", "--outdir", "o", "a.c", "-v", "--"]) == (
        ["-O1", "--outdir", "o"],
        "a.c",
        ["-v", "--"],
        [],
    )
    assert split_arguments(["--bogus", "--keep"]) == (["--keep"], None, [], ["--bogus"])


def test_unknown_option_before_source():
    with pytest.raises(UsageError, match="unknown option: --bogus"):
        parse_arguments(["--bogus", "program.c"])


def test_unknown_optimization_level():
    with pytest.raises(UsageError, match="-O5"):
        parse_arguments(["-O5", "program.c"])


def test_dash_prefixed_source_is_rejected():
    with pytest.raises(UsageError, match="unknown option"):
        parse_arguments(["-1"])


def test_missing_source_file():
    with pytest.raises(UsageError, match="missing source file"):
        parse_arguments(["--debug"])


def test_install_without_source_is_allowed():
    parsed = parse_arguments(["--install"])
    assert parsed.options.force_install is True
    assert parsed.source_file is None


def test_help_short_circuits():
    parsed = parse_arguments(["--debug", "--help", "--bogus"])
    assert parsed.help_requested is True


def test_usage_mentions_every_option():
    text = build_parser().format_help()
    for option in (
        "--help",
        "--keep",
        "--debug",
        "--sanitize",
        "--profile",
        "--verbose",
        "--static",
        "--lint",
        "--install",
        "-O0",
        "-O3",
        "--outdir",
    ):
        assert option in text


# --- Tests for main ---


@pytest.fixture
def mock_runner(mocker):
    runner_class = mocker.patch("compile_runner.cli.CompileRunner")
    runner_class.return_value.run.return_value = 0
    return runner_class


@pytest.fixture
def no_settings(mocker):
    return mocker.patch("compile_runner.cli.load_settings", return_value=RunnerSettings())


def test_main_help_prints_usage(capsys, mock_runner, no_settings):
    assert main(["--help"]) == 0
    out = capsys.readouterr().out
    assert "usage: compile_runner" in out
    mock_runner.assert_not_called()
    no_settings.assert_not_called()


def test_main_unknown_option(capsys, mock_runner, no_settings):
    assert main(["--bogus", "program.c"]) == 1
    err = capsys.readouterr().err
    assert "error: unknown option: --bogus" in err
    mock_runner.return_value.run.assert_not_called()


def test_main_forwards_runner_exit_code(mock_runner, no_settings):
    mock_runner.return_value.run.return_value = 42
    assert main(["prog.c", "a", "b"]) == 42
    mock_runner.return_value.run.assert_called_once_with("prog.c", ["a", "b"])


def test_main_reports_fatal_errors(capsys, mock_runner, no_settings):
    mock_runner.return_value.run.side_effect = CompilationError("compilation failed")
    assert main(["prog.c"]) == 1
    err = capsys.readouterr().err.strip().splitlines()
    assert err == ["error: compilation failed"]


def test_main_releases_binary_after_run(mocker, tmp_path, no_settings):
    binary = tmp_path / "prog"

    def fake_run(self, source_file, program_args):
        binary.write_text("")
        self.cleaner.track(binary)
        return 0

    mocker.patch("compile_runner.cli.CompileRunner.run", fake_run)
    assert main(["--outdir", str(tmp_path), "prog.c"]) == 0
    assert not binary.exists()


def test_main_keep_retains_binary(mocker, tmp_path, no_settings):
    binary = tmp_path / "prog"

    def fake_run(self, source_file, program_args):
        binary.write_text("")
        self.cleaner.track(binary)
        return 0

    mocker.patch("compile_runner.cli.CompileRunner.run", fake_run)
    assert main(["--keep", "--outdir", str(tmp_path), "prog.c"]) == 0
    assert binary.exists()


def test_main_forwards_double_dash(mock_runner, no_settings):
    assert main(["prog.c", "--", "x"]) == 0
    mock_runner.return_value.run.assert_called_once_with("prog.c", ["--", "x"])


def test_main_rejects_combined_short_flags(capsys, mock_runner, no_settings):
    assert main(["-dv", "prog.c"]) == 1
    assert "error: unknown option: -dv" in capsys.readouterr().err
    mock_runner.return_value.run.assert_not_called()


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX only")
def test_main_sigterm_while_program_runs(mocker, tmp_path, no_settings):
    binary = tmp_path / "prog"
    child = tmp_path / "child"
    child.write_text('#!/bin/sh\nkill -TERM "$PPID"\nsleep 5\n')
    child.chmod(0o755)

    def fake_run(self, source_file, program_args):
        binary.write_text("")
        self.cleaner.track(binary)
        return ExecutionManager().execute(child)

    mocker.patch("compile_runner.cli.CompileRunner.run", fake_run)
    with pytest.raises(SystemExit) as excinfo:
        main(["--outdir", str(tmp_path), "prog.c"])
    assert excinfo.value.code == 128 + signal.SIGTERM
    assert not binary.exists()
