import io
import subprocess
from unittest.mock import MagicMock

import pytest

from .utils import (
    FileManager,
    FileOperationError,
    ProcessManager,
    SystemInfo,
    filter_lines,
    normalize_exit_code,
)


@pytest.mark.parametrize(
    "return_code,expected", [(0, 0), (3, 3), (255, 255), (-2, 130), (-15, 143)]
)
def test_normalize_exit_code(return_code, expected):
    assert normalize_exit_code(return_code) == expected


def test_filter_lines_drops_marker_lines():
    sink = io.StringIO()
    lines = [
        "a.c:1: warning: unused variable\n",
        "a.c:2: error: expected ';'\n",
        "note: here\n",
    ]
    assert filter_lines(lines, "warning", sink) == 1
    assert sink.getvalue() == "a.c:2: error: expected ';'\nnote: here\n"


def test_filter_lines_is_case_sensitive():
    sink = io.StringIO()
    assert filter_lines(["Warning: loud\n"], "warning", sink) == 0
    assert sink.getvalue() == "Warning: loud\n"


def test_cpu_count_is_positive():
    assert SystemInfo.get_cpu_count() >= 1


def test_find_executable_missing():
    assert SystemInfo.find_executable("definitely-not-a-real-tool-xyz") is None


def test_ensure_directory(tmp_path):
    target = tmp_path / "a" / "b"
    assert FileManager.ensure_directory(target) == target
    assert target.is_dir()


def test_ensure_directory_on_file(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("")
    with pytest.raises(FileOperationError):
        FileManager.ensure_directory(blocker)


def test_remove_file(tmp_path):
    target = tmp_path / "bin"
    target.write_text("")
    assert FileManager.remove_file(target) is True
    assert FileManager.remove_file(target) is False


def test_is_executable(tmp_path):
    target = tmp_path / "prog"
    target.write_text("")
    assert not FileManager.is_executable(target)
    target.chmod(0o755)
    assert FileManager.is_executable(target)
    assert not FileManager.is_executable(tmp_path)


def test_run_command_captures_output(mocker):
    mock_run = mocker.patch("subprocess.run")
    mock_run.return_value = MagicMock(returncode=0, stdout=b"out\n", stderr=b"")
    result = ProcessManager.run_command(["tool", "--flag"])
    assert result.success
    assert result.stdout == "out"
    assert result.command == ["tool", "--flag"]


def test_run_command_signal_status(mocker):
    mock_run = mocker.patch("subprocess.run")
    mock_run.return_value = MagicMock(returncode=-9, stdout=b"", stderr=b"")
    result = ProcessManager.run_command(["tool"])
    assert result.failed
    assert result.return_code == 137


def test_run_command_not_found(mocker):
    mocker.patch("subprocess.run", side_effect=FileNotFoundError)
    result = ProcessManager.run_command(["missing-tool"])
    assert result.return_code == 127
    assert "missing-tool" in result.stderr


def test_run_quiet_discards_streams(mocker):
    mock_run = mocker.patch("subprocess.run")
    mock_run.return_value = MagicMock(returncode=2)
    result = ProcessManager.run_quiet(["make", "-j4"], cwd="/src")
    assert result.return_code == 2
    kwargs = mock_run.call_args.kwargs
    assert kwargs["stdout"] is subprocess.DEVNULL
    assert kwargs["stderr"] is subprocess.DEVNULL
    assert kwargs["cwd"] == "/src"


def test_run_filtered_uses_line_filter(mocker):
    process = MagicMock()
    process.__enter__.return_value = process
    process.stderr = ["warning: x\n", "error: y\n"]
    process.wait.return_value = 1
    mocker.patch("subprocess.Popen", return_value=process)
    sink = io.StringIO()
    result = ProcessManager.run_filtered(["gcc", "a.c"], "warning", sink)
    assert result.failed
    assert result.return_code == 1
    assert sink.getvalue() == "error: y\n"
