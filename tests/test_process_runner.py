"""Tests for the subprocess runner (infra/process_runner.py).

:func:`subprocess.run` is mocked, so no process is spawned.
"""

from __future__ import annotations

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from picotool_wrap.core.models import CommandInvocation
from picotool_wrap.exceptions import ExternalProcessError
from picotool_wrap.infra.process_runner import STDERR_TAIL_BYTES, SubprocessRunner


def _completed(
    returncode: int = 0,
    stdout: bytes | None = None,
    stderr: bytes | None = None,
) -> MagicMock:
    completed = MagicMock()
    completed.returncode = returncode
    completed.stdout = stdout
    completed.stderr = stderr
    return completed


class TestDefaultMode:
    @patch("picotool_wrap.infra.process_runner.subprocess.run")
    def test_inherits_output(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _completed()
        result = SubprocessRunner().run("/usr/bin/picotool", CommandInvocation(args=("info", "-b")))

        mock_run.assert_called_once_with(
            ["/usr/bin/picotool", "info", "-b"],
            stdout=None,
            stderr=None,
            check=False,
        )
        assert result.returncode == 0
        assert result.stdout is None

    @patch("picotool_wrap.infra.process_runner.subprocess.run")
    def test_nonzero_tolerated(self, mock_run: MagicMock, caplog: pytest.LogCaptureFixture) -> None:
        mock_run.return_value = _completed(returncode=251)
        with caplog.at_level("WARNING", logger="picotool_wrap"):
            result = SubprocessRunner().run("picotool", CommandInvocation(args=("reboot", "-a")))
        assert result.returncode == 251
        assert "status 251" in caplog.text

    @patch("picotool_wrap.infra.process_runner.subprocess.run")
    def test_nonzero_raises_when_checked(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _completed(returncode=1)
        invocation = CommandInvocation(args=("udevadm", "trigger"), ignore_status=False)
        with pytest.raises(ExternalProcessError) as exc_info:
            SubprocessRunner().run("sudo", invocation)
        assert exc_info.value.returncode == 1
        assert exc_info.value.command == ("sudo", "udevadm", "trigger")

    @patch("picotool_wrap.infra.process_runner.subprocess.run")
    def test_failure_carries_stderr_tail(
        self,
        mock_run: MagicMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        mock_run.return_value = _completed(returncode=1, stderr=b"boom\n")
        invocation = CommandInvocation(args=("udevadm", "trigger"), ignore_status=False)
        with pytest.raises(ExternalProcessError) as exc_info:
            SubprocessRunner().run("sudo", invocation)

        assert mock_run.call_args.kwargs["stderr"] is subprocess.PIPE
        assert exc_info.value.stderr == b"boom\n"
        assert "boom" in capsys.readouterr().err

    @patch("picotool_wrap.infra.process_runner.subprocess.run")
    def test_stderr_tail_is_bounded(self, mock_run: MagicMock) -> None:
        noise = b"x" * (STDERR_TAIL_BYTES * 2) + b"last line\n"
        mock_run.return_value = _completed(returncode=2, stderr=noise)
        invocation = CommandInvocation(args=("install",), ignore_status=False)
        with pytest.raises(ExternalProcessError) as exc_info:
            SubprocessRunner().run("sudo", invocation)

        tail = exc_info.value.stderr
        assert tail is not None
        assert len(tail) == STDERR_TAIL_BYTES
        assert tail.endswith(b"last line\n")

    @patch("picotool_wrap.infra.process_runner.subprocess.run")
    def test_tolerated_run_leaves_stderr_alone(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _completed(returncode=1)
        SubprocessRunner().run("picotool", CommandInvocation(args=("reboot", "-a")))
        assert mock_run.call_args.kwargs["stderr"] is None


class TestCaptureMode:
    @patch("picotool_wrap.infra.process_runner.subprocess.run")
    def test_captures_stdout(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _completed(stdout=b"2.1.0\n")
        invocation = CommandInvocation(
            args=("version", "-s"),
            ignore_status=False,
            capture_stdout=True,
        )
        result = SubprocessRunner().run("picotool", invocation)

        assert mock_run.call_args.kwargs["stdout"] is subprocess.PIPE
        assert result.stdout == b"2.1.0\n"


class TestSpawnFailures:
    @patch("picotool_wrap.infra.process_runner.subprocess.run", side_effect=FileNotFoundError)
    def test_missing_executable(self, _mock_run: MagicMock) -> None:
        with pytest.raises(ExternalProcessError, match="not found") as exc_info:
            SubprocessRunner().run("/nope/picotool", CommandInvocation(args=("help",)))
        assert exc_info.value.hint is not None

    @patch("picotool_wrap.infra.process_runner.subprocess.run", side_effect=PermissionError("denied"))
    def test_os_error(self, _mock_run: MagicMock) -> None:
        with pytest.raises(ExternalProcessError, match="Could not start"):
            SubprocessRunner().run("picotool", CommandInvocation(args=("help",)))
