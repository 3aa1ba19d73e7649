"""Subprocess-backed implementation of :class:`~picotool_wrap.core.protocols.ProcessRunner`.

This module is the **only** place in the codebase that spawns processes.
``OSError`` and nonzero exits that matter are caught here and re-raised
as typed :class:`~picotool_wrap.exceptions.PicotoolWrapError` subclasses.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import sys
from os import PathLike

from picotool_wrap.core.models import CommandInvocation, ProcessResult
from picotool_wrap.exceptions import ExternalProcessError

logger = logging.getLogger(__name__)

STDERR_TAIL_BYTES: int = 4096


class SubprocessRunner:
    """Concrete :class:`ProcessRunner` backed by :func:`subprocess.run`.

    Default mode inherits the parent's stdout/stderr so picotool's own
    diagnostics reach the terminal.  Capture mode collects stdout into
    memory while stderr still goes to the terminal.

    When the exit status is checked, stderr is captured as well, echoed
    to the terminal once the command ends, and its last
    :data:`STDERR_TAIL_BYTES` are attached to the raised error.

    This class satisfies the :class:`~picotool_wrap.core.protocols.ProcessRunner`
    protocol structurally — no explicit inheritance required.
    """

    def run(
        self,
        executable: str | PathLike[str],
        invocation: CommandInvocation,
    ) -> ProcessResult:
        """Spawn *executable* with ``invocation.args`` and wait for it.

        Raises
        ------
        ExternalProcessError
            When the process cannot be started, or exits nonzero while
            ``invocation.ignore_status`` is false.
        """
        argv = [str(executable), *invocation.args]
        logger.debug("Running: %s", shlex.join(argv))
        capture_stderr = not invocation.ignore_status

        try:
            completed = subprocess.run(
                argv,
                stdout=subprocess.PIPE if invocation.capture_stdout else None,
                stderr=subprocess.PIPE if capture_stderr else None,
                check=False,
            )
        except FileNotFoundError as exc:
            raise ExternalProcessError(
                f"Executable not found: {argv[0]}",
                command=argv,
                hint=f"Check that {argv[0]} is installed and on PATH.",
            ) from exc
        except OSError as exc:
            raise ExternalProcessError(
                f"Could not start {argv[0]}: {exc}",
                command=argv,
            ) from exc

        stdout: bytes | None = completed.stdout if invocation.capture_stdout else None
        stderr: bytes | None = completed.stderr if capture_stderr else None
        if stderr:
            _echo_stderr(stderr)

        if completed.returncode != 0:
            if not invocation.ignore_status:
                raise ExternalProcessError(
                    f"Command failed with exit status {completed.returncode}: "
                    f"{shlex.join(argv)}",
                    command=argv,
                    returncode=completed.returncode,
                    stderr=stderr[-STDERR_TAIL_BYTES:] if stderr is not None else None,
                )
            logger.warning(
                "%s exited with status %d",
                shlex.join(argv),
                completed.returncode,
            )

        return ProcessResult(returncode=completed.returncode, stdout=stdout)


def _echo_stderr(data: bytes) -> None:
    """Replay captured stderr so the operator still sees it."""
    sys.stderr.write(data.decode("utf-8", errors="replace"))
    sys.stderr.flush()
