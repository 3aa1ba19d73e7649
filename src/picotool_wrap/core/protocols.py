"""Protocols (interfaces) consumed by the core layer.

These define the contracts that infrastructure adapters must satisfy.
Core code depends ONLY on these protocols — never on concrete
implementations — so tests can substitute a fake binary and fake
filesystem locations.
"""

from __future__ import annotations

from os import PathLike
from pathlib import Path
from typing import Protocol

from picotool_wrap.core.models import CommandInvocation, ProcessResult


class ToolLocator(Protocol):
    """Contract for resolving the picotool binary and its udev rule file."""

    def picotool_path(self) -> Path:
        """Return the path of the picotool executable.

        Raises
        ------
        PicotoolNotFoundError
            When no binary can be found.
        """
        ...  # pragma: no cover

    def udev_rules_path(self) -> Path:
        """Return the path of the shipped ``99-picotool.rules`` file.

        Raises
        ------
        UdevRulesNotFoundError
            When the rule file cannot be found.
        """
        ...  # pragma: no cover


class ProcessRunner(Protocol):
    """Contract for spawning one external process and waiting for it.

    Implementations must map all OS-level failures to
    :class:`~picotool_wrap.exceptions.PicotoolWrapError` subclasses.
    """

    def run(
        self,
        executable: str | PathLike[str],
        invocation: CommandInvocation,
    ) -> ProcessResult:
        """Run *executable* with ``invocation.args`` and wait for it.

        Raises
        ------
        ExternalProcessError
            When ``invocation.ignore_status`` is false and the process
            exits nonzero, or the process cannot be started.
        """
        ...  # pragma: no cover
