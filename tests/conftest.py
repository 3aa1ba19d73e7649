"""Shared pytest fixtures and configuration for the picotool-wrap test suite.

Guidelines
----------
* No real picotool, sudo or udevadm is ever executed.
* Processes are faked at the :class:`ProcessRunner` boundary.
* Flag-assembly tests must be pure apart from ``tmp_path`` files.
* Tests must not depend on OS state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from os import PathLike
from pathlib import Path

import pytest

from picotool_wrap.core.models import CommandInvocation, ProcessResult
from picotool_wrap.exceptions import ExternalProcessError

SAMPLE_RULES = (
    '# Raspberry Pi picotool\r\n'
    'SUBSYSTEM=="usb", ATTRS{idVendor}=="2e8a", ATTRS{idProduct}=="0003", MODE="0666"\n'
    'SUBSYSTEM=="usb", ATTRS{idVendor}=="2e8a", ATTRS{idProduct}=="000f", MODE="666", GROUP="plugdev"\n'
    '\n'
    '# MODE is left alone without quotes: MODE=0666\n'
)


@dataclass
class FakeRunner:
    """Records every call; returns canned results keyed by executable."""

    returncode: int = 0
    stdout: bytes = b""
    fail_on: set[str] = field(default_factory=set)
    calls: list[tuple[str, CommandInvocation]] = field(default_factory=list)

    def run(
        self,
        executable: str | PathLike[str],
        invocation: CommandInvocation,
    ) -> ProcessResult:
        exe = str(executable)
        self.calls.append((exe, invocation))
        if invocation.args and invocation.args[0] in self.fail_on:
            raise ExternalProcessError(
                f"{invocation.args[0]} failed",
                command=(exe, *invocation.args),
                returncode=1,
            )
        return ProcessResult(
            returncode=self.returncode,
            stdout=self.stdout if invocation.capture_stdout else None,
        )


@dataclass
class FakeLocator:
    binary: Path
    rules: Path

    def picotool_path(self) -> Path:
        return self.binary

    def udev_rules_path(self) -> Path:
        return self.rules


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def rules_file(tmp_path: Path) -> Path:
    path = tmp_path / "share" / "99-picotool.rules"
    path.parent.mkdir(parents=True)
    path.write_bytes(SAMPLE_RULES.encode("utf-8"))
    return path


@pytest.fixture
def locator(tmp_path: Path, rules_file: Path) -> FakeLocator:
    return FakeLocator(binary=tmp_path / "bin" / "picotool", rules=rules_file)
