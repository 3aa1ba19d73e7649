"""Installation of the picotool udev rules as an explicit state machine.

The upstream ``99-picotool.rules`` grants ``MODE="0666"`` to every
matching device node.  This workflow rewrites those modes to ``0660``,
stages the patched text in a scratch file and installs it system wide
with ``sudo``.

States
------
::

    IDLE ─▶ CHECK_EXISTING ─┬─▶ ABORTED                (rule file present)
                            └─▶ PATCH ─▶ STAGE_PATCHED ─▶ INSTALL
                                 ─▶ RELOAD_RULES ─▶ TRIGGER_EVENTS ─▶ DONE

Any step that raises moves the machine to ``FAILED`` before the error
propagates.  In dry-run mode (the default) the three privileged
commands are planned and logged but never executed.
"""

from __future__ import annotations

import enum
import logging
import os
import platform
import re
import tempfile
import time
import warnings
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from picotool_wrap.core.models import CommandInvocation
from picotool_wrap.core.protocols import ProcessRunner, ToolLocator
from picotool_wrap.exceptions import (
    AlreadyInstalledWarning,
    InternalInvariantError,
    PlatformError,
)

logger = logging.getLogger(__name__)

UDEV_RULES_DIR: Path = Path("/etc/udev/rules.d")
SAFE_MODE: str = "0660"
LIVE_RUN_DELAY: float = 5.0

_MODE_RE = re.compile(r'MODE="\d+"')


class InstallState(enum.Enum):
    IDLE = "idle"
    CHECK_EXISTING = "check-existing"
    ABORTED = "aborted"
    PATCH = "patch"
    STAGE_PATCHED = "stage-patched"
    INSTALL = "install"
    RELOAD_RULES = "reload-rules"
    TRIGGER_EVENTS = "trigger-events"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STATES: frozenset[InstallState] = frozenset(
    {InstallState.ABORTED, InstallState.DONE, InstallState.FAILED},
)


def patch_rule_modes(text: str, mode: str = SAFE_MODE) -> tuple[str, int]:
    """Rewrite every ``MODE="<digits>"`` field; return ``(text, count)``."""
    return _MODE_RE.subn(f'MODE="{mode}"', text)


@dataclass(frozen=True, slots=True)
class PrivilegedCommand:
    """One ``sudo`` step of the installation."""

    state: InstallState
    description: str
    invocation: CommandInvocation

    @property
    def argv(self) -> tuple[str, ...]:
        return ("sudo", *self.invocation.args)


@dataclass(slots=True)
class UdevInstallReport:
    """What the installer did (or, in a dry run, would have done)."""

    target: Path
    dry_run: bool
    state: InstallState = InstallState.IDLE
    history: list[InstallState] = field(default_factory=list)
    planned: list[PrivilegedCommand] = field(default_factory=list)
    executed: list[PrivilegedCommand] = field(default_factory=list)
    replacements: int = 0

    @property
    def installed(self) -> bool:
        return self.state is InstallState.DONE and not self.dry_run


class UdevRuleInstaller:
    """Drive the udev installation states one step at a time.

    Parameters
    ----------
    locator:
        Resolves the shipped rule file.
    runner:
        Spawns the privileged commands in live mode.
    rules_dir:
        System directory receiving the rule file.
    system:
        Returns the OS name, as :func:`platform.system` does.
    sleep:
        Called once with *delay* seconds before a live run touches anything.
    """

    def __init__(
        self,
        locator: ToolLocator,
        runner: ProcessRunner,
        *,
        rules_dir: Path = UDEV_RULES_DIR,
        system: Callable[[], str] = platform.system,
        sleep: Callable[[float], None] = time.sleep,
        delay: float = LIVE_RUN_DELAY,
    ) -> None:
        self._locator = locator
        self._runner = runner
        self._rules_dir = rules_dir
        self._system = system
        self._sleep = sleep
        self._delay = delay

        self._source: Path | None = None
        self._patched: str = ""
        self._staged: Path | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def install(self, *, dry_run: bool = True) -> UdevInstallReport:
        """Run the state machine to a terminal state.

        Raises
        ------
        PlatformError
            When not running on Linux.
        UdevRulesNotFoundError
            When the shipped rule file cannot be located.
        ExternalProcessError
            When a privileged command fails in live mode.

        Warns
        -----
        AlreadyInstalledWarning
            When the run ended in ``ABORTED``.  The report is complete
            before the warning is issued.
        """
        report = self.start(dry_run=dry_run)
        try:
            while report.state not in TERMINAL_STATES:
                self.step(report)
        finally:
            self.cleanup()
        if report.state is InstallState.ABORTED:
            warnings.warn(
                _already_installed(report.target),
                AlreadyInstalledWarning,
                stacklevel=2,
            )
        return report

    def start(self, *, dry_run: bool = True) -> UdevInstallReport:
        """Return a fresh report in the ``IDLE`` state."""
        return UdevInstallReport(target=self._rules_dir, dry_run=dry_run)

    def step(self, report: UdevInstallReport) -> InstallState:
        """Execute the current state of *report* and move to the next one."""
        if report.state in TERMINAL_STATES:
            return report.state
        try:
            next_state = self._step(report)
        except BaseException:
            self._advance(report, InstallState.FAILED)
            raise
        self._advance(report, next_state)
        return next_state

    def cleanup(self) -> None:
        """Remove the staged scratch file, if any."""
        if self._staged is not None:
            self._staged.unlink(missing_ok=True)
            self._staged = None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @staticmethod
    def _advance(report: UdevInstallReport, state: InstallState) -> None:
        report.history.append(state)
        report.state = state

    def _step(self, report: UdevInstallReport) -> InstallState:
        handlers: dict[InstallState, Callable[[UdevInstallReport], InstallState]] = {
            InstallState.IDLE: self._on_idle,
            InstallState.CHECK_EXISTING: self._on_check_existing,
            InstallState.PATCH: self._on_patch,
            InstallState.STAGE_PATCHED: self._on_stage_patched,
            InstallState.INSTALL: self._on_privileged,
            InstallState.RELOAD_RULES: self._on_privileged,
            InstallState.TRIGGER_EVENTS: self._on_privileged,
        }
        return handlers[report.state](report)

    def _on_idle(self, report: UdevInstallReport) -> InstallState:
        if self._system() != "Linux":
            raise PlatformError(
                "udev rules can only be installed on Linux.",
            )
        self._source = self._locator.udev_rules_path()
        report.target = self._rules_dir / self._source.name
        return InstallState.CHECK_EXISTING

    def _on_check_existing(self, report: UdevInstallReport) -> InstallState:
        if os.path.lexists(report.target):
            logger.warning(_already_installed(report.target))
            return InstallState.ABORTED

        if report.dry_run:
            logger.info("Doing a dry run - no changes will occur.")
        else:
            logger.warning("Doing a live run - your system will be affected.")
            self._sleep(self._delay)
        return InstallState.PATCH

    def _on_patch(self, report: UdevInstallReport) -> InstallState:
        if self._source is None:
            raise InternalInvariantError("Rules are patched before their source was resolved.")
        logger.info("Fixing MODE of udev rules from %s", self._source)
        with open(self._source, encoding="utf-8", newline="") as fh:
            original = fh.read()
        self._patched, report.replacements = patch_rule_modes(original)
        logger.info("Changed %d MODE field(s) to %s", report.replacements, SAFE_MODE)
        return InstallState.STAGE_PATCHED

    def _on_stage_patched(self, report: UdevInstallReport) -> InstallState:
        fd, name = tempfile.mkstemp(prefix="picotool-udev-", suffix=".rules")
        self._staged = Path(name)
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(self._patched)
        logger.debug("Staged patched rules at %s", self._staged)
        report.planned.extend(self._privileged_commands(report.target))
        return InstallState.INSTALL

    def _on_privileged(self, report: UdevInstallReport) -> InstallState:
        command = next(c for c in report.planned if c.state is report.state)
        logger.info("%s: %s", command.description, " ".join(command.argv))
        if not report.dry_run:
            self._runner.run("sudo", command.invocation)
            report.executed.append(command)

        next_state = _NEXT_PRIVILEGED[report.state]
        if next_state is InstallState.DONE:
            logger.info(
                "Done. The rules only grant access to the 'plugdev' group; "
                "make sure your user is a member.",
            )
        return next_state

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _privileged_commands(self, target: Path) -> list[PrivilegedCommand]:
        if self._staged is None:
            raise InternalInvariantError("Privileged commands planned before staging.")
        return [
            PrivilegedCommand(
                state=InstallState.INSTALL,
                description=f"Installing rules file to {target}",
                invocation=CommandInvocation(
                    args=(
                        "install", "-o", "root", "-g", "root", "-m", "0664",
                        str(self._staged), str(target),
                    ),
                    ignore_status=False,
                ),
            ),
            PrivilegedCommand(
                state=InstallState.RELOAD_RULES,
                description="Reloading rules",
                invocation=CommandInvocation(
                    args=("udevadm", "control", "--reload-rules"),
                    ignore_status=False,
                ),
            ),
            PrivilegedCommand(
                state=InstallState.TRIGGER_EVENTS,
                description="Triggering udev events",
                invocation=CommandInvocation(
                    args=("udevadm", "trigger"),
                    ignore_status=False,
                ),
            ),
        ]


def _already_installed(target: Path) -> str:
    return (
        f"udev rule file {target} already exists - aborting. "
        "Check it matches your devices, or remove it and try again."
    )


_NEXT_PRIVILEGED: dict[InstallState, InstallState] = {
    InstallState.INSTALL: InstallState.RELOAD_RULES,
    InstallState.RELOAD_RULES: InstallState.TRIGGER_EVENTS,
    InstallState.TRIGGER_EVENTS: InstallState.DONE,
}
