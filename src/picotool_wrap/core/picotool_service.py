"""Core picotool service — the public operations.

Each operation assembles a :class:`CommandInvocation` with
:mod:`picotool_wrap.core.flags`, resolves the binary through an injected
:class:`~picotool_wrap.core.protocols.ToolLocator` and hands both to an
injected :class:`~picotool_wrap.core.protocols.ProcessRunner`.

Guarantees
----------
* Validation errors are raised before any process is spawned.
* Device operations tolerate a nonzero exit status; picotool's own
  diagnostics are forwarded to the terminal instead.
* Only :class:`~picotool_wrap.exceptions.PicotoolWrapError` subclasses
  escape.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from picotool_wrap.core import flags
from picotool_wrap.core.flags import StrPath
from picotool_wrap.core.models import (
    AddressRange,
    CommandInvocation,
    CommandResult,
    ConnectionSelector,
    EntireProgram,
    InfoKind,
    OverwritePolicy,
    ProcessResult,
    RebootTarget,
    SaveSelector,
    SemanticVersion,
)
from picotool_wrap.core.protocols import ProcessRunner, ToolLocator
from picotool_wrap.core.udev_installer import UdevInstallReport, UdevRuleInstaller
from picotool_wrap.core.version_parser import interpret_version_output
from picotool_wrap.exceptions import ExternalProcessError, PicotoolWrapError

logger = logging.getLogger(__name__)


class PicotoolService:
    """Stateless facade over the picotool binary.

    Parameters
    ----------
    locator:
        Any object satisfying the :class:`ToolLocator` protocol.
    runner:
        Any object satisfying the :class:`ProcessRunner` protocol.
    installer_factory:
        Builds the udev installer; overridable for tests.
    """

    def __init__(
        self,
        locator: ToolLocator,
        runner: ProcessRunner,
        *,
        installer_factory: Callable[..., UdevRuleInstaller] | None = None,
    ) -> None:
        self._locator: ToolLocator = locator
        self._runner: ProcessRunner = runner
        self._installer_factory = installer_factory or UdevRuleInstaller

    # ------------------------------------------------------------------
    # Device operations
    # ------------------------------------------------------------------

    def help(self, subcommand: str | None = None) -> CommandResult:
        """Print picotool's own help, optionally for one subcommand."""
        return self._execute(flags.build_help(subcommand))

    def reboot(
        self,
        target: RebootTarget | str = RebootTarget.APPLICATION,
        *,
        force: bool = True,
        connection: ConnectionSelector | None = None,
    ) -> CommandResult:
        """Reboot an attached device into its application or BOOTSEL mode."""
        return self._execute(
            flags.build_reboot(target, force=force, connection=connection),
        )

    def info(
        self,
        kind: InfoKind | str = InfoKind.BASIC,
        *,
        force: bool = False,
        reboot_after: bool = False,
        connection: ConnectionSelector | None = None,
        path: StrPath | None = None,
    ) -> CommandResult:
        """Print information about the attached device, or about *path*."""
        return self._execute(
            flags.build_info(
                kind,
                force=force,
                reboot_after=reboot_after,
                connection=connection,
                path=path,
            ),
        )

    def verify(
        self,
        path: StrPath,
        *,
        force: bool = False,
        reboot_after: bool = False,
        connection: ConnectionSelector | None = None,
        span: AddressRange | None = None,
        offset: int | None = None,
    ) -> CommandResult:
        """Compare the device's memory against the contents of *path*."""
        return self._execute(
            flags.build_verify(
                path,
                force=force,
                reboot_after=reboot_after,
                connection=connection,
                span=span,
                offset=offset,
            ),
        )

    def save(
        self,
        path: StrPath,
        *,
        selector: SaveSelector = EntireProgram(),
        force: bool = False,
        reboot_after: bool = False,
        connection: ConnectionSelector | None = None,
    ) -> CommandResult:
        """Dump program, whole flash or an address range into a new file.

        UF2 output always holds complete 256-byte aligned blocks, so
        picotool widens an :class:`AddressRange` to block boundaries.
        """
        return self._execute(
            flags.build_save(
                path,
                selector=selector,
                force=force,
                reboot_after=reboot_after,
                connection=connection,
            ),
        )

    def load(
        self,
        path: StrPath,
        *,
        force: bool = False,
        reboot_after: bool = False,
        connection: ConnectionSelector | None = None,
        skip_identical: bool = False,
        verify_after_write: bool = True,
        execute: bool = False,
        offset: int | None = None,
        overwrite: OverwritePolicy | str = OverwritePolicy.ALWAYS,
    ) -> CommandResult:
        """Write *path* onto the device."""
        return self._execute(
            flags.build_load(
                path,
                force=force,
                reboot_after=reboot_after,
                connection=connection,
                skip_identical=skip_identical,
                verify_after_write=verify_after_write,
                execute=execute,
                offset=offset,
                overwrite=overwrite,
            ),
        )

    def version(self, *, semantic: bool = False) -> SemanticVersion | str:
        """Return picotool's version.

        With *semantic* the output of ``picotool version -s`` is parsed
        into a :class:`SemanticVersion`; otherwise the human-readable
        text is returned for display.

        Raises
        ------
        ExternalProcessError
            When picotool exits nonzero.
        VersionParseError
            When the semantic output is malformed.
        """
        invocation = flags.build_version(semantic=semantic)
        result = self._spawn(invocation)
        return interpret_version_output(result.stdout or b"", semantic=semantic)

    # ------------------------------------------------------------------
    # udev rules
    # ------------------------------------------------------------------

    def install_udev(
        self,
        *,
        dry_run: bool = True,
        sleep: Callable[[float], None] | None = None,
    ) -> UdevInstallReport:
        """Install the picotool udev rules system wide (Linux only).

        A dry run, the default, patches and stages the rules but runs
        none of the ``sudo`` commands.  *sleep* replaces the pause taken
        before a live run.
        """
        options: dict[str, Callable[[float], None]] = {}
        if sleep is not None:
            options["sleep"] = sleep
        installer = self._installer_factory(self._locator, self._runner, **options)
        return installer.install(dry_run=dry_run)

    # ------------------------------------------------------------------
    # Runner delegation (safe boundary)
    # ------------------------------------------------------------------

    def _execute(self, invocation: CommandInvocation) -> CommandResult:
        result = self._spawn(invocation)
        return CommandResult(invocation=invocation, returncode=result.returncode)

    def _spawn(self, invocation: CommandInvocation) -> ProcessResult:
        """Call the runner and ensure only our exceptions escape."""
        executable = self._locator.picotool_path()
        try:
            return self._runner.run(executable, invocation)
        except PicotoolWrapError:
            raise
        except Exception as exc:
            raise ExternalProcessError(
                f"Unexpected error running picotool: {exc}",
                command=(str(executable), *invocation.args),
            ) from exc
