"""Tests for the picotool operation facade (core/picotool_service.py).

The runner and locator are fakes from ``conftest.py``, so no process is
ever spawned.

Coverage:
* Each operation hands the assembled vector to the runner.
* Validation failures never reach the runner.
* Nonzero exit is tolerated for device operations.
* Version capture and parsing.
* Unexpected runner exceptions are wrapped.
* udev install delegation.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from picotool_wrap.core.models import (
    AddressRange,
    ConnectionSelector,
    EntireProgram,
    InfoKind,
    OverwritePolicy,
    RebootTarget,
    SemanticVersion,
)
from picotool_wrap.core.picotool_service import PicotoolService
from picotool_wrap.core.udev_installer import InstallState
from picotool_wrap.exceptions import (
    ExternalProcessError,
    ValidationError,
    VersionParseError,
)


@pytest.fixture
def service(locator, runner) -> PicotoolService:
    return PicotoolService(locator, runner)


# ---------------------------------------------------------------------------
# Device operations
# ---------------------------------------------------------------------------

class TestDeviceOperations:
    def test_help(self, service, runner, locator) -> None:
        result = service.help("info")
        assert runner.calls == [(str(locator.binary), result.invocation)]
        assert result.invocation.args == ("help", "info")

    def test_reboot_defaults(self, service, runner) -> None:
        result = service.reboot()
        assert result.invocation.args == ("reboot", "-a", "-F")

    def test_reboot_bootsel_with_connection(self, service) -> None:
        result = service.reboot(
            RebootTarget.BOOTSEL,
            force=False,
            connection=ConnectionSelector(bus=1, address=2),
        )
        assert result.invocation.args == ("reboot", "-u", "--bus", "1", "--address", "2")

    def test_info(self, service) -> None:
        result = service.info(InfoKind.BUILD, force=True, reboot_after=True)
        assert result.invocation.args == ("info", "-l", "-f")

    def test_verify(self, service, tmp_path: Path) -> None:
        path = tmp_path / "fw.bin"
        path.write_bytes(b"\x00")
        result = service.verify(path, span=AddressRange(0, 0x100))
        assert result.invocation.args == (
            "verify", str(path), "-r", "0x0", "0x100", "-o", "0x10000000",
        )

    def test_save_scenario(self, service, runner, tmp_path: Path) -> None:
        path = tmp_path / "out.bin"
        runner.returncode = 1
        result = service.save(path, selector=EntireProgram())
        assert result.invocation.args[-3:] == ("save", "-p", str(path))
        assert result.returncode == 1
        assert not result.ok
        assert len(runner.calls) == 1

    def test_load(self, service, tmp_path: Path) -> None:
        path = tmp_path / "fw.uf2"
        path.write_bytes(b"UF2\n")
        result = service.load(path, execute=True, overwrite=OverwritePolicy.NO_OVERWRITE)
        assert result.invocation.args == ("load", "-n", "-v", "-x", str(path))


# ---------------------------------------------------------------------------
# Validation never spawns
# ---------------------------------------------------------------------------

class TestValidationBeforeSpawn:
    def test_save_existing_file(self, service, runner, tmp_path: Path) -> None:
        path = tmp_path / "out.uf2"
        path.write_bytes(b"")
        with pytest.raises(ValidationError):
            service.save(path)
        assert runner.calls == []

    def test_save_bad_extension(self, service, runner, tmp_path: Path) -> None:
        with pytest.raises(ValidationError):
            service.save(tmp_path / "out.hex")
        assert runner.calls == []

    def test_load_missing_file(self, service, runner, tmp_path: Path) -> None:
        with pytest.raises(ValidationError):
            service.load(tmp_path / "missing.uf2")
        assert runner.calls == []

    def test_verify_offset_on_elf(self, service, runner, tmp_path: Path) -> None:
        path = tmp_path / "fw.elf"
        path.write_bytes(b"\x7fELF")
        with pytest.raises(ValidationError):
            service.verify(path, offset=0x10000000)
        assert runner.calls == []

    def test_load_offset_on_uf2(self, service, runner, tmp_path: Path) -> None:
        path = tmp_path / "fw.uf2"
        path.write_bytes(b"UF2\n")
        with pytest.raises(ValidationError):
            service.load(path, offset=0x10000000)
        assert runner.calls == []

    def test_info_file_and_force(self, service, runner) -> None:
        with pytest.raises(ValidationError):
            service.info(path="fw.uf2", force=True)
        assert runner.calls == []


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------

class TestVersion:
    def test_semantic(self, service, runner) -> None:
        runner.stdout = b"2.1.0\n"
        assert service.version(semantic=True) == SemanticVersion(2, 1, 0)
        _, invocation = runner.calls[0]
        assert invocation.args == ("version", "-s")
        assert invocation.capture_stdout is True

    def test_human_readable(self, service, runner) -> None:
        runner.stdout = b"picotool v2.1.0 (Linux)\n"
        assert service.version() == "picotool v2.1.0 (Linux)\n"

    def test_malformed_raises(self, service, runner) -> None:
        runner.stdout = b"banana"
        with pytest.raises(VersionParseError):
            service.version(semantic=True)

    def test_process_failure_propagates(self, service, runner) -> None:
        runner.fail_on = {"version"}
        with pytest.raises(ExternalProcessError):
            service.version(semantic=True)


# ---------------------------------------------------------------------------
# Runner boundary
# ---------------------------------------------------------------------------

class TestRunnerBoundary:
    def test_unexpected_exception_is_wrapped(self, locator) -> None:
        runner = MagicMock()
        runner.run.side_effect = RuntimeError("boom")
        service = PicotoolService(locator, runner)

        with pytest.raises(ExternalProcessError, match="boom") as exc_info:
            service.help()
        assert exc_info.value.command[-1] == "help"


# ---------------------------------------------------------------------------
# udev
# ---------------------------------------------------------------------------

class TestInstallUdev:
    def test_delegates_to_factory(self, locator, runner) -> None:
        installer = MagicMock()
        factory = MagicMock(return_value=installer)
        service = PicotoolService(locator, runner, installer_factory=factory)

        service.install_udev(dry_run=False)

        factory.assert_called_once_with(locator, runner)
        installer.install.assert_called_once_with(dry_run=False)

    def test_sleep_is_forwarded(self, locator, runner) -> None:
        factory = MagicMock()
        service = PicotoolService(locator, runner, installer_factory=factory)
        sleep = MagicMock()

        service.install_udev(sleep=sleep)

        factory.assert_called_once_with(locator, runner, sleep=sleep)

    def test_dry_run_end_to_end(self, locator, runner, tmp_path: Path) -> None:
        from picotool_wrap.core import udev_installer

        rules_dir = tmp_path / "rules.d"
        rules_dir.mkdir()
        service = PicotoolService(
            locator,
            runner,
            installer_factory=lambda loc, run, **kw: udev_installer.UdevRuleInstaller(
                loc, run, rules_dir=rules_dir, system=lambda: "Linux", **kw,
            ),
        )

        report = service.install_udev()

        assert report.state is InstallState.DONE
        assert runner.calls == []
