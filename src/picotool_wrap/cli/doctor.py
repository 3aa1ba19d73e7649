"""``picotool-wrap doctor`` — environment diagnostics command.

Gathers system information and renders a Rich table summarising
whether the runtime environment can drive picotool.

This module lives in the CLI layer — it may import from ``infra``
and ``core``, and it renders via Rich.  No business logic resides
here; it purely collects and displays diagnostic data.
"""

from __future__ import annotations

import platform
import sys
from pathlib import Path

from picotool_wrap.cli import exit_codes
from picotool_wrap.cli.console import console
from picotool_wrap.core.models import SemanticVersion
from picotool_wrap.core.picotool_service import PicotoolService
from picotool_wrap.core.udev_installer import UDEV_RULES_DIR
from picotool_wrap.exceptions import InternalInvariantError, PicotoolWrapError
from picotool_wrap.infra.process_runner import SubprocessRunner
from picotool_wrap.infra.tool_locator import (
    UDEV_RULES_NAME,
    SystemToolLocator,
    detect_picotool,
)
from picotool_wrap.version import __version__


# ---------------------------------------------------------------------------
# Diagnostic collectors
# ---------------------------------------------------------------------------

def _python_version_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the Python version row."""
    version = platform.python_version()
    major, minor = sys.version_info[:2]
    ok = (major, minor) >= (3, 10)
    status = "[green]OK[/green]" if ok else "[red]FAIL (>=3.10 required)[/red]"
    return "Python", version, status


def _picotool_check(explicit: str | None = None) -> tuple[str, str, str]:
    """Return (label, value, status) for the picotool binary row."""
    status_obj = detect_picotool(explicit)
    if status_obj.found:
        path_str = str(status_obj.path) if status_obj.path else "found"
        return "picotool", f"{path_str} ({status_obj.source})", "[green]OK[/green]"
    return "picotool", "not found", "[red]FAIL[/red]"


def _picotool_version_check(explicit: str | None = None) -> tuple[str, str, str]:
    """Return (label, value, status) for the picotool version row."""
    if not detect_picotool(explicit).found:
        return "picotool version", "unknown", "[yellow]WARN[/yellow]"

    service = PicotoolService(SystemToolLocator(explicit), SubprocessRunner())
    try:
        version = service.version(semantic=True)
    except PicotoolWrapError as exc:
        return "picotool version", str(exc), "[yellow]WARN[/yellow]"
    if not isinstance(version, SemanticVersion):
        raise InternalInvariantError(f"Expected a parsed version, got {version!r}.")
    return "picotool version", str(version), "[green]OK[/green]"


def _udev_check(rules_dir: Path = UDEV_RULES_DIR) -> tuple[str, str, str]:
    """Return (label, value, status) for the udev rules row."""
    if platform.system() != "Linux":
        return "udev rules", "not applicable", "[green]OK[/green]"
    target = rules_dir / UDEV_RULES_NAME
    if target.exists():
        return "udev rules", str(target), "[green]OK[/green]"
    return "udev rules", "not installed", "[yellow]WARN[/yellow]"


def _os_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the OS row."""
    system_raw = platform.system()
    system_display = {
        "Windows": "Windows",
        "Linux": "Linux",
        "Darwin": "macOS",
    }.get(system_raw, system_raw)
    release = platform.release()
    machine = platform.machine()
    value = f"{system_display} {release} ({machine})"
    return "OS", value, "[green]OK[/green]"


def _wrapper_version_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the picotool-wrap version row."""
    return "picotool-wrap", __version__, "[green]OK[/green]"


def _status_plain(status: str) -> str:
    """Convert rich-markup status to plain text."""
    if "FAIL" in status:
        return "FAIL"
    if "WARN" in status:
        return "WARN"
    if "OK" in status:
        return "OK"
    return status


def _print_plain_doctor_table(checks: list[tuple[str, str, str]]) -> None:
    """Render doctor output without Rich."""
    print("\npicotool-wrap doctor", file=sys.stderr)
    print("=" * 64, file=sys.stderr)
    print(f"{'Component':<18} {'Value':<36} {'Status':<8}", file=sys.stderr)
    print("-" * 64, file=sys.stderr)
    for label, value, status in checks:
        plain_status = _status_plain(status)
        print(f"{label:<18} {value:<36} {plain_status:<8}", file=sys.stderr)
    print(file=sys.stderr)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def run_doctor(picotool: str | None = None) -> int:
    """Execute all diagnostic checks and render a summary table.

    Returns
    -------
    int
        :data:`exit_codes.SUCCESS` when all critical checks pass,
        :data:`exit_codes.GENERAL_ERROR` if a critical check fails.
    """
    checks = [
        _wrapper_version_check(),
        _python_version_check(),
        _picotool_check(picotool),
        _picotool_version_check(picotool),
        _udev_check(),
        _os_check(),
    ]

    has_failure = any("FAIL" in status for _, _, status in checks)

    rich_available = True
    try:
        from rich.table import Table
    except ModuleNotFoundError:
        rich_available = False

    if rich_available:
        table = Table(
            title="picotool-wrap doctor",
            show_header=True,
            header_style="bold cyan",
            border_style="dim",
        )
        table.add_column("Component", style="bold", min_width=12)
        table.add_column("Value", min_width=20)
        table.add_column("Status", justify="center", min_width=8)

        for label, value, status in checks:
            table.add_row(label, value, status)

        console.print()
        console.print(table)
        console.print()
    else:
        _print_plain_doctor_table(checks)

    # Show picotool install guidance when missing.
    picotool_status = detect_picotool(picotool)
    if not picotool_status.found and picotool_status.install_commands:
        console.print("picotool is not installed.")
        console.print("Install using one of the following commands:\n")
        for cmd in picotool_status.install_commands:
            console.print(f"  {cmd}")
        console.print()

    if has_failure:
        console.print("Some checks failed.")
        return exit_codes.GENERAL_ERROR

    console.print("All checks passed.")
    return exit_codes.SUCCESS
