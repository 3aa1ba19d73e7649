"""CLI application entry point and command routing for picotool-wrap.

This module is the **sole error boundary** for the entire application.
It catches :class:`~picotool_wrap.exceptions.PicotoolWrapError`,
``KeyboardInterrupt``, and any unexpected ``Exception``, rendering
user-friendly messages via Rich and returning well-defined exit codes.

Architecture notes
------------------
* No business logic lives here — all work is delegated to
  :class:`~picotool_wrap.core.picotool_service.PicotoolService`.
* picotool's own stdout/stderr pass straight through to the terminal.
* This module is the only place that translates between the domain world
  and the OS process exit code.
"""

from __future__ import annotations

import argparse
import sys
import warnings
from collections.abc import Callable

from picotool_wrap.cli import exit_codes
from picotool_wrap.cli.console import configure_logging, console
from picotool_wrap.core.models import (
    AddressRange,
    AllFlashData,
    ConnectionSelector,
    EntireProgram,
    InfoKind,
    OverwritePolicy,
    RebootTarget,
    SaveSelector,
)
from picotool_wrap.core.picotool_service import PicotoolService
from picotool_wrap.core.udev_installer import UdevInstallReport
from picotool_wrap.exceptions import (
    AlreadyInstalledWarning,
    EnvironmentError,
    PicotoolWrapError,
    ValidationError,
)
from picotool_wrap.version import __version__

Handler = Callable[[argparse.Namespace], int]


# ---------------------------------------------------------------------------
# Argument types
# ---------------------------------------------------------------------------

def _parse_int(text: str) -> int:
    """Accept decimal or ``0x``-prefixed hexadecimal."""
    try:
        value = int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {text!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {text!r}")
    return value


def _add_connection_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--bus", type=_parse_int, help="USB bus of the target device.")
    parser.add_argument("--address", type=_parse_int, help="USB address of the target device.")


def _add_force_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-F",
        "--force",
        action="store_true",
        help="Reset a device that is running compatible code into BOOTSEL.",
    )
    parser.add_argument(
        "--reboot",
        action="store_true",
        help="With --force, reboot into the application afterwards.",
    )


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    """Construct the top-level argument parser with one subcommand per operation."""
    parser = argparse.ArgumentParser(
        prog="picotool-wrap",
        description="Typed front end for the Raspberry Pi picotool binary.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every command run.")
    parser.add_argument("--picotool", metavar="PATH", help="picotool binary to use (env: PICOTOOL_PATH).")
    parser.add_argument("--rules", metavar="PATH", help="udev rules file (env: PICOTOOL_UDEV_RULES).")

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p = sub.add_parser("help", help="Show picotool's own help.")
    p.add_argument("subcommand", nargs="?", help="picotool command to describe.")
    p.set_defaults(handler=_handle_help)

    p = sub.add_parser("reboot", help="Reboot the device.")
    p.add_argument("--bootsel", action="store_true", help="Reboot into BOOTSEL mode.")
    p.add_argument("--no-force", dest="force", action="store_false", help="Do not force a reset.")
    _add_connection_args(p)
    p.set_defaults(handler=_handle_reboot)

    p = sub.add_parser("info", help="Show information about the device or a file.")
    p.add_argument(
        "--kind",
        choices=[kind.value for kind in InfoKind],
        default=InfoKind.BASIC.value,
        help="Which section to show (default: basic).",
    )
    p.add_argument("path", nargs="?", help="Read info from this file instead of a device.")
    _add_force_args(p)
    _add_connection_args(p)
    p.set_defaults(handler=_handle_info)

    p = sub.add_parser("verify", help="Check device memory against a file.")
    p.add_argument("path", help="ELF, UF2 or BIN file to compare with.")
    p.add_argument("--range", nargs=2, type=_parse_int, metavar=("LO", "HI"), help="Sub-range to verify.")
    p.add_argument("--offset", type=_parse_int, help="Load address of a BIN file.")
    _add_force_args(p)
    _add_connection_args(p)
    p.set_defaults(handler=_handle_verify)

    p = sub.add_parser("save", help="Save device memory into a new file.")
    p.add_argument("path", help="Output file (.elf, .uf2 or .bin); must not exist.")
    what = p.add_mutually_exclusive_group()
    what.add_argument("--program", action="store_true", help="Save the program only (default).")
    what.add_argument("--all", action="store_true", help="Save all of flash.")
    what.add_argument("--range", nargs=2, type=_parse_int, metavar=("LO", "HI"), help="Save an address range.")
    _add_force_args(p)
    _add_connection_args(p)
    p.set_defaults(handler=_handle_save)

    p = sub.add_parser("load", help="Write a file onto the device.")
    p.add_argument("path", help="ELF, UF2 or BIN file to load.")
    p.add_argument("--skip-identical", action="store_true", help="Skip flash sectors that already match.")
    p.add_argument("--no-verify", dest="verify", action="store_false", help="Do not verify after writing.")
    p.add_argument("--execute", action="store_true", help="Run the program after loading.")
    p.add_argument("--offset", type=_parse_int, help="Load address of a BIN file.")
    overwrite = p.add_mutually_exclusive_group()
    overwrite.add_argument("--no-overwrite", action="store_true", help="Never overwrite an existing program.")
    overwrite.add_argument(
        "--no-overwrite-unsafe",
        action="store_true",
        help="Like --no-overwrite, but continue when the program size is unknown.",
    )
    _add_force_args(p)
    _add_connection_args(p)
    p.set_defaults(handler=_handle_load)

    p = sub.add_parser("version", help="Show the picotool version.")
    p.add_argument("--semantic", action="store_true", help="Print only MAJOR.MINOR.PATCH.")
    p.set_defaults(handler=_handle_version)

    p = sub.add_parser("install-udev", help="Install the picotool udev rules (Linux).")
    p.add_argument("--live", action="store_true", help="Actually change the system (default: dry run).")
    p.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation prompt.")
    p.set_defaults(handler=_handle_install_udev)

    p = sub.add_parser("doctor", help="Run environment diagnostics.")
    p.set_defaults(handler=_handle_doctor)

    return parser


# ---------------------------------------------------------------------------
# Service construction
# ---------------------------------------------------------------------------

def _build_service(args: argparse.Namespace) -> PicotoolService:
    """Wire the concrete locator and runner into the service."""
    from picotool_wrap.infra.process_runner import SubprocessRunner
    from picotool_wrap.infra.tool_locator import SystemToolLocator

    locator = SystemToolLocator(
        picotool=getattr(args, "picotool", None),
        rules=getattr(args, "rules", None),
    )
    return PicotoolService(locator, SubprocessRunner())


def _connection(args: argparse.Namespace) -> ConnectionSelector | None:
    bus: int | None = args.bus
    address: int | None = args.address
    if bus is None and address is None:
        return None
    if bus is None or address is None:
        raise ValidationError(
            "--bus and --address must be given together.",
        )
    return ConnectionSelector(bus=bus, address=address)


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------

def _handle_help(args: argparse.Namespace) -> int:
    _build_service(args).help(args.subcommand)
    return exit_codes.SUCCESS


def _handle_reboot(args: argparse.Namespace) -> int:
    target = RebootTarget.BOOTSEL if args.bootsel else RebootTarget.APPLICATION
    _build_service(args).reboot(target, force=args.force, connection=_connection(args))
    return exit_codes.SUCCESS


def _handle_info(args: argparse.Namespace) -> int:
    _build_service(args).info(
        InfoKind(args.kind),
        force=args.force,
        reboot_after=args.reboot,
        connection=_connection(args),
        path=args.path,
    )
    return exit_codes.SUCCESS


def _handle_verify(args: argparse.Namespace) -> int:
    span = AddressRange(*args.range) if args.range else None
    _build_service(args).verify(
        args.path,
        force=args.force,
        reboot_after=args.reboot,
        connection=_connection(args),
        span=span,
        offset=args.offset,
    )
    return exit_codes.SUCCESS


def _handle_save(args: argparse.Namespace) -> int:
    selector: SaveSelector
    if args.range:
        selector = AddressRange(*args.range)
    elif args.all:
        selector = AllFlashData()
    else:
        selector = EntireProgram()
    _build_service(args).save(
        args.path,
        selector=selector,
        force=args.force,
        reboot_after=args.reboot,
        connection=_connection(args),
    )
    return exit_codes.SUCCESS


def _handle_load(args: argparse.Namespace) -> int:
    if args.no_overwrite:
        policy = OverwritePolicy.NO_OVERWRITE
    elif args.no_overwrite_unsafe:
        policy = OverwritePolicy.NO_OVERWRITE_UNSAFE
    else:
        policy = OverwritePolicy.ALWAYS
    _build_service(args).load(
        args.path,
        force=args.force,
        reboot_after=args.reboot,
        connection=_connection(args),
        skip_identical=args.skip_identical,
        verify_after_write=args.verify,
        execute=args.execute,
        offset=args.offset,
        overwrite=policy,
    )
    return exit_codes.SUCCESS


def _handle_version(args: argparse.Namespace) -> int:
    result = _build_service(args).version(semantic=args.semantic)
    if args.semantic:
        print(result)
    else:
        sys.stdout.flush()
        sys.stdout.buffer.write(str(result).encode("utf-8", errors="surrogateescape"))
        sys.stdout.buffer.flush()
    return exit_codes.SUCCESS


def _print_install_report(report: UdevInstallReport) -> None:
    console.print(f"\nudev install finished in state: {report.state.value}")
    if report.dry_run and report.planned:
        console.print("Dry run - these commands would have been run:")
        for command in report.planned:
            console.print(f"  {' '.join(command.argv)}")
        console.print("Re-run with --live to apply.")


def _handle_install_udev(args: argparse.Namespace) -> int:
    from picotool_wrap.core.udev_installer import UDEV_RULES_DIR

    sleep: Callable[[float], None] | None = None
    if args.live:
        if not args.yes:
            from picotool_wrap.cli.confirm_prompt import confirm_live_install

            if not confirm_live_install(str(UDEV_RULES_DIR)):
                console.print("Nothing was changed.")
                return exit_codes.SUCCESS
        try:
            from picotool_wrap.cli.countdown import RichCountdown

            sleep = RichCountdown("Modifying system udev rules in")
        except EnvironmentError:
            sleep = None

    with warnings.catch_warnings():
        # The installer already logged the abort.
        warnings.simplefilter("ignore", AlreadyInstalledWarning)
        report = _build_service(args).install_udev(dry_run=not args.live, sleep=sleep)
    _print_install_report(report)
    return exit_codes.SUCCESS


def _handle_doctor(args: argparse.Namespace) -> int:
    """Dispatch the ``doctor`` diagnostics command."""
    from picotool_wrap.cli.doctor import run_doctor

    return run_doctor(getattr(args, "picotool", None))


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Run the picotool-wrap CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.  Accepting *argv* enables deterministic testing without
        monkeypatching.

    Returns
    -------
    int
        OS process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    handler: Handler | None = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return exit_codes.SUCCESS

    configure_logging(args.verbose)
    return handler(args)


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    try:
        code = main()
        sys.exit(code)
    except PicotoolWrapError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {exc.hint}")
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {exc}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
