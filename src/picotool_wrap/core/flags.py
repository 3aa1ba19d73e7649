"""Flag assembly: typed request parameters → picotool argument vectors.

Every public ``build_*`` function validates its inputs and returns a
:class:`~picotool_wrap.core.models.CommandInvocation` without spawning
anything.  The only outside state consulted is whether a file path
exists, which must be settled before picotool runs.

Argument order is fixed per operation.  picotool itself does not care
about flag order, but a stable vector keeps logs reproducible and tests
exact.
"""

from __future__ import annotations

import enum
from collections.abc import Sequence
from os import PathLike
from pathlib import Path
from typing import TypeVar

from picotool_wrap.core.models import (
    AddressRange,
    AllFlashData,
    CommandInvocation,
    ConnectionSelector,
    EntireProgram,
    InfoKind,
    OverwritePolicy,
    RebootTarget,
    SaveSelector,
)
from picotool_wrap.exceptions import InternalInvariantError, ValidationError

StrPath = str | PathLike[str]

SAVE_EXTENSIONS: tuple[str, ...] = ("elf", "uf2", "bin")
"""File extensions picotool can write a flash dump to."""

DEFAULT_BIN_OFFSET: int = 0x10000000
"""Start of XIP flash; the load address assumed for raw BIN files."""

_E = TypeVar("_E", bound=enum.Enum)


# ---------------------------------------------------------------------------
# Shared helpers (pure)
# ---------------------------------------------------------------------------

def coerce_enum(enum_cls: type[_E], value: _E | str, what: str) -> _E:
    """Accept an enum member or its raw value; reject anything else."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(
            f"Unknown {what}: {value!r}.",
            hint=f"Expected one of: {allowed}.",
        ) from None


def format_hex(value: int) -> str:
    """Render an address the way picotool prints them (``0x10000000``)."""
    return f"0x{value:x}"


def force_flags(force: bool, reboot_after: bool) -> list[str]:
    """``-f`` forces a reset and reboots afterwards, ``-F`` only forces."""
    if not force:
        return []
    return ["-f"] if reboot_after else ["-F"]


def connection_flags(connection: ConnectionSelector | None) -> list[str]:
    if connection is None:
        return []
    return ["--bus", str(connection.bus), "--address", str(connection.address)]


def range_flags(span: AddressRange) -> list[str]:
    return ["-r", format_hex(span.start), format_hex(span.end)]


def _is_bin(path: Path) -> bool:
    return path.suffix.lower() == ".bin"


def _require_existing_file(path: Path) -> None:
    if not path.is_file():
        raise ValidationError(
            f"There is no file at '{path}'.",
            hint="Check the path and try again.",
        )


def _require_bin_for_offset(path: Path, offset: int | None) -> None:
    if offset is None:
        return
    if not _is_bin(path):
        raise ValidationError(
            f"An offset can only be given for BIN files, not '{path.name}'.",
            hint="ELF and UF2 files carry their own load addresses.",
        )
    if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
        raise ValidationError(f"Offset must be a non-negative integer, got {offset!r}.")


# ---------------------------------------------------------------------------
# help / version
# ---------------------------------------------------------------------------

def build_help(subcommand: str | None = None) -> CommandInvocation:
    """``picotool help [subcommand]``."""
    args = ["help"]
    if subcommand:
        args.append(subcommand)
    return CommandInvocation(args=tuple(args))


def build_version(*, semantic: bool = False) -> CommandInvocation:
    """``picotool version [-s]``; output is captured and exit status checked."""
    args = ["version"]
    if semantic:
        args.append("-s")
    return CommandInvocation(args=tuple(args), ignore_status=False, capture_stdout=True)


# ---------------------------------------------------------------------------
# reboot
# ---------------------------------------------------------------------------

_REBOOT_FLAGS: dict[RebootTarget, str] = {
    RebootTarget.APPLICATION: "-a",
    RebootTarget.BOOTSEL: "-u",
}


def build_reboot(
    target: RebootTarget | str = RebootTarget.APPLICATION,
    *,
    force: bool = True,
    connection: ConnectionSelector | None = None,
) -> CommandInvocation:
    """``picotool reboot (-a|-u) [--bus N --address N] [-F]``.

    Rebooting is best effort, so a nonzero exit status is always tolerated.
    """
    target = coerce_enum(RebootTarget, target, "reboot target")
    args = ["reboot", _REBOOT_FLAGS[target]]
    args += connection_flags(connection)
    if force:
        args.append("-F")
    return CommandInvocation(args=tuple(args), ignore_status=True)


def decode_reboot(
    args: Sequence[str],
) -> tuple[RebootTarget, bool, ConnectionSelector | None]:
    """Recover ``(target, force, connection)`` from a reboot vector.

    Inverse of :func:`build_reboot`; used to check the encoding is
    lossless and to describe commands in logs.
    """
    if not args or args[0] != "reboot":
        raise ValidationError(f"Not a reboot command: {list(args)!r}.")

    by_flag = {flag: target for target, flag in _REBOOT_FLAGS.items()}
    target: RebootTarget | None = None
    force = False
    bus: int | None = None
    address: int | None = None

    tokens = iter(args[1:])
    for token in tokens:
        if token in by_flag:
            target = by_flag[token]
        elif token == "-F":
            force = True
        elif token in ("--bus", "--address"):
            raw = next(tokens, None)
            if raw is None or not raw.isdecimal():
                raise ValidationError(f"Missing numeric value after {token}.")
            if token == "--bus":
                bus = int(raw)
            else:
                address = int(raw)
        else:
            raise ValidationError(f"Unexpected reboot argument: {token!r}.")

    if target is None:
        raise ValidationError("Reboot command carries no target flag.")
    if (bus is None) != (address is None):
        raise ValidationError("Bus and address must be given together.")
    connection = (
        ConnectionSelector(bus=bus, address=address)
        if bus is not None and address is not None
        else None
    )
    return target, force, connection


# ---------------------------------------------------------------------------
# info
# ---------------------------------------------------------------------------

_INFO_FLAGS: dict[InfoKind, str] = {
    InfoKind.BASIC: "-b",
    InfoKind.PINS: "-p",
    InfoKind.DEVICE: "-d",
    InfoKind.BUILD: "-l",
    InfoKind.ALL: "-a",
}


def build_info(
    kind: InfoKind | str = InfoKind.BASIC,
    *,
    force: bool = False,
    reboot_after: bool = False,
    connection: ConnectionSelector | None = None,
    path: StrPath | None = None,
) -> CommandInvocation:
    """``picotool info <kind> [--bus N --address N] [file] [-f|-F]``.

    Querying a file has no device to reset or address, so *path* is
    rejected together with *force* or *connection*.
    """
    kind = coerce_enum(InfoKind, kind, "info kind")
    if path is not None:
        if force:
            raise ValidationError(
                "Cannot force a reboot when reading info from a file.",
                hint="Drop --force or the file argument.",
            )
        if connection is not None:
            raise ValidationError(
                "Cannot specify both a file and a device bus/address.",
            )

    args = ["info", _INFO_FLAGS[kind]]
    args += connection_flags(connection)
    if path is not None:
        args.append(str(path))
    args += force_flags(force, reboot_after)
    return CommandInvocation(args=tuple(args))


# ---------------------------------------------------------------------------
# verify
# ---------------------------------------------------------------------------

def build_verify(
    path: StrPath,
    *,
    force: bool = False,
    reboot_after: bool = False,
    connection: ConnectionSelector | None = None,
    span: AddressRange | None = None,
    offset: int | None = None,
) -> CommandInvocation:
    """``picotool verify [--bus N --address N] [-f|-F] file [-r LO HI] [-o OFF]``.

    BIN files carry no load address, so one defaults to
    :data:`DEFAULT_BIN_OFFSET` when not given.
    """
    file = Path(path)
    _require_existing_file(file)
    _require_bin_for_offset(file, offset)
    if offset is None and _is_bin(file):
        offset = DEFAULT_BIN_OFFSET

    args = ["verify"]
    args += connection_flags(connection)
    args += force_flags(force, reboot_after)
    args.append(str(path))
    if span is not None:
        args += range_flags(span)
    if offset is not None:
        args += ["-o", format_hex(offset)]
    return CommandInvocation(args=tuple(args))


# ---------------------------------------------------------------------------
# save
# ---------------------------------------------------------------------------

def save_selector_flags(selector: SaveSelector) -> list[str]:
    """Exhaustive mapping of the save selector variants."""
    if isinstance(selector, EntireProgram):
        return ["-p"]
    if isinstance(selector, AllFlashData):
        return ["-a"]
    if isinstance(selector, AddressRange):
        return range_flags(selector)
    raise InternalInvariantError(f"Unhandled save selector: {selector!r}")


def build_save(
    path: StrPath,
    *,
    selector: SaveSelector = EntireProgram(),
    force: bool = False,
    reboot_after: bool = False,
    connection: ConnectionSelector | None = None,
) -> CommandInvocation:
    """``picotool save (-p|-a|-r LO HI) [--bus N --address N] [-f|-F] file``.

    The output file must not exist yet; picotool would silently replace it.
    """
    file = Path(path)
    if file.exists():
        raise ValidationError(
            f"There is already a file at '{file}'.",
            hint="Remove it or choose another output name.",
        )
    ext = file.suffix.lower().lstrip(".")
    if ext not in SAVE_EXTENSIONS:
        raise ValidationError(
            f"Unsupported output extension for '{file.name}'.",
            hint="File extension must be one of: elf, uf2, bin.",
        )

    args = ["save"]
    args += save_selector_flags(selector)
    args += connection_flags(connection)
    args += force_flags(force, reboot_after)
    args.append(str(path))
    return CommandInvocation(args=tuple(args))


# ---------------------------------------------------------------------------
# load
# ---------------------------------------------------------------------------

def overwrite_flags(policy: OverwritePolicy) -> list[str]:
    if policy is OverwritePolicy.ALWAYS:
        return []
    if policy is OverwritePolicy.NO_OVERWRITE:
        return ["-n"]
    if policy is OverwritePolicy.NO_OVERWRITE_UNSAFE:
        return ["-N"]
    raise InternalInvariantError(f"Unhandled overwrite policy: {policy!r}")


def build_load(
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
) -> CommandInvocation:
    """``picotool load [-n|-N] [-u] [-v] [-x] file [-o OFF] [--bus N --address N] [-f|-F]``."""
    file = Path(path)
    _require_existing_file(file)
    _require_bin_for_offset(file, offset)
    policy = coerce_enum(OverwritePolicy, overwrite, "overwrite policy")

    args = ["load"]
    args += overwrite_flags(policy)
    if skip_identical:
        args.append("-u")
    if verify_after_write:
        args.append("-v")
    if execute:
        args.append("-x")
    args.append(str(path))
    if offset is not None:
        args += ["-o", format_hex(offset)]
    args += connection_flags(connection)
    args += force_flags(force, reboot_after)
    return CommandInvocation(args=tuple(args))
