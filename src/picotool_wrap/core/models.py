"""Domain models for picotool-wrap.

All models are **frozen** dataclasses or enums — immutable value
objects built fresh for each operation and discarded afterwards.  They
carry zero I/O and zero dependencies on external packages.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from picotool_wrap.exceptions import ValidationError


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class RebootTarget(enum.Enum):
    """Which mode ``picotool reboot`` sends the device into."""

    APPLICATION = "application"
    BOOTSEL = "bootsel"


class InfoKind(enum.Enum):
    """The single section ``picotool info`` reports on."""

    BASIC = "basic"
    PINS = "pins"
    DEVICE = "device"
    BUILD = "build"
    ALL = "all"


class OverwritePolicy(enum.Enum):
    """Flash-overwrite safety applied by ``picotool load``.

    ``NO_OVERWRITE`` fails when picotool cannot determine the size of the
    program already in flash; ``NO_OVERWRITE_UNSAFE`` carries on anyway.
    """

    ALWAYS = "always"
    NO_OVERWRITE = "no-overwrite"
    NO_OVERWRITE_UNSAFE = "no-overwrite-unsafe"


# ---------------------------------------------------------------------------
# Addressing
# ---------------------------------------------------------------------------

def _require_unsigned(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {value!r}.")
    if value < 0:
        raise ValidationError(f"{name} must not be negative, got {value}.")


@dataclass(frozen=True, slots=True)
class AddressRange:
    """A span of device memory, passed to picotool as ``-r <start> <end>``."""

    start: int
    end: int

    def __post_init__(self) -> None:
        _require_unsigned("Range start", self.start)
        _require_unsigned("Range end", self.end)
        if self.end < self.start:
            raise ValidationError(
                f"Range end 0x{self.end:x} lies before start 0x{self.start:x}.",
            )


@dataclass(frozen=True, slots=True)
class ConnectionSelector:
    """USB bus/address pair identifying one attached device.

    Both halves are mandatory; "no selector" is expressed as ``None``
    at the call site.
    """

    bus: int
    address: int

    def __post_init__(self) -> None:
        _require_unsigned("Bus", self.bus)
        _require_unsigned("Address", self.address)


# ---------------------------------------------------------------------------
# Save selector (closed sum type)
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class EntireProgram:
    """Save only the program stored in flash."""


@dataclass(frozen=True, slots=True)
class AllFlashData:
    """Save the whole of flash."""


SaveSelector = EntireProgram | AllFlashData | AddressRange
"""What ``picotool save`` dumps.

Note that UF2 output always stores whole 256-byte aligned blocks, so
picotool widens an :class:`AddressRange` accordingly.
"""


# ---------------------------------------------------------------------------
# Invocation contract
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class CommandInvocation:
    """An assembled argument vector plus how its exit status is treated.

    ``args`` never includes the executable itself; the runner prepends it.
    """

    args: tuple[str, ...]
    ignore_status: bool = True
    capture_stdout: bool = False


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """Outcome of one spawned process."""

    returncode: int
    stdout: bytes | None = None

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Typed result of a device-facing operation."""

    invocation: CommandInvocation
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class SemanticVersion:
    """``major.minor(.patch)`` as reported by ``picotool version -s``."""

    major: int
    minor: int
    patch: int = 0
    prerelease: str | None = None
    build: str | None = None

    @property
    def release(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.build:
            text += f"+{self.build}"
        return text
