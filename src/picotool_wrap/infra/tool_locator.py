"""Infrastructure: locating picotool and its udev rules.

Resolution order for the binary:

1. An explicit path passed to :class:`SystemToolLocator`.
2. The ``PICOTOOL_PATH`` environment variable.
3. :func:`shutil.which` on ``picotool``.

Resolution order for the rule file:

1. An explicit path passed to :class:`SystemToolLocator`.
2. The ``PICOTOOL_UDEV_RULES`` environment variable.
3. The share/udev directories next to the resolved binary's prefix.
4. The system-wide share directories.

Rules
-----
* No permanent PATH modification.
* No automatic installation.
* No ``print()`` — callers handle user-facing output.
"""

from __future__ import annotations

import os
import platform
import shutil
from dataclasses import dataclass
from pathlib import Path

from picotool_wrap.exceptions import PicotoolNotFoundError, UdevRulesNotFoundError

PICOTOOL_ENV: str = "PICOTOOL_PATH"
UDEV_RULES_ENV: str = "PICOTOOL_UDEV_RULES"
UDEV_RULES_NAME: str = "99-picotool.rules"

_SYSTEM_RULE_DIRS: tuple[Path, ...] = (
    Path("/usr/local/share/picotool/udev"),
    Path("/usr/share/picotool/udev"),
    Path("/usr/local/lib/udev/rules.d"),
    Path("/usr/lib/udev/rules.d"),
)


# ---------------------------------------------------------------------------
# Detection result
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class PicotoolStatus:
    """Result of a picotool detection probe.

    Attributes
    ----------
    found : bool
        Whether a picotool executable was located.
    path : Path | None
        Absolute path to the binary, or ``None``.
    source : str
        Where the path came from: ``"argument"``, ``"env"``, ``"PATH"``
        or ``"not found"``.
    install_commands : tuple[str, ...]
        Suggested shell commands for installing picotool on the current
        platform.  Empty when picotool is already present.
    """

    found: bool
    path: Path | None
    source: str
    install_commands: tuple[str, ...]


# ---------------------------------------------------------------------------
# Detection logic
# ---------------------------------------------------------------------------

def detect_picotool(explicit: str | os.PathLike[str] | None = None) -> PicotoolStatus:
    """Probe for a picotool binary without raising.

    The caller decides whether a missing binary is fatal.
    """
    candidates: list[tuple[str, str | None]] = [
        ("argument", os.fspath(explicit) if explicit is not None else None),
        ("env", os.environ.get(PICOTOOL_ENV) or None),
    ]
    for source, raw in candidates:
        if raw is None:
            continue
        path = Path(raw).expanduser()
        if path.is_file() and os.access(path, os.X_OK):
            return PicotoolStatus(
                found=True,
                path=path.resolve(),
                source=source,
                install_commands=(),
            )
        # An explicit override that does not work must not fall through
        # to an unrelated binary on PATH.
        return PicotoolStatus(
            found=False,
            path=None,
            source="not found",
            install_commands=_platform_install_commands(),
        )

    result = shutil.which("picotool")
    if result is not None:
        return PicotoolStatus(
            found=True,
            path=Path(result).resolve(),
            source="PATH",
            install_commands=(),
        )

    return PicotoolStatus(
        found=False,
        path=None,
        source="not found",
        install_commands=_platform_install_commands(),
    )


def require_picotool(explicit: str | os.PathLike[str] | None = None) -> Path:
    """Locate picotool or raise :class:`PicotoolNotFoundError`."""
    status = detect_picotool(explicit)
    if not status.found or status.path is None:
        hint_lines: list[str] = [
            f"Set {PICOTOOL_ENV} or pass --picotool to use a specific binary.",
        ]
        if status.install_commands:
            hint_lines.append("Or install picotool using one of:")
            hint_lines.extend(f"  {cmd}" for cmd in status.install_commands)
        raise PicotoolNotFoundError(
            "picotool is not installed or not on PATH.",
            hint="\n".join(hint_lines),
        )
    return status.path


def find_udev_rules(
    explicit: str | os.PathLike[str] | None = None,
    *,
    binary: Path | None = None,
) -> Path | None:
    """Return the first existing ``99-picotool.rules`` candidate, or ``None``."""
    override = explicit if explicit is not None else os.environ.get(UDEV_RULES_ENV) or None
    if override is not None:
        path = Path(override).expanduser()
        return path if path.is_file() else None

    search: list[Path] = []
    if binary is not None:
        prefix = binary.parent.parent
        search += [
            prefix / "share" / "picotool" / "udev",
            prefix / "lib" / "udev" / "rules.d",
        ]
    search += list(_SYSTEM_RULE_DIRS)

    for directory in search:
        candidate = directory / UDEV_RULES_NAME
        if candidate.is_file():
            return candidate
    return None


# ---------------------------------------------------------------------------
# ToolLocator implementation
# ---------------------------------------------------------------------------

class SystemToolLocator:
    """Concrete :class:`~picotool_wrap.core.protocols.ToolLocator`.

    Parameters
    ----------
    picotool:
        Explicit binary path, taking precedence over ``PICOTOOL_PATH``.
    rules:
        Explicit rule file, taking precedence over ``PICOTOOL_UDEV_RULES``.
    """

    def __init__(
        self,
        picotool: str | os.PathLike[str] | None = None,
        rules: str | os.PathLike[str] | None = None,
    ) -> None:
        self._picotool = picotool
        self._rules = rules

    def picotool_path(self) -> Path:
        return require_picotool(self._picotool)

    def udev_rules_path(self) -> Path:
        binary = detect_picotool(self._picotool).path
        found = find_udev_rules(self._rules, binary=binary)
        if found is None:
            raise UdevRulesNotFoundError(
                f"Could not find {UDEV_RULES_NAME}.",
                hint=(
                    f"Set {UDEV_RULES_ENV} or pass --rules with the path of the "
                    "rules file shipped with picotool."
                ),
            )
        return found


# ---------------------------------------------------------------------------
# Platform-specific install guidance
# ---------------------------------------------------------------------------

def _platform_install_commands() -> tuple[str, ...]:
    """Return install commands appropriate for the current OS."""
    system = platform.system().lower()
    if system == "windows":
        return ("Download the picotool release from https://github.com/raspberrypi/pico-sdk-tools/releases",)
    if system == "linux":
        return (
            "sudo apt install picotool",
            "sudo pacman -S picotool",
        )
    if system == "darwin":
        return ("brew install picotool",)
    # Fallback: generic guidance.
    return ("Build picotool from https://github.com/raspberrypi/picotool",)
