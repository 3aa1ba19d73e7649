"""Infrastructure layer — external system integration.

This layer wraps all interaction with the operating system: locating
the picotool binary and its udev rules, and spawning processes.  Every
raw ``OSError`` must be caught here and re-raised as a
:class:`~picotool_wrap.exceptions.PicotoolWrapError` subclass.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
* Must expose clean, typed interfaces consumed by the core layer.
"""

from picotool_wrap.infra.process_runner import SubprocessRunner
from picotool_wrap.infra.tool_locator import (
    PicotoolStatus,
    SystemToolLocator,
    detect_picotool,
    find_udev_rules,
    require_picotool,
)

__all__: list[str] = [
    "PicotoolStatus",
    "SubprocessRunner",
    "SystemToolLocator",
    "detect_picotool",
    "find_udev_rules",
    "require_picotool",
]
