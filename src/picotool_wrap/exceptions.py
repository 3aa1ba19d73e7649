"""Custom exception hierarchy for picotool-wrap.

All exceptions that cross layer boundaries must inherit from
:class:`PicotoolWrapError`.  Raw ``OSError`` / ``subprocess`` failures
must NEVER propagate beyond the infrastructure layer — they are caught
and re-raised as a typed subclass defined here.

Hierarchy
---------
PicotoolWrapError
├── ValidationError
├── PlatformError
├── VersionParseError
├── ExternalProcessError
├── EnvironmentError
│   ├── PicotoolNotFoundError
│   └── UdevRulesNotFoundError
└── InternalInvariantError

AlreadyInstalledWarning (UserWarning, non-fatal)
"""

from __future__ import annotations

from collections.abc import Sequence


class PicotoolWrapError(Exception):
    """Base exception for all picotool-wrap errors.

    Every user-visible error condition must map to a subclass of this
    exception so that the CLI error boundary can render a clean message
    without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Request validation ----------------------------------------------------

class ValidationError(PicotoolWrapError):
    """Raised when request parameters are rejected before any process spawns."""


class InternalInvariantError(PicotoolWrapError):
    """Raised when an internal invariant is broken.

    Examples are a closed set of variants matched non-exhaustively, or
    a state handler reached out of order.  Always a bug.
    """


# --- Platform / environment ------------------------------------------------

class PlatformError(PicotoolWrapError):
    """Raised when an operation is not supported on the current OS."""


class EnvironmentError(PicotoolWrapError):
    """Raised when a required runtime dependency is not available."""


class PicotoolNotFoundError(EnvironmentError):
    """Raised when the picotool binary cannot be located."""


class UdevRulesNotFoundError(EnvironmentError):
    """Raised when the picotool udev rule file cannot be located."""


# --- External process ------------------------------------------------------

class ExternalProcessError(PicotoolWrapError):
    """Raised when a command whose exit status matters fails."""

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str] = (),
        returncode: int | None = None,
        stderr: bytes | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.command: tuple[str, ...] = tuple(command)
        self.returncode: int | None = returncode
        #: Last bytes the command wrote to stderr, when they were captured.
        self.stderr: bytes | None = stderr


# --- Response parsing ------------------------------------------------------

class VersionParseError(PicotoolWrapError):
    """Raised when ``picotool version -s`` output is not a valid version."""


# --- Warnings --------------------------------------------------------------

class AlreadyInstalledWarning(UserWarning):
    """Emitted when the udev rule file is already present on the system."""
