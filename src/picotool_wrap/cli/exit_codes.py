"""Exit-code constants used by the CLI layer.

Every exit path of ``picotool-wrap`` uses one of these values.  Note
that device commands return SUCCESS even when picotool itself exits
nonzero; picotool's own output tells the user what went wrong.
"""

from __future__ import annotations

SUCCESS: int = 0
"""Command completed (picotool's exit status is not propagated)."""

GENERAL_ERROR: int = 1
"""A known PicotoolWrapError was caught. User-facing message was displayed."""

KEYBOARD_INTERRUPT: int = 130
"""User pressed Ctrl+C.  Follows POSIX convention (128 + SIGINT=2)."""

UNEXPECTED_ERROR: int = 2
"""An unhandled exception escaped all known error boundaries."""
