"""Interactive confirmation before a live udev rule installation.

This module is responsible for:

* Summarising what a live installation will change.
* Asking the operator to confirm via questionary.

All display-related logic lives here — no installation logic.
"""

from __future__ import annotations

from typing import Any

from picotool_wrap.cli.console import console
from picotool_wrap.exceptions import EnvironmentError


def _import_questionary() -> Any:
    """Import questionary lazily for interactive confirmation."""
    try:
        import questionary
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "questionary is not installed. Install with: pip install questionary",
        ) from exc
    return questionary


def _summary_lines(rules_dir: str) -> list[str]:
    return [
        f"[bold]Target:[/bold]  {rules_dir}",
        "[bold]Runs:[/bold]    sudo install -o root -g root -m 0664 ...",
        "         sudo udevadm control --reload-rules",
        "         sudo udevadm trigger",
    ]


def confirm_live_install(rules_dir: str) -> bool:
    """Ask whether to modify system udev rules.

    Returns
    -------
    bool
        ``True`` only when the operator explicitly answers yes.
        Ctrl+C / Esc count as no.
    """
    questionary = _import_questionary()

    console.print()
    for line in _summary_lines(rules_dir):
        console.print(line)
    console.print()

    answer: bool | None = questionary.confirm(
        "Install picotool udev rules system wide?",
        default=False,
    ).ask()  # Returns None on Ctrl+C / Esc
    return bool(answer)
