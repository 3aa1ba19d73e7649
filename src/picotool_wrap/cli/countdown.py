"""Rich countdown shown while a live udev install waits to start.

The installer calls its ``sleep`` hook once before touching the system.
:class:`RichCountdown` is a drop-in replacement for :func:`time.sleep`
that renders the remaining seconds as a draining progress bar, giving
the operator a visible window to press Ctrl+C.

Design
------
* The countdown ticks in fixed steps; the total time slept equals the
  requested delay.
* Ctrl+C stops the bar cleanly and propagates ``KeyboardInterrupt``.
* No ``print()`` — Rich handles all rendering.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

from picotool_wrap.cli.console import get_rich_console
from picotool_wrap.exceptions import EnvironmentError


class RichCountdown:
    """Callable ``sleep`` replacement that shows a countdown bar.

    Usage::

        countdown = RichCountdown("Installing udev rules in")
        service.install_udev(dry_run=False, sleep=countdown)
    """

    def __init__(
        self,
        description: str = "Starting in",
        *,
        tick: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        try:
            from rich.progress import (
                BarColumn,
                Progress,
                SpinnerColumn,
                TextColumn,
            )
        except ModuleNotFoundError as exc:
            raise EnvironmentError(
                "rich is not installed. Install with: pip install rich",
            ) from exc

        self._progress: Any = Progress(
            SpinnerColumn(),
            TextColumn("[bold yellow]{task.description}"),
            BarColumn(),
            TextColumn("{task.fields[remaining]:.0f}s  (Ctrl+C to abort)"),
            console=get_rich_console(),
            transient=True,
        )
        self._description = description
        self._tick = tick
        self._sleep = sleep

    def __call__(self, seconds: float) -> None:
        """Block for *seconds* while rendering the countdown."""
        if seconds <= 0:
            return

        with self._progress:
            task_id = self._progress.add_task(
                self._description,
                total=seconds,
                remaining=seconds,
            )
            elapsed = 0.0
            while elapsed < seconds:
                step = min(self._tick, seconds - elapsed)
                self._sleep(step)
                elapsed += step
                self._progress.update(
                    task_id,
                    completed=elapsed,
                    remaining=max(seconds - elapsed, 0.0),
                )
