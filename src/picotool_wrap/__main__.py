"""Allow ``python -m picotool_wrap`` invocation.

This module simply delegates to the CLI error-boundary entry point so
that ``python -m picotool_wrap`` behaves identically to the
``picotool-wrap`` console script.
"""

from __future__ import annotations

from picotool_wrap.cli.app import cli

if __name__ == "__main__":
    cli()
