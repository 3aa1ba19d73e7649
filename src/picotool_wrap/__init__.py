"""picotool-wrap — typed front end for the Raspberry Pi ``picotool`` binary.

Validates device-management requests, assembles ``picotool`` argument
vectors and interprets the results, with a layered core/infra/cli split.
"""

from picotool_wrap.version import __version__

__all__: list[str] = ["__version__"]
