"""Interpretation of captured ``picotool version`` output.

Pure functions only: bytes in, :class:`SemanticVersion` or text out.
A malformed version string is an error, never a silent default.
"""

from __future__ import annotations

import re

from picotool_wrap.core.models import SemanticVersion
from picotool_wrap.exceptions import VersionParseError

_VERSION_RE = re.compile(
    r"""
    ^v?
    (?P<major>0|[1-9]\d*)
    \.(?P<minor>0|[1-9]\d*)
    (?:\.(?P<patch>0|[1-9]\d*))?
    (?:-(?P<prerelease>[0-9A-Za-z.-]+))?
    (?:\+(?P<build>[0-9A-Za-z.-]+))?
    $
    """,
    re.VERBOSE,
)


def parse_semantic_version(data: bytes | str) -> SemanticVersion:
    """Parse ``picotool version -s`` output such as ``b"2.1.0\\n"``.

    Raises
    ------
    VersionParseError
        If the text is not ``MAJOR.MINOR[.PATCH][-PRE][+BUILD]``.
    """
    if isinstance(data, bytes):
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise VersionParseError(
                "picotool printed a version that is not valid UTF-8.",
            ) from exc
    else:
        text = data

    stripped = text.strip()
    match = _VERSION_RE.match(stripped)
    if match is None:
        raise VersionParseError(
            f"Cannot parse picotool version from {stripped!r}.",
            hint="Expected output like '2.1.0'.",
        )

    patch = match.group("patch")
    return SemanticVersion(
        major=int(match.group("major")),
        minor=int(match.group("minor")),
        patch=int(patch) if patch is not None else 0,
        prerelease=match.group("prerelease"),
        build=match.group("build"),
    )


def interpret_version_output(
    data: bytes,
    *,
    semantic: bool,
) -> SemanticVersion | str:
    """Return a parsed version when *semantic*, else the text unchanged.

    Undecodable bytes survive as surrogates; encode with
    ``errors="surrogateescape"`` to get the original output back.
    """
    if semantic:
        return parse_semantic_version(data)
    return data.decode("utf-8", errors="surrogateescape")
