"""Version string helpers for display.

The engine groups and compares version strings as opaque text. These
helpers exist only to tell an operator whether the registry's latest
release is ahead of what the workspaces declare; they never decide a
resolution.
"""

from __future__ import annotations

from collections.abc import Iterable

import semver

# npm range operators that may prefix a plain version
_RANGE_PREFIXES = ("^", "~", ">=", "<=", ">", "<", "=", "v")


def strip_range(version_str: str) -> str:
    """Drop a leading range operator.

    Examples:
        "^4.17.0" → "4.17.0"
        "~1.2" → "1.2"
        ">=2.0.0" → "2.0.0"
    """
    version_str = version_str.strip()
    for prefix in _RANGE_PREFIXES:
        if version_str.startswith(prefix):
            return version_str[len(prefix) :].strip()
    return version_str


def parse_version(version_str: str) -> semver.Version:
    """Read the base version out of an npm range like ``^1.2`` or ``~3``.

    The range operator is dropped and missing minor/patch numbers count as
    zero, so ``^1.2`` reads as 1.2.0. Pre-release and build suffixes on a
    full three-part version are kept.

    Raises:
        ValueError: If what is left is not a version ("latest", "1.x",
            "workspace:*").
    """
    base = strip_range(version_str)
    missing = 2 - base.count(".")
    if missing > 0:
        base += ".0" * missing
    return semver.Version.parse(base)


def is_newer(candidate: str, current_versions: Iterable[str]) -> bool:
    """Whether ``candidate`` is ahead of every declared version.

    A candidate equal to a declared version (ignoring range operators) is
    not newer. Declared values that are not plain versions are ignored in
    the comparison; a candidate that does not parse is newer if it is not
    already declared.
    """
    current = [strip_range(v) for v in current_versions]
    if strip_range(candidate) in current:
        return False
    try:
        target = parse_version(candidate)
    except ValueError:
        return True
    for version_str in current:
        try:
            if parse_version(version_str) >= target:
                return False
        except ValueError:
            continue
    return True
