"""npm registry lookup.

Asks ``npm view <package> version`` for the latest published version. The
lookup fails soft: any error, non-zero exit or timeout yields None so a
slow or offline registry never blocks a resolution.
"""

from __future__ import annotations

import logging
import subprocess

from .shell import run

logger = logging.getLogger(__name__)

REGISTRY_TIMEOUT = 10.0


def latest_version(package: str, *, timeout: float = REGISTRY_TIMEOUT) -> str | None:
    """Return the latest published version of ``package``, or None."""
    try:
        result = run("npm", "view", package, "version", timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.debug("Registry lookup for %s timed out after %ss", package, timeout)
        return None
    except OSError as exc:
        logger.debug("Registry lookup for %s failed: %s", package, exc)
        return None

    if result.returncode != 0:
        logger.debug(
            "Registry lookup for %s exited %d: %s",
            package,
            result.returncode,
            result.stderr.strip(),
        )
        return None

    version = result.stdout.strip()
    return version or None
