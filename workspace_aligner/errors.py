"""Exception hierarchy for workspace-aligner.

Discovery failures (ScanError) propagate to the caller. Manifest errors
raised while applying a plan are caught by the executor and recorded per
workspace instead.
"""

from __future__ import annotations

from pathlib import Path


class AlignerError(Exception):
    """Base class for all workspace-aligner errors."""


class ScanError(AlignerError):
    """The root manifest is missing or unreadable."""


class ConfigError(AlignerError):
    """The configuration file is malformed."""


class InvalidInputError(AlignerError, ValueError):
    """Caller-supplied input was rejected before planning."""


class ManifestError(AlignerError):
    """A manifest could not be read, parsed or written."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class ManifestReadError(ManifestError):
    pass


class ManifestNotFoundError(ManifestReadError):
    pass


class ManifestParseError(ManifestError):
    pass


class ManifestWriteError(ManifestError):
    pass
