"""package.json reading and writing.

The engine only talks to a ``ManifestStore``. ``JsonManifestStore`` is the
file-backed implementation: it resolves ``package.json`` inside a
workspace directory and writes it back as 2-space indented JSON with a
trailing newline, the layout npm itself produces.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from .errors import (
    ManifestNotFoundError,
    ManifestParseError,
    ManifestReadError,
    ManifestWriteError,
)
from .models import Manifest

MANIFEST_FILENAME = "package.json"


class ManifestStore(Protocol):
    """Read/write access to workspace manifests, keyed by workspace directory."""

    def read(self, path: Path) -> Manifest:
        """Raises ManifestNotFoundError or ManifestParseError."""
        ...

    def write(self, path: Path, manifest: Manifest) -> None:
        """Raises ManifestWriteError."""
        ...


def manifest_path(workspace_dir: Path) -> Path:
    return Path(workspace_dir) / MANIFEST_FILENAME


def load_manifest(path: Path) -> Manifest:
    """Load and parse a package.json file.

    Raises:
        ManifestNotFoundError: If the file does not exist.
        ManifestReadError: If the file exists but cannot be read.
        ManifestParseError: If the contents are not a valid manifest.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ManifestNotFoundError(path, "no such file") from exc
    except OSError as exc:
        raise ManifestReadError(path, str(exc)) from exc
    except UnicodeDecodeError as exc:
        raise ManifestParseError(path, f"not valid UTF-8: {exc}") from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ManifestParseError(path, f"invalid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ManifestParseError(path, "top-level value is not an object")

    try:
        return Manifest.from_json(data)
    except ValidationError as exc:
        raise ManifestParseError(path, f"malformed dependency map: {exc}") from exc


def dump_manifest(manifest: Manifest) -> str:
    return json.dumps(manifest.to_json(), indent=2, ensure_ascii=False) + "\n"


def save_manifest(path: Path, manifest: Manifest) -> None:
    """Serialize a manifest to disk.

    Raises:
        ManifestWriteError: If the file cannot be written.
    """
    try:
        path.write_text(dump_manifest(manifest), encoding="utf-8")
    except OSError as exc:
        raise ManifestWriteError(path, str(exc)) from exc


class JsonManifestStore:
    """ManifestStore backed by package.json files on disk."""

    def read(self, path: Path) -> Manifest:
        return load_manifest(manifest_path(path))

    def write(self, path: Path, manifest: Manifest) -> None:
        save_manifest(manifest_path(path), manifest)
