"""Shared test fixtures."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from workspace_aligner.workspaces import WorkspaceIndex


def write_manifest(directory: Path, data: dict[str, Any]) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "package.json"
    path.write_text(json.dumps(data, indent=2) + "\n")
    return path


def read_manifest(directory: Path) -> dict[str, Any]:
    return json.loads((directory / "package.json").read_text())


@pytest.fixture
def monorepo(tmp_path: Path) -> Path:
    """A monorepo with a root, two apps and two libraries.

    lodash conflicts (^4.17.0 in web and ui, 4.16.0 in admin's
    devDependencies), react is consistent, typescript conflicts between
    the root and the libraries.
    """
    write_manifest(
        tmp_path,
        {
            "name": "acme",
            "private": True,
            "workspaces": ["apps/*", "packages/*"],
            "devDependencies": {"typescript": "^5.4.0"},
        },
    )
    write_manifest(
        tmp_path / "apps" / "web",
        {
            "name": "@acme/web",
            "version": "1.0.0",
            "scripts": {"build": "next build"},
            "dependencies": {"lodash": "^4.17.0", "react": "^18.2.0"},
        },
    )
    write_manifest(
        tmp_path / "apps" / "admin",
        {
            "name": "@acme/admin",
            "dependencies": {"react": "^18.2.0"},
            "devDependencies": {"lodash": "4.16.0"},
        },
    )
    write_manifest(
        tmp_path / "packages" / "ui",
        {
            "name": "@acme/ui",
            "dependencies": {"lodash": "^4.17.0"},
            "peerDependencies": {"react": "^18.2.0"},
            "devDependencies": {"typescript": "^5.3.0"},
        },
    )
    write_manifest(
        tmp_path / "packages" / "utils",
        {"devDependencies": {"typescript": "^5.3.0"}},
    )
    return tmp_path


@pytest.fixture
def index(monorepo: Path) -> WorkspaceIndex:
    return WorkspaceIndex.load(monorepo)


@pytest.fixture
def two_workspaces(tmp_path: Path) -> Path:
    """A root without ``workspaces`` and two libraries, a and b.

    a declares lodash ^4.17.0 in dependencies, b 4.16.0 in devDependencies.
    """
    write_manifest(tmp_path, {"name": "root"})
    write_manifest(
        tmp_path / "packages" / "a",
        {"name": "a", "dependencies": {"lodash": "^4.17.0"}},
    )
    write_manifest(
        tmp_path / "packages" / "b",
        {"name": "b", "devDependencies": {"lodash": "4.16.0"}},
    )
    return tmp_path
