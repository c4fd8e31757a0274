"""Dependency installation after manifest changes.

The package manager is picked from the lock file at the monorepo root.
When the root manifest declares ``workspaces`` the install runs once from
the root; otherwise it runs in each target workspace.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Iterable
from pathlib import Path

from pydantic import BaseModel, Field

from .models import PackageManagerKind
from .shell import run
from .workspaces import WorkspaceIndex

logger = logging.getLogger(__name__)

INSTALL_TIMEOUT = 300.0

# Checked in order; the first lock file found wins.
LOCK_FILES: tuple[tuple[str, PackageManagerKind], ...] = (
    ("bun.lockb", PackageManagerKind.BUN),
    ("bun.lock", PackageManagerKind.BUN),
    ("yarn.lock", PackageManagerKind.YARN),
    ("pnpm-lock.yaml", PackageManagerKind.PNPM),
)

INSTALL_COMMANDS: dict[PackageManagerKind, tuple[str, ...]] = {
    PackageManagerKind.BUN: ("bun", "install"),
    PackageManagerKind.YARN: ("yarn", "install"),
    PackageManagerKind.PNPM: ("pnpm", "install"),
    PackageManagerKind.NPM: ("npm", "install"),
}


class LocationResult(BaseModel):
    path: Path
    success: bool
    output: str = ""
    error: str | None = None


class InstallResult(BaseModel):
    """Outcome of an install run.

    Attributes:
        package_manager: The tool that was used.
        locations: One entry per directory the install ran in. Stops at the
                   first failing directory.
        error: Why the install failed, if it did.
    """

    package_manager: PackageManagerKind
    locations: list[LocationResult] = Field(default_factory=list)
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None and all(loc.success for loc in self.locations)

    @property
    def output(self) -> str:
        return "".join(loc.output for loc in self.locations)


def detect_package_manager(root: Path) -> PackageManagerKind:
    """Pick the package manager from the lock file in ``root``, defaulting to npm."""
    for filename, kind in LOCK_FILES:
        if (Path(root) / filename).exists():
            return kind
    return PackageManagerKind.NPM


def install_command(package_manager: PackageManagerKind) -> list[str]:
    return list(INSTALL_COMMANDS[package_manager])


def install_locations(
    index: WorkspaceIndex, targets: Iterable[Path | str]
) -> list[Path]:
    """Directories the install command has to run in.

    A monorepo root with a ``workspaces`` field installs everything at once.
    Otherwise each target is installed on its own, duplicates removed.
    """
    root = index.root
    if root is not None and root.manifest.declares_workspaces:
        return [root.path]

    locations: dict[Path, None] = {}
    for target in targets:
        path = Path(target)
        if not path.is_absolute():
            path = index.root_path / path
        locations.setdefault(path.resolve(), None)
    return list(locations)


def install(
    index: WorkspaceIndex,
    targets: Iterable[Path | str],
    *,
    package_manager: PackageManagerKind | None = None,
    timeout: float = INSTALL_TIMEOUT,
) -> InstallResult:
    """Run the install command for ``targets``.

    Never raises for tool failures: a missing executable, a non-zero exit
    or a timeout is reported in the returned InstallResult.
    """
    manager = package_manager or detect_package_manager(index.root_path)
    command = install_command(manager)
    result = InstallResult(package_manager=manager)

    locations = install_locations(index, targets)
    if not locations:
        result.error = "No workspaces selected for installation"
        return result

    for location in locations:
        logger.info("Running %s in %s", " ".join(command), location)
        try:
            proc = run(*command, cwd=location, timeout=timeout)
        except subprocess.TimeoutExpired:
            result.error = f"Installation timeout in {location}"
            result.locations.append(
                LocationResult(path=location, success=False, error=result.error)
            )
            break
        except OSError as exc:
            result.error = f"Could not run {command[0]}: {exc}"
            result.locations.append(
                LocationResult(path=location, success=False, error=result.error)
            )
            break

        if proc.returncode != 0:
            result.error = (
                f"Installation failed in {location}: "
                f"{proc.stderr.strip() or 'Unknown error'}"
            )
            result.locations.append(
                LocationResult(
                    path=location, success=False, output=proc.stdout, error=result.error
                )
            )
            break

        result.locations.append(
            LocationResult(path=location, success=True, output=proc.stdout)
        )

    return result


def manual_instructions(
    index: WorkspaceIndex,
    targets: Iterable[Path | str],
    package_manager: PackageManagerKind | None = None,
) -> str:
    """Shell instructions for installing by hand."""
    manager = package_manager or detect_package_manager(index.root_path)
    command = " ".join(install_command(manager))
    lines: list[str] = []
    for location in install_locations(index, targets):
        try:
            relative = location.relative_to(index.root_path).as_posix()
        except ValueError:
            relative = str(location)
        if relative == ".":
            relative = ""
        lines.append(f"{relative or 'root'}:")
        lines.append(f"  cd {relative or '.'}")
        lines.append(f"  {command}")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"
