"""Version ledger and conflict detection.

Groups workspaces by the exact version string they declare for a package.
Version strings are opaque: ``^1.0.0`` and ``1.0.0`` are different groups.
Grouping uses each workspace's merged (effective) declarations, so a
package declared in several slots of one workspace is counted once, with
the value of the last slot (peerDependencies over devDependencies over
dependencies).
"""

from __future__ import annotations

from collections.abc import Iterable

from .models import Workspace

# version string → workspaces declaring it, both in discovery order
VersionGroup = dict[str, list[Workspace]]


def build_ledger(workspaces: Iterable[Workspace]) -> dict[str, VersionGroup]:
    """Map every declared package to its VersionGroup."""
    ledger: dict[str, VersionGroup] = {}
    for workspace in workspaces:
        for package, version in workspace.manifest.effective().items():
            ledger.setdefault(package, {}).setdefault(version, []).append(workspace)
    return ledger


def versions_of(workspaces: Iterable[Workspace], package: str) -> VersionGroup | None:
    """Group workspaces by the version they declare for ``package``.

    Returns None if no workspace declares it.
    """
    group: VersionGroup = {}
    for workspace in workspaces:
        version = workspace.manifest.effective().get(package)
        if version is not None:
            group.setdefault(version, []).append(workspace)
    return group or None


def is_conflict(group: VersionGroup) -> bool:
    return len(group) > 1


def all_conflicts(workspaces: Iterable[Workspace]) -> list[tuple[str, VersionGroup]]:
    """Packages declared at more than one version string, sorted by name."""
    ledger = build_ledger(workspaces)
    return sorted(
        ((package, group) for package, group in ledger.items() if is_conflict(group)),
        key=lambda item: item[0],
    )


def package_overview(workspaces: Iterable[Workspace]) -> list[tuple[str, VersionGroup]]:
    """Every declared package with its VersionGroup, sorted by name."""
    return sorted(build_ledger(workspaces).items(), key=lambda item: item[0])


def group_members(group: VersionGroup) -> list[Workspace]:
    """All workspaces of a group, flattened in group order."""
    return [workspace for members in group.values() for workspace in members]
