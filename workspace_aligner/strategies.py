"""Batch conflict resolution.

Each strategy picks a target version per conflicting package, then plans
and applies a sync for that package before moving to the next one. A
failure while handling one package is recorded in its resolution and does
not stop the batch.

- interactive: a chooser callback decides per package (or skips it).
- most-common: the version declared by the most workspaces.
- latest: the literal "latest" for every package, no registry query.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from pydantic import BaseModel, Field

from .errors import AlignerError, InvalidInputError
from .executor import apply
from .ledger import VersionGroup
from .manifest import ManifestStore
from .models import ExecutionReport
from .planner import plan_sync

logger = logging.getLogger(__name__)

LATEST = "latest"

Conflict = tuple[str, VersionGroup]

# (package, group, registry candidate or None) → target version, or None to skip
Chooser = Callable[[str, VersionGroup, str | None], str | None]
RegistryLookup = Callable[[str], str | None]


class PackageResolution(BaseModel):
    """What happened to one conflicting package.

    ``target`` is None when the package was skipped or failed before a
    target was chosen.
    """

    package: str
    target: str | None = None
    report: ExecutionReport | None = None
    error: str | None = None

    @property
    def skipped(self) -> bool:
        return self.target is None and self.error is None

    @property
    def success(self) -> bool:
        return self.error is None and (self.report is None or self.report.success)


class ResolutionReport(BaseModel):
    strategy: str
    dry_run: bool
    resolutions: list[PackageResolution] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(r.success for r in self.resolutions)

    @property
    def failures(self) -> list[PackageResolution]:
        return [r for r in self.resolutions if not r.success]

    @property
    def resolved(self) -> list[PackageResolution]:
        return [r for r in self.resolutions if r.target is not None and r.success]


def most_common_version(group: VersionGroup) -> str:
    """The version declared by the most workspaces.

    Ties go to the version seen first during the scan (the group's key
    order). Treat the tie-break as an implementation detail.
    """
    best: str | None = None
    best_count = 0
    for version, workspaces in group.items():
        if len(workspaces) > best_count:
            best, best_count = version, len(workspaces)
    if best is None:
        raise InvalidInputError("empty version group")
    return best


def resolve(
    strategy: str,
    conflicts: Sequence[Conflict],
    pick: Callable[[str, VersionGroup], str | None],
    store: ManifestStore,
    *,
    dry_run: bool = True,
) -> ResolutionReport:
    """Run ``pick`` + plan_sync + apply for each conflict in turn."""
    report = ResolutionReport(strategy=strategy, dry_run=dry_run)
    for package, group in conflicts:
        target: str | None = None
        try:
            target = pick(package, group)
            if target is None:
                logger.info("Skipped %s", package)
                report.resolutions.append(PackageResolution(package=package))
                continue
            plan = plan_sync(package, target, group)
            execution = apply(plan, store, dry_run=dry_run)
        except AlignerError as exc:
            logger.warning("Could not resolve %s: %s", package, exc)
            report.resolutions.append(
                PackageResolution(package=package, target=target, error=str(exc))
            )
            continue
        report.resolutions.append(
            PackageResolution(package=package, target=target, report=execution)
        )
    return report


def resolve_interactive(
    conflicts: Sequence[Conflict],
    chooser: Chooser,
    store: ManifestStore,
    *,
    dry_run: bool = True,
    registry: RegistryLookup | None = None,
) -> ResolutionReport:
    """Let ``chooser`` pick each target.

    When ``registry`` is given, the chooser also receives the latest
    published version as a candidate (None if the lookup failed).
    """

    def pick(package: str, group: VersionGroup) -> str | None:
        candidate = registry(package) if registry is not None else None
        return chooser(package, group, candidate)

    return resolve("interactive", conflicts, pick, store, dry_run=dry_run)


def resolve_most_common(
    conflicts: Sequence[Conflict],
    store: ManifestStore,
    *,
    dry_run: bool = True,
) -> ResolutionReport:
    return resolve(
        "most-common",
        conflicts,
        lambda package, group: most_common_version(group),
        store,
        dry_run=dry_run,
    )


def resolve_latest(
    conflicts: Sequence[Conflict],
    store: ManifestStore,
    *,
    dry_run: bool = True,
) -> ResolutionReport:
    """Point every conflicting package at "latest" without asking the registry."""
    return resolve(
        "latest",
        conflicts,
        lambda package, group: LATEST,
        store,
        dry_run=dry_run,
    )


STRATEGIES = ("interactive", "most-common", "latest")
