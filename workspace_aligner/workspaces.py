"""Workspace discovery and the workspace index.

A monorepo is a root package.json plus members found one level below the
member directories (``apps/*`` and ``packages/*`` by default). The index
holds the result of the last scan and is owned by whoever created it;
there is no module-level instance.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path

from .errors import (
    InvalidInputError,
    ManifestError,
    ManifestNotFoundError,
    ScanError,
)
from .manifest import JsonManifestStore, ManifestStore
from .models import Workspace, WorkspaceKind

logger = logging.getLogger(__name__)

MemberDirs = Sequence[tuple[str, WorkspaceKind]]

DEFAULT_MEMBER_DIRS: MemberDirs = (
    ("apps", WorkspaceKind.APP),
    ("packages", WorkspaceKind.LIBRARY),
)


def scan_workspaces(
    root: Path,
    store: ManifestStore,
    member_dirs: MemberDirs = DEFAULT_MEMBER_DIRS,
) -> list[Workspace]:
    """Scan the monorepo at ``root`` and return its workspaces.

    The root comes first, then members of each member directory in
    directory-name order. Subdirectories without a manifest are not
    members. A member whose manifest cannot be read is skipped with a
    warning so one broken package does not hide the others.

    Raises:
        ScanError: If the root manifest is missing or cannot be parsed.
    """
    root = Path(root).resolve()
    try:
        root_manifest = store.read(root)
    except ManifestError as exc:
        raise ScanError(f"Cannot read root manifest: {exc}") from exc

    workspaces = [
        Workspace(
            path=root,
            name=root_manifest.name or "root",
            kind=WorkspaceKind.ROOT,
            manifest=root_manifest,
            relative_path=".",
        )
    ]

    for dirname, kind in member_dirs:
        parent = root / dirname
        if not parent.is_dir():
            continue
        for child in sorted(parent.iterdir()):
            if not child.is_dir():
                continue
            try:
                manifest = store.read(child)
            except ManifestNotFoundError:
                continue
            except ManifestError as exc:
                logger.warning("Skipping workspace %s/%s: %s", dirname, child.name, exc)
                continue
            workspaces.append(
                Workspace(
                    path=child.resolve(),
                    name=manifest.name or child.name,
                    kind=kind,
                    manifest=manifest,
                    relative_path=f"{dirname}/{child.name}",
                )
            )

    logger.debug("Discovered %d workspaces under %s", len(workspaces), root)
    return workspaces


class WorkspaceIndex:
    """The current set of workspaces of one monorepo.

    Readers only ever see a complete scan: ``refresh()`` builds the new set
    first and swaps it in when the scan has finished. If the scan fails,
    the previous set is kept.
    """

    def __init__(
        self,
        root: Path | str,
        store: ManifestStore | None = None,
        member_dirs: MemberDirs = DEFAULT_MEMBER_DIRS,
    ) -> None:
        self.root_path = Path(root).resolve()
        self.store: ManifestStore = store if store is not None else JsonManifestStore()
        self.member_dirs = tuple(member_dirs)
        self._workspaces: tuple[Workspace, ...] = ()

    @classmethod
    def load(
        cls,
        root: Path | str,
        store: ManifestStore | None = None,
        member_dirs: MemberDirs = DEFAULT_MEMBER_DIRS,
    ) -> WorkspaceIndex:
        """Create an index and run the initial scan."""
        index = cls(root, store=store, member_dirs=member_dirs)
        index.refresh()
        return index

    def scan(self, root: Path | str | None = None) -> list[Workspace]:
        """Discover workspaces without touching the held set."""
        return scan_workspaces(
            Path(root) if root is not None else self.root_path,
            self.store,
            self.member_dirs,
        )

    def refresh(self) -> tuple[Workspace, ...]:
        """Re-scan the root and replace the held set wholesale."""
        self._workspaces = tuple(self.scan())
        return self._workspaces

    @property
    def workspaces(self) -> tuple[Workspace, ...]:
        return self._workspaces

    def __iter__(self) -> Iterator[Workspace]:
        return iter(self._workspaces)

    def __len__(self) -> int:
        return len(self._workspaces)

    @property
    def root(self) -> Workspace | None:
        for workspace in self._workspaces:
            if workspace.kind is WorkspaceKind.ROOT:
                return workspace
        return None

    def by_path(self, path: Path | str) -> Workspace | None:
        """Look up a workspace by directory. Relative paths resolve from the root."""
        target = Path(path)
        if not target.is_absolute():
            target = self.root_path / target
        target = target.resolve()
        for workspace in self._workspaces:
            if workspace.path == target:
                return workspace
        return None

    def by_kind(self, kind: WorkspaceKind | str) -> list[Workspace]:
        kind = WorkspaceKind(kind)
        return [w for w in self._workspaces if w.kind is kind]

    def declaring(self, package: str) -> list[Workspace]:
        """Workspaces that declare ``package`` in any slot."""
        return [w for w in self._workspaces if w.declares(package)]

    def all_packages_declared(self) -> set[str]:
        packages: set[str] = set()
        for workspace in self._workspaces:
            packages.update(workspace.manifest.effective())
        return packages


def resolve_targets(
    index: WorkspaceIndex, paths: Iterable[Path | str]
) -> list[Workspace]:
    """Map workspace paths to Workspaces, keeping order and dropping duplicates.

    Raises:
        InvalidInputError: If a path is not a known workspace.
    """
    targets: dict[Path, Workspace] = {}
    for path in paths:
        workspace = index.by_path(path)
        if workspace is None:
            raise InvalidInputError(f"Not a workspace: {path}")
        targets.setdefault(workspace.path, workspace)
    return list(targets.values())
