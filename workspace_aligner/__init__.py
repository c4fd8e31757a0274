"""workspace-aligner: keep dependency versions consistent across a monorepo.

The engine is usable without the CLI::

    from workspace_aligner import WorkspaceIndex, all_conflicts, apply, plan_sync

    index = WorkspaceIndex.load("path/to/monorepo")
    for package, group in all_conflicts(index):
        ...
    report = apply(plan_sync("lodash", "^4.17.21", group), index.store, dry_run=False)
    index.refresh()
"""

from .errors import (
    AlignerError,
    ConfigError,
    InvalidInputError,
    ManifestError,
    ManifestNotFoundError,
    ManifestParseError,
    ManifestReadError,
    ManifestWriteError,
    ScanError,
)
from .executor import apply
from .ledger import VersionGroup, all_conflicts, package_overview, versions_of
from .manifest import JsonManifestStore, ManifestStore
from .models import (
    ChangeAction,
    ChangeRecord,
    ExecutionReport,
    Manifest,
    RecordStatus,
    Slot,
    Workspace,
    WorkspaceKind,
)
from .planner import plan_add_or_update, plan_remove, plan_sync
from .strategies import resolve_interactive, resolve_latest, resolve_most_common
from .workspaces import WorkspaceIndex

__all__ = [
    "AlignerError",
    "ChangeAction",
    "ChangeRecord",
    "ConfigError",
    "ExecutionReport",
    "InvalidInputError",
    "JsonManifestStore",
    "Manifest",
    "ManifestError",
    "ManifestNotFoundError",
    "ManifestParseError",
    "ManifestReadError",
    "ManifestStore",
    "ManifestWriteError",
    "RecordStatus",
    "ScanError",
    "Slot",
    "VersionGroup",
    "Workspace",
    "WorkspaceIndex",
    "WorkspaceKind",
    "all_conflicts",
    "apply",
    "package_overview",
    "plan_add_or_update",
    "plan_remove",
    "plan_sync",
    "resolve_interactive",
    "resolve_latest",
    "resolve_most_common",
    "versions_of",
]
