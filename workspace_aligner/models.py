"""Data models for workspace-aligner.

These Pydantic models represent the core data structures shared by the
scanner, the planner and the executor: workspaces and their manifests,
planned edits, and the reports produced when a plan is applied.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Slot(str, Enum):
    """One of the three dependency mappings of a manifest.

    The value is the key used in package.json.
    """

    DEPENDENCIES = "dependencies"
    DEV_DEPENDENCIES = "devDependencies"
    PEER_DEPENDENCIES = "peerDependencies"


# Lookup order for "which slot holds this package". Also the merge order
# of the effective view, where later slots win.
SLOT_ORDER: tuple[Slot, ...] = (
    Slot.DEPENDENCIES,
    Slot.DEV_DEPENDENCIES,
    Slot.PEER_DEPENDENCIES,
)


class WorkspaceKind(str, Enum):
    ROOT = "root"
    APP = "app"
    LIBRARY = "library"


class PackageManagerKind(str, Enum):
    BUN = "bun"
    YARN = "yarn"
    PNPM = "pnpm"
    NPM = "npm"


class ChangeAction(str, Enum):
    ADD = "add"
    UPDATE = "update"
    REMOVE = "remove"


class RecordStatus(str, Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"


class Manifest(BaseModel):
    """Parsed dependency declarations of one package.json.

    The three slots are kept apart and are ``None`` when the file does not
    declare them. Every other top-level field lives in ``extra`` and is
    written back untouched.

    Attributes:
        dependencies: Runtime dependencies (package name → version string).
        dev_dependencies: Development dependencies.
        peer_dependencies: Peer dependencies.
        extra: All non-slot top-level fields, in file order.
        key_order: Top-level key order of the source file, used to keep
                   diffs small when the manifest is written back.
    """

    dependencies: dict[str, str] | None = None
    dev_dependencies: dict[str, str] | None = None
    peer_dependencies: dict[str, str] | None = None
    extra: dict[str, Any] = Field(default_factory=dict)
    key_order: list[str] = Field(default_factory=list, repr=False)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Manifest:
        """Build a Manifest from a decoded package.json object.

        Raises:
            pydantic.ValidationError: If a slot is not a string → string map.
        """
        slots = {slot.value: data.get(slot.value) for slot in SLOT_ORDER}
        # A slot written as null stays in extra so it is written back as null.
        extra = {k: v for k, v in data.items() if k not in slots or v is None}
        return cls(
            dependencies=slots[Slot.DEPENDENCIES.value],
            dev_dependencies=slots[Slot.DEV_DEPENDENCIES.value],
            peer_dependencies=slots[Slot.PEER_DEPENDENCIES.value],
            extra=extra,
            key_order=list(data),
        )

    def to_json(self) -> dict[str, Any]:
        """Return the package.json object for this manifest."""
        data: dict[str, Any] = dict(self.extra)
        for slot in SLOT_ORDER:
            deps = self.get_slot(slot)
            if deps is not None:
                data[slot.value] = dict(deps)
        # Keys seen in the source file keep their position; new ones go last.
        position = {key: i for i, key in enumerate(self.key_order)}
        return dict(
            sorted(data.items(), key=lambda item: position.get(item[0], len(position)))
        )

    @property
    def name(self) -> str | None:
        name = self.extra.get("name")
        return name if isinstance(name, str) and name else None

    @property
    def declares_workspaces(self) -> bool:
        """True if the manifest has a ``workspaces`` field (monorepo root)."""
        return self.extra.get("workspaces") is not None

    def get_slot(self, slot: Slot) -> dict[str, str] | None:
        return getattr(self, _SLOT_ATTRS[slot])

    def version_in(self, slot: Slot, package: str) -> str | None:
        deps = self.get_slot(slot)
        if deps is None:
            return None
        return deps.get(package)

    def slots_declaring(self, package: str) -> list[Slot]:
        """Slots that declare ``package``, in SLOT_ORDER."""
        return [
            slot for slot in SLOT_ORDER if self.version_in(slot, package) is not None
        ]

    def first_slot(self, package: str) -> Slot | None:
        slots = self.slots_declaring(package)
        return slots[0] if slots else None

    def set_version(self, slot: Slot, package: str, version: str) -> None:
        deps = self.get_slot(slot)
        if deps is None:
            deps = {}
            setattr(self, _SLOT_ATTRS[slot], deps)
        deps[package] = version

    def remove(self, slot: Slot, package: str) -> None:
        deps = self.get_slot(slot)
        if deps is not None:
            deps.pop(package, None)

    def effective(self) -> dict[str, str]:
        """Merged read-only view of all slots (later slots win).

        Only for reporting. Never write this back.
        """
        merged: dict[str, str] = {}
        for slot in SLOT_ORDER:
            merged.update(self.get_slot(slot) or {})
        return merged


_SLOT_ATTRS: dict[Slot, str] = {
    Slot.DEPENDENCIES: "dependencies",
    Slot.DEV_DEPENDENCIES: "dev_dependencies",
    Slot.PEER_DEPENDENCIES: "peer_dependencies",
}


class Workspace(BaseModel):
    """One member of the monorepo, or the monorepo root itself.

    Attributes:
        path: Absolute path to the workspace directory. Identity key.
        name: Declared package name, or the directory name when absent.
        kind: root, app or library.
        manifest: Parsed package.json.
        relative_path: Path relative to the monorepo root ("." for root).
    """

    path: Path
    name: str
    kind: WorkspaceKind
    manifest: Manifest = Field(default_factory=Manifest)
    relative_path: str = "."

    def declares(self, package: str) -> bool:
        return package in self.manifest.effective()


class ChangeRecord(BaseModel):
    """One planned edit to one slot of one workspace.

    ``before`` is None when the package was not declared in the slot;
    ``after`` is None for removals.
    """

    model_config = ConfigDict(frozen=True)

    workspace: Path
    workspace_name: str
    package: str
    slot: Slot
    action: ChangeAction
    before: str | None = None
    after: str | None = None


class RecordOutcome(BaseModel):
    record: ChangeRecord
    status: RecordStatus
    error: str | None = None


class ExecutionReport(BaseModel):
    """Per-record result of applying (or previewing) a plan."""

    dry_run: bool
    outcomes: list[RecordOutcome] = Field(default_factory=list)

    @property
    def records(self) -> list[ChangeRecord]:
        return [o.record for o in self.outcomes]

    @property
    def failures(self) -> list[RecordOutcome]:
        return [o for o in self.outcomes if o.status is RecordStatus.FAILED]

    @property
    def success(self) -> bool:
        return not self.failures

    @property
    def changed_workspaces(self) -> list[Path]:
        """Workspaces with at least one applied record, in plan order."""
        seen: dict[Path, None] = {}
        for o in self.outcomes:
            if o.status is RecordStatus.APPLIED:
                seen.setdefault(o.record.workspace, None)
        return list(seen)
