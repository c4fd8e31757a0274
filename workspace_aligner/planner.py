"""Change planning.

Turns a decision (add/update, remove, sync) into an ordered list of
ChangeRecords. Planning is pure: it reads the manifests already held by
the given Workspaces and never touches storage. Use ``executor.apply`` to
preview or persist a plan.
"""

from __future__ import annotations

from collections.abc import Iterable

from .errors import InvalidInputError
from .ledger import VersionGroup
from .models import SLOT_ORDER, ChangeAction, ChangeRecord, Slot, Workspace


def _require(value: str | None, what: str) -> str:
    if value is None or not value.strip():
        raise InvalidInputError(f"{what} must not be empty")
    return value


def _to_slot(slot: Slot | str) -> Slot:
    try:
        return Slot(slot)
    except ValueError:
        choices = ", ".join(s.value for s in SLOT_ORDER)
        raise InvalidInputError(
            f"Unknown dependency type {slot!r} (expected one of: {choices})"
        ) from None


def plan_add_or_update(
    package: str,
    version: str,
    slot: Slot | str,
    targets: Iterable[Workspace],
) -> list[ChangeRecord]:
    """Plan setting ``package`` to ``version`` in ``slot`` of every target.

    The action is ``update`` when the slot already declares the package
    (even at the same version) and ``add`` otherwise. Records follow the
    order of ``targets``.

    Raises:
        InvalidInputError: On an empty package name or version, or an
            unknown slot.
    """
    package = _require(package, "Package name")
    version = _require(version, "Version")
    slot = _to_slot(slot)

    plan: list[ChangeRecord] = []
    for workspace in targets:
        current = workspace.manifest.version_in(slot, package)
        plan.append(
            ChangeRecord(
                workspace=workspace.path,
                workspace_name=workspace.name,
                package=package,
                slot=slot,
                action=ChangeAction.UPDATE if current is not None else ChangeAction.ADD,
                before=current,
                after=version,
            )
        )
    return plan


def plan_remove(package: str, targets: Iterable[Workspace]) -> list[ChangeRecord]:
    """Plan removing ``package`` from every slot of every target.

    A workspace declaring the package in several slots gets one record per
    slot; a workspace that does not declare it gets none.
    """
    package = _require(package, "Package name")

    plan: list[ChangeRecord] = []
    for workspace in targets:
        for slot in workspace.manifest.slots_declaring(package):
            plan.append(
                ChangeRecord(
                    workspace=workspace.path,
                    workspace_name=workspace.name,
                    package=package,
                    slot=slot,
                    action=ChangeAction.REMOVE,
                    before=workspace.manifest.version_in(slot, package),
                )
            )
    return plan


def plan_sync(
    package: str, target_version: str, group: VersionGroup
) -> list[ChangeRecord]:
    """Plan converging every workspace of ``group`` on ``target_version``.

    Workspaces already grouped under ``target_version`` are skipped. For the
    others only the first slot holding the package is rewritten
    (dependencies, then devDependencies, then peerDependencies), even if
    it is declared in more than one.

    Planning against a group in which every workspace is already at
    ``target_version`` yields an empty plan.
    """
    package = _require(package, "Package name")
    target_version = _require(target_version, "Version")

    plan: list[ChangeRecord] = []
    for version, workspaces in group.items():
        if version == target_version:
            continue
        for workspace in workspaces:
            slot = workspace.manifest.first_slot(package)
            if slot is None:
                continue
            plan.append(
                ChangeRecord(
                    workspace=workspace.path,
                    workspace_name=workspace.name,
                    package=package,
                    slot=slot,
                    action=ChangeAction.UPDATE,
                    before=workspace.manifest.version_in(slot, package),
                    after=target_version,
                )
            )
    return plan
