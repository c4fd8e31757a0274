"""Plan execution.

Applies a plan through a ManifestStore, one read-modify-write per
workspace. A workspace whose manifest cannot be read or written has its
records marked failed; the remaining workspaces are still processed.

The executor does not own the WorkspaceIndex. After a successful real run
the caller should call ``WorkspaceIndex.refresh()``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from .errors import ManifestError
from .manifest import ManifestStore
from .models import (
    ChangeAction,
    ChangeRecord,
    ExecutionReport,
    Manifest,
    RecordOutcome,
    RecordStatus,
)

logger = logging.getLogger(__name__)


def apply_record(manifest: Manifest, record: ChangeRecord) -> None:
    """Apply one record to an in-memory manifest."""
    if record.action is ChangeAction.REMOVE:
        manifest.remove(record.slot, record.package)
    elif record.after is not None:
        manifest.set_version(record.slot, record.package, record.after)


def _batch_by_workspace(plan: Sequence[ChangeRecord]) -> dict[Path, list[ChangeRecord]]:
    batches: dict[Path, list[ChangeRecord]] = {}
    for record in plan:
        batches.setdefault(record.workspace, []).append(record)
    return batches


def apply(
    plan: Sequence[ChangeRecord],
    store: ManifestStore,
    *,
    dry_run: bool = True,
) -> ExecutionReport:
    """Apply or preview ``plan``.

    With ``dry_run`` nothing is read or written and every record is
    reported as skipped. Otherwise all records for the same workspace are
    written in a single update; records come back in plan order, marked
    applied or failed.

    Args:
        plan: Records from one of the ``plan_*`` functions.
        store: Where manifests are read from and written to.
        dry_run: Preview only.

    Returns:
        The plan's records with a status each.
    """
    errors: dict[Path, str] = {}

    if not dry_run:
        for path, records in _batch_by_workspace(plan).items():
            try:
                manifest = store.read(path)
                for record in records:
                    apply_record(manifest, record)
                store.write(path, manifest)
            except ManifestError as exc:
                logger.warning("Could not update %s: %s", path, exc)
                errors[path] = str(exc)
            else:
                logger.debug("Updated %s (%d changes)", path, len(records))

    outcomes: list[RecordOutcome] = []
    for record in plan:
        if dry_run:
            outcomes.append(RecordOutcome(record=record, status=RecordStatus.SKIPPED))
        elif record.workspace in errors:
            outcomes.append(
                RecordOutcome(
                    record=record,
                    status=RecordStatus.FAILED,
                    error=errors[record.workspace],
                )
            )
        else:
            outcomes.append(RecordOutcome(record=record, status=RecordStatus.APPLIED))

    return ExecutionReport(dry_run=dry_run, outcomes=outcomes)
