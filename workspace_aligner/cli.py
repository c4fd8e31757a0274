"""CLI entry point for workspace-aligner."""

from __future__ import annotations

import functools
import logging
from collections.abc import Sequence
from pathlib import Path

import click

from .config import AlignerConfig, load_config
from .errors import AlignerError
from .executor import apply
from .installer import detect_package_manager, install, manual_instructions
from .ledger import (
    VersionGroup,
    all_conflicts,
    package_overview,
    versions_of,
)
from .models import (
    ChangeAction,
    ChangeRecord,
    ExecutionReport,
    RecordOutcome,
    RecordStatus,
    Slot,
    Workspace,
    WorkspaceKind,
)
from .planner import plan_add_or_update, plan_remove, plan_sync
from .registry import latest_version
from .shell import step
from .strategies import (
    STRATEGIES,
    ResolutionReport,
    resolve_interactive,
    resolve_latest,
    resolve_most_common,
)
from .versions import is_newer
from .workspaces import WorkspaceIndex, resolve_targets

KIND_LABELS = {
    WorkspaceKind.ROOT: "Root",
    WorkspaceKind.APP: "Apps",
    WorkspaceKind.LIBRARY: "Libraries",
}

DRY_RUN_NOTE = "\nDry run: no files were changed. Re-run with --apply to write them."

MULTI_SLOT_NOTE = (
    "Known limitation: a package declared in several slots of one workspace "
    "is grouped by its last slot (peer over dev over runtime), while sync "
    "rewrites only its first slot."
)


class AppContext:
    """Per-invocation state: the monorepo root, its settings and its index."""

    def __init__(self, root: Path) -> None:
        self.root = root.resolve()
        self._config: AlignerConfig | None = None
        self._index: WorkspaceIndex | None = None

    @property
    def config(self) -> AlignerConfig:
        if self._config is None:
            self._config = load_config(self.root)
        return self._config

    @property
    def index(self) -> WorkspaceIndex:
        if self._index is None:
            self._index = WorkspaceIndex.load(
                self.root, member_dirs=self.config.member_dirs()
            )
        return self._index


class AlignerGroup(click.Group):
    """Turns library errors into clean CLI errors."""

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except AlignerError as exc:
            raise click.ClickException(str(exc)) from exc


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def _describe(record: ChangeRecord) -> str:
    slot = record.slot.value
    if record.action is ChangeAction.ADD:
        return f"added {record.after} ({slot})"
    if record.action is ChangeAction.UPDATE:
        return f"{record.before} → {record.after} ({slot})"
    return f"removed from {slot} ({record.before})"


def _echo_outcome(outcome: RecordOutcome, indent: str = "  ") -> None:
    line = f"{indent}{outcome.record.workspace_name}: {_describe(outcome.record)}"
    if outcome.status is RecordStatus.FAILED:
        line += f"  FAILED: {outcome.error}"
    click.echo(line)


def _echo_report(report: ExecutionReport, title: str) -> None:
    step(f"{'Preview' if report.dry_run else 'Applied'}: {title}")
    if not report.outcomes:
        click.echo("  No changes needed")
    for outcome in report.outcomes:
        _echo_outcome(outcome)
    if report.dry_run and report.outcomes:
        click.echo(DRY_RUN_NOTE)


def _echo_group(package: str, group: VersionGroup) -> None:
    click.echo(package)
    for version, members in group.items():
        click.echo(f"  {version} ({_plural(len(members), 'workspace')})")
        for workspace in members:
            click.echo(f"    ├─ {workspace.name}")


def _select_targets(
    index: WorkspaceIndex,
    kinds: Sequence[str],
    paths: Sequence[str],
    default: list[Workspace],
) -> list[Workspace]:
    if paths:
        return resolve_targets(index, paths)
    if kinds:
        return [w for w in index if w.kind.value in kinds]
    return default


def _run_install(app: AppContext, paths: Sequence[Path]) -> None:
    manager = app.config.package_manager or detect_package_manager(app.root)
    step(f"Installing with {manager.value}")
    result = install(
        app.index,
        paths,
        package_manager=manager,
        timeout=app.config.install_timeout,
    )
    for location in result.locations:
        mark = "✓" if location.success else "✗"
        click.echo(f"  {mark} {location.path}")
    if not result.success:
        click.echo("\nInstall manually:\n", err=True)
        click.echo(manual_instructions(app.index, paths, manager), err=True)
        raise click.ClickException(result.error or "Installation failed")


def _finish(app: AppContext, report: ExecutionReport, install_after: bool) -> None:
    """Refresh, optionally install, and fail if any workspace failed."""
    if not report.dry_run:
        app.index.refresh()
        if install_after and report.changed_workspaces:
            _run_install(app, report.changed_workspaces)
    if not report.success:
        failed = {o.record.workspace_name for o in report.failures}
        raise click.ClickException(
            f"{_plural(len(failed), 'workspace')} could not be updated: "
            + ", ".join(sorted(failed))
        )


kind_option = click.option(
    "--kind",
    "kinds",
    multiple=True,
    type=click.Choice([k.value for k in WorkspaceKind]),
    help="Limit to workspaces of this kind (repeatable).",
)
workspace_option = click.option(
    "-w",
    "--workspace",
    "paths",
    multiple=True,
    help="Workspace directory, relative to the root (repeatable).",
)
apply_option = click.option(
    "--apply", "apply_", is_flag=True, help="Write the changes (default: preview only)."
)
install_option = click.option(
    "--install",
    "install_after",
    is_flag=True,
    help="Run the package manager's install after applying.",
)


@click.group(cls=AlignerGroup)
@click.version_option(package_name="workspace-aligner")
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    envvar="WORKSPACE_ALIGNER_ROOT",
    help="Monorepo root containing the top-level package.json.",
)
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging.")
@click.pass_context
def cli(ctx: click.Context, root: Path, verbose: bool) -> None:
    """Align dependency versions across the workspaces of a monorepo."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )
    ctx.obj = AppContext(root)


@cli.command("workspaces")
@click.pass_obj
def workspaces_cmd(app: AppContext) -> None:
    """List discovered workspaces."""
    index = app.index
    step(f"Found {_plural(len(index), 'workspace')}")
    for kind in WorkspaceKind:
        members = index.by_kind(kind)
        if not members:
            continue
        click.echo(f"{KIND_LABELS[kind]}:")
        for workspace in members:
            click.echo(f"  ├─ {workspace.name} ({workspace.relative_path})")


@cli.command("packages")
@click.pass_obj
def packages_cmd(app: AppContext) -> None:
    """Show every declared package and the versions in use."""
    overview = package_overview(app.index)
    step(f"{_plural(len(overview), 'package')} declared")
    for package, group in overview:
        _echo_group(package, group)


@cli.command("conflicts", epilog=MULTI_SLOT_NOTE)
@click.pass_context
def conflicts_cmd(ctx: click.Context) -> None:
    """List packages declared at different versions. Exits 1 if any."""
    app: AppContext = ctx.obj
    conflicts = all_conflicts(app.index)
    if not conflicts:
        click.echo("No version conflicts found.")
        return
    step(f"{_plural(len(conflicts), 'package')} with version conflicts")
    for package, group in conflicts:
        _echo_group(package, group)
    ctx.exit(1)


@cli.command("add")
@click.argument("package")
@click.argument("version")
@click.option(
    "--slot",
    type=click.Choice([s.value for s in Slot]),
    default=None,
    help="Dependency type. Defaults to the configured default-slot.",
)
@kind_option
@workspace_option
@apply_option
@install_option
@click.pass_obj
def add_cmd(
    app: AppContext,
    package: str,
    version: str,
    slot: str | None,
    kinds: tuple[str, ...],
    paths: tuple[str, ...],
    apply_: bool,
    install_after: bool,
) -> None:
    """Add PACKAGE at VERSION, or update it, in the selected workspaces."""
    index = app.index
    targets = _select_targets(index, kinds, paths, default=list(index))
    slot = slot or app.config.default_slot
    plan = plan_add_or_update(package, version, slot, targets)
    report = apply(plan, index.store, dry_run=not apply_)
    _echo_report(report, f"add {package}@{version}")
    _finish(app, report, install_after)


@cli.command("remove")
@click.argument("package")
@workspace_option
@apply_option
@install_option
@click.pass_obj
def remove_cmd(
    app: AppContext,
    package: str,
    paths: tuple[str, ...],
    apply_: bool,
    install_after: bool,
) -> None:
    """Remove PACKAGE from every slot of the selected workspaces.

    Without --workspace, every workspace that declares PACKAGE is targeted.
    """
    index = app.index
    declaring = index.declaring(package)
    if not declaring and not paths:
        raise click.ClickException(f'Package "{package}" is not declared anywhere')
    targets = _select_targets(index, (), paths, default=declaring)
    report = apply(plan_remove(package, targets), index.store, dry_run=not apply_)
    _echo_report(report, f"remove {package}")
    _finish(app, report, install_after)


@cli.command("sync", epilog=MULTI_SLOT_NOTE)
@click.argument("package")
@click.argument("version")
@apply_option
@install_option
@click.pass_obj
def sync_cmd(
    app: AppContext,
    package: str,
    version: str,
    apply_: bool,
    install_after: bool,
) -> None:
    """Set PACKAGE to VERSION in every workspace that declares it."""
    index = app.index
    group = versions_of(index, package)
    if group is None:
        raise click.ClickException(f'Package "{package}" not found in any workspace')
    _echo_group(package, group)
    report = apply(plan_sync(package, version, group), index.store, dry_run=not apply_)
    _echo_report(report, f"sync {package} → {version}")
    _finish(app, report, install_after)


def prompt_target(package: str, group: VersionGroup, latest: str | None) -> str | None:
    """Ask the operator for the target version of one package.

    Offers the versions in use, the registry's latest (if known and not
    already in use), a custom version, or skipping the package.
    """
    click.echo()
    _echo_group(package, group)
    options = list(group)
    click.echo()
    for i, version in enumerate(options, start=1):
        used = _plural(len(group[version]), "workspace")
        click.echo(f"  [{i}] {version} (used in {used})")
    if latest is not None:
        if latest in group:
            click.echo(f"  npm latest is {latest} (already in use)")
        else:
            options.append(latest)
            hint = ", newer than current versions" if is_newer(latest, group) else ""
            click.echo(f"  [{len(options)}] {latest} (latest from npm{hint})")
    click.echo("  [c] custom version")
    click.echo("  [s] skip")

    choices = [str(i) for i in range(1, len(options) + 1)] + ["c", "s"]
    answer = click.prompt(
        f"Target version for {package}",
        type=click.Choice(choices),
        show_choices=False,
    )
    if answer == "s":
        return None
    if answer == "c":
        return click.prompt(f"Custom version for {package}", type=str).strip()
    return options[int(answer) - 1]


def _echo_resolution(report: ResolutionReport) -> None:
    mode = "Preview" if report.dry_run else "Applied"
    step(f"{mode}: {report.strategy} resolution")
    for resolution in report.resolutions:
        if resolution.skipped:
            click.echo(f"  {resolution.package}: skipped")
        elif resolution.error is not None:
            click.echo(f"  {resolution.package}: FAILED: {resolution.error}")
        elif resolution.report is not None:
            changes = _plural(len(resolution.report.outcomes), "change")
            click.echo(f"  {resolution.package} → {resolution.target} ({changes})")
            for outcome in resolution.report.outcomes:
                _echo_outcome(outcome, indent="    ")
    if report.dry_run:
        click.echo(DRY_RUN_NOTE)


@cli.command("resolve", epilog=MULTI_SLOT_NOTE)
@click.option(
    "--strategy",
    type=click.Choice(STRATEGIES),
    default="interactive",
    show_default=True,
    help="How to pick each package's target version.",
)
@click.option(
    "-p",
    "--package",
    "packages",
    multiple=True,
    help="Only resolve these packages (repeatable).",
)
@click.option("-y", "--yes", is_flag=True, help='Don\'t ask before using "latest".')
@apply_option
@install_option
@click.pass_obj
def resolve_cmd(
    app: AppContext,
    strategy: str,
    packages: tuple[str, ...],
    yes: bool,
    apply_: bool,
    install_after: bool,
) -> None:
    """Resolve version conflicts in bulk."""
    index = app.index
    conflicts = all_conflicts(index)
    if packages:
        unknown = set(packages) - {package for package, _ in conflicts}
        if unknown:
            raise click.ClickException(
                "No version conflict for: " + ", ".join(sorted(unknown))
            )
        conflicts = [c for c in conflicts if c[0] in packages]
    if not conflicts:
        click.echo("No version conflicts found.")
        return

    dry_run = not apply_
    if strategy == "interactive":
        registry = functools.partial(
            latest_version, timeout=app.config.registry_timeout
        )
        report = resolve_interactive(
            conflicts, prompt_target, index.store, dry_run=dry_run, registry=registry
        )
    elif strategy == "most-common":
        report = resolve_most_common(conflicts, index.store, dry_run=dry_run)
    else:
        if not yes and not click.confirm(
            f'This will update {_plural(len(conflicts), "package")} to "latest". '
            "Continue?",
            default=False,
        ):
            click.echo("Cancelled.")
            return
        report = resolve_latest(conflicts, index.store, dry_run=dry_run)

    _echo_resolution(report)

    if not dry_run:
        index.refresh()
        if install_after and report.resolved:
            paths = {
                path: None
                for resolution in report.resolved
                if resolution.report is not None
                for path in resolution.report.changed_workspaces
            }
            if paths:
                _run_install(app, list(paths))
    if not report.success:
        failed = ", ".join(r.package for r in report.failures)
        raise click.ClickException(f"Could not resolve: {failed}")


@cli.command("install")
@kind_option
@workspace_option
@click.pass_obj
def install_cmd(
    app: AppContext, kinds: tuple[str, ...], paths: tuple[str, ...]
) -> None:
    """Install dependencies with the detected package manager."""
    index = app.index
    targets = _select_targets(index, kinds, paths, default=list(index))
    if not targets:
        raise click.ClickException("No workspaces selected for installation")
    _run_install(app, [w.path for w in targets])
