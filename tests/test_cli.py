"""Tests for the workspace-aligner CLI."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner
from conftest import read_manifest, write_manifest

from workspace_aligner.cli import cli


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def invoke(runner: CliRunner, root: Path, *args: str, **kwargs):
    return runner.invoke(cli, ["--root", str(root), *args], **kwargs)


class TestListing:
    def test_workspaces(self, runner: CliRunner, monorepo: Path) -> None:
        result = invoke(runner, monorepo, "workspaces")
        assert result.exit_code == 0
        assert "Found 5 workspaces" in result.output
        assert "Apps:" in result.output
        assert "  ├─ @acme/admin (apps/admin)" in result.output
        assert "  ├─ utils (packages/utils)" in result.output

    def test_packages(self, runner: CliRunner, monorepo: Path) -> None:
        result = invoke(runner, monorepo, "packages")
        assert result.exit_code == 0
        assert "3 packages declared" in result.output
        assert "  ^18.2.0 (3 workspaces)" in result.output

    def test_conflicts_exit_code(self, runner: CliRunner, monorepo: Path) -> None:
        result = invoke(runner, monorepo, "conflicts")
        assert result.exit_code == 1
        assert "2 packages with version conflicts" in result.output
        assert "  4.16.0 (1 workspace)" in result.output
        assert "    ├─ @acme/admin" in result.output

    def test_no_conflicts(self, runner: CliRunner, tmp_path: Path) -> None:
        write_manifest(tmp_path, {"name": "solo", "dependencies": {"a": "1"}})
        result = invoke(runner, tmp_path, "conflicts")
        assert result.exit_code == 0
        assert "No version conflicts found." in result.output

    def test_root_from_environment(self, runner: CliRunner, monorepo: Path) -> None:
        result = runner.invoke(
            cli, ["workspaces"], env={"WORKSPACE_ALIGNER_ROOT": str(monorepo)}
        )
        assert result.exit_code == 0
        assert "acme" in result.output

    def test_missing_root_manifest(self, runner: CliRunner, tmp_path: Path) -> None:
        result = invoke(runner, tmp_path, "workspaces")
        assert result.exit_code == 1
        assert "Cannot read root manifest" in result.output


class TestSync:
    def test_preview_by_default(self, runner: CliRunner, monorepo: Path) -> None:
        result = invoke(runner, monorepo, "sync", "lodash", "^4.17.21")
        assert result.exit_code == 0
        assert "Preview: sync lodash → ^4.17.21" in result.output
        assert "@acme/admin: 4.16.0 → ^4.17.21 (devDependencies)" in result.output
        assert "Dry run" in result.output
        admin = read_manifest(monorepo / "apps" / "admin")
        assert admin["devDependencies"] == {"lodash": "4.16.0"}

    def test_apply(self, runner: CliRunner, monorepo: Path) -> None:
        result = invoke(runner, monorepo, "sync", "lodash", "^4.17.0", "--apply")
        assert result.exit_code == 0
        assert "Applied: sync lodash" in result.output
        admin = read_manifest(monorepo / "apps" / "admin")
        assert admin["devDependencies"] == {"lodash": "^4.17.0"}

    def test_already_aligned(self, runner: CliRunner, monorepo: Path) -> None:
        result = invoke(runner, monorepo, "sync", "react", "^18.2.0", "--apply")
        assert result.exit_code == 0
        assert "No changes needed" in result.output

    def test_unknown_package(self, runner: CliRunner, monorepo: Path) -> None:
        result = invoke(runner, monorepo, "sync", "vue", "^3.0.0")
        assert result.exit_code == 1
        assert 'Package "vue" not found in any workspace' in result.output

    def test_apply_and_install(self, runner: CliRunner, monorepo: Path) -> None:
        with patch(
            "workspace_aligner.installer.run",
            return_value=subprocess.CompletedProcess([], 0, "", ""),
        ) as mock_run:
            result = invoke(
                runner, monorepo, "sync", "lodash", "^4.17.0", "--apply", "--install"
            )
        assert result.exit_code == 0
        assert "Installing with npm" in result.output
        mock_run.assert_called_once()


class TestAddRemove:
    def test_add_uses_configured_default_slot(
        self, runner: CliRunner, monorepo: Path
    ) -> None:
        (monorepo / "workspace-aligner.toml").write_text(
            '[workspace-aligner]\ndefault-slot = "dependencies"\n'
        )
        result = invoke(
            runner, monorepo, "add", "zod", "^3.0.0", "--kind", "library", "--apply"
        )
        assert result.exit_code == 0
        assert read_manifest(monorepo / "packages" / "utils")["dependencies"] == {
            "zod": "^3.0.0"
        }
        assert "zod" not in read_manifest(monorepo / "apps" / "web")["dependencies"]

    def test_add_to_one_workspace(self, runner: CliRunner, monorepo: Path) -> None:
        result = invoke(
            runner, monorepo, "add", "vitest", "^1.0.0", "-w", "apps/web", "--apply"
        )
        assert result.exit_code == 0
        assert "@acme/web: added ^1.0.0 (devDependencies)" in result.output
        web = read_manifest(monorepo / "apps" / "web")
        assert web["devDependencies"] == {"vitest": "^1.0.0"}

    def test_add_unknown_workspace(self, runner: CliRunner, monorepo: Path) -> None:
        result = invoke(runner, monorepo, "add", "zod", "^3.0.0", "-w", "apps/nope")
        assert result.exit_code == 1
        assert "Not a workspace: apps/nope" in result.output

    def test_add_empty_version(self, runner: CliRunner, monorepo: Path) -> None:
        result = invoke(runner, monorepo, "add", "zod", "")
        assert result.exit_code == 1
        assert "Version must not be empty" in result.output

    def test_remove_from_every_declaring_workspace(
        self, runner: CliRunner, monorepo: Path
    ) -> None:
        result = invoke(runner, monorepo, "remove", "react", "--apply")
        assert result.exit_code == 0
        assert "removed from peerDependencies (^18.2.0)" in result.output
        ui = read_manifest(monorepo / "packages" / "ui")
        assert ui["peerDependencies"] == {}
        assert "react" not in read_manifest(monorepo / "apps" / "web")["dependencies"]

    def test_remove_undeclared(self, runner: CliRunner, monorepo: Path) -> None:
        result = invoke(runner, monorepo, "remove", "vue")
        assert result.exit_code == 1
        assert 'Package "vue" is not declared anywhere' in result.output


class TestResolve:
    def test_most_common(self, runner: CliRunner, monorepo: Path) -> None:
        result = invoke(
            runner, monorepo, "resolve", "--strategy", "most-common", "--apply"
        )
        assert result.exit_code == 0
        assert "lodash → ^4.17.0 (1 change)" in result.output
        assert invoke(runner, monorepo, "conflicts").exit_code == 0

    def test_latest_asks_first(self, runner: CliRunner, monorepo: Path) -> None:
        result = invoke(
            runner, monorepo, "resolve", "--strategy", "latest", "--apply", input="n\n"
        )
        assert result.exit_code == 0
        assert "Cancelled." in result.output
        assert read_manifest(monorepo / "apps" / "web")["dependencies"]["lodash"] == (
            "^4.17.0"
        )

    def test_latest_with_yes(self, runner: CliRunner, monorepo: Path) -> None:
        result = invoke(
            runner, monorepo, "resolve", "--strategy", "latest", "-y", "--apply"
        )
        assert result.exit_code == 0
        assert read_manifest(monorepo)["devDependencies"] == {"typescript": "latest"}

    def test_interactive(self, runner: CliRunner, monorepo: Path) -> None:
        with patch("workspace_aligner.cli.latest_version", return_value="4.17.21"):
            result = invoke(runner, monorepo, "resolve", "--apply", input="2\ns\n")

        assert result.exit_code == 0, result.output
        assert "[3] 4.17.21 (latest from npm, newer than current versions)" in (
            result.output
        )
        assert "typescript: skipped" in result.output
        admin = read_manifest(monorepo / "apps" / "admin")
        assert admin["devDependencies"] == {"lodash": "^4.17.0"}
        assert read_manifest(monorepo)["devDependencies"] == {"typescript": "^5.4.0"}

    def test_interactive_custom_version(
        self, runner: CliRunner, monorepo: Path
    ) -> None:
        with patch("workspace_aligner.cli.latest_version", return_value=None):
            result = invoke(
                runner,
                monorepo,
                "resolve",
                "-p",
                "typescript",
                "--apply",
                input="c\n~5.5.0\n",
            )

        assert result.exit_code == 0, result.output
        utils = read_manifest(monorepo / "packages" / "utils")
        assert utils["devDependencies"] == {"typescript": "~5.5.0"}

    def test_install_only_changed_workspaces(
        self, runner: CliRunner, tmp_path: Path
    ) -> None:
        write_manifest(tmp_path, {"name": "root"})
        write_manifest(
            tmp_path / "packages" / "a",
            {"name": "a", "dependencies": {"lodash": "^4.17.0", "react": "^17.0.0"}},
        )
        write_manifest(
            tmp_path / "packages" / "b", {"dependencies": {"lodash": "4.16.0"}}
        )
        write_manifest(
            tmp_path / "packages" / "c", {"dependencies": {"react": "^18.2.0"}}
        )

        with patch("workspace_aligner.cli.latest_version", return_value=None), patch(
            "workspace_aligner.installer.run",
            return_value=subprocess.CompletedProcess([], 0, "", ""),
        ) as mock_run:
            result = invoke(
                runner, tmp_path, "resolve", "--apply", "--install", input="1\ns\n"
            )

        assert result.exit_code == 0, result.output
        assert mock_run.call_count == 1
        b = (tmp_path / "packages" / "b").resolve()
        assert mock_run.call_args.kwargs["cwd"] == b

    def test_unknown_package_filter(self, runner: CliRunner, monorepo: Path) -> None:
        result = invoke(runner, monorepo, "resolve", "-p", "react")
        assert result.exit_code == 1
        assert "No version conflict for: react" in result.output


class TestInstall:
    def test_install(self, runner: CliRunner, monorepo: Path) -> None:
        (monorepo / "pnpm-lock.yaml").write_text("")
        with patch(
            "workspace_aligner.installer.run",
            return_value=subprocess.CompletedProcess([], 0, "", ""),
        ) as mock_run:
            result = invoke(runner, monorepo, "install")

        assert result.exit_code == 0
        assert "Installing with pnpm" in result.output
        assert mock_run.call_args.args == ("pnpm", "install")

    def test_install_failure_prints_manual_steps(
        self, runner: CliRunner, monorepo: Path
    ) -> None:
        with patch(
            "workspace_aligner.installer.run",
            return_value=subprocess.CompletedProcess([], 1, "", "ERESOLVE"),
        ):
            result = invoke(runner, monorepo, "install")

        assert result.exit_code == 1
        assert "Install manually" in result.output
        assert "  npm install" in result.output
        assert "ERESOLVE" in result.output
