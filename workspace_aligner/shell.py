"""Subprocess and terminal output helpers.

Thin wrappers around subprocess for running external tools (npm and the
detected package manager) with a time bound, plus the step banner used by
the CLI.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

import click


def run(
    *args: str,
    cwd: Path | None = None,
    timeout: float | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run a command and capture its output.

    Never raises on a non-zero exit; callers inspect ``returncode``.

    Args:
        *args: Command and arguments (e.g., "npm", "view", "react", "version").
        cwd: Working directory for the command.
        timeout: Seconds before the process is killed.

    Raises:
        subprocess.TimeoutExpired: If the command ran longer than ``timeout``.
            The child has already been killed.
        OSError: If the executable cannot be started (e.g., not installed).
    """
    return subprocess.run(
        args,
        cwd=cwd,
        capture_output=True,
        text=True,
        timeout=timeout,
        check=False,
    )


def step(msg: str) -> None:
    """Print a visually distinct step header."""
    click.echo(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")
