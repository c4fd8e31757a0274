"""Configuration loading.

Settings are read from ``workspace-aligner.toml`` at the monorepo root,
table ``[workspace-aligner]``. Every key is optional; a missing file means
defaults. Example::

    [workspace-aligner]
    apps-dir = "apps"
    packages-dir = "libs"
    default-slot = "dependencies"
    registry-timeout = 10
    install-timeout = 300
    package-manager = "pnpm"
"""

from __future__ import annotations

from pathlib import Path

import tomlkit
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from tomlkit.exceptions import ParseError

from .errors import ConfigError
from .models import PackageManagerKind, Slot, WorkspaceKind

CONFIG_FILENAME = "workspace-aligner.toml"
CONFIG_TABLE = "workspace-aligner"


class AlignerConfig(BaseModel):
    """Validated settings.

    Attributes:
        apps_dir: Directory whose subdirectories are app workspaces.
        packages_dir: Directory whose subdirectories are library workspaces.
        default_slot: Slot used by ``add`` when none is given.
        registry_timeout: Seconds allowed for an ``npm view`` lookup.
        install_timeout: Seconds allowed for one install run.
        package_manager: Force a package manager instead of detecting it
                         from the lock file.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    apps_dir: str = Field(default="apps", alias="apps-dir")
    packages_dir: str = Field(default="packages", alias="packages-dir")
    default_slot: Slot = Field(default=Slot.DEV_DEPENDENCIES, alias="default-slot")
    registry_timeout: float = Field(default=10.0, alias="registry-timeout", gt=0)
    install_timeout: float = Field(default=300.0, alias="install-timeout", gt=0)
    package_manager: PackageManagerKind | None = Field(
        default=None, alias="package-manager"
    )

    def member_dirs(self) -> list[tuple[str, WorkspaceKind]]:
        return [
            (self.apps_dir, WorkspaceKind.APP),
            (self.packages_dir, WorkspaceKind.LIBRARY),
        ]


def load_config(root: Path) -> AlignerConfig:
    """Load settings for the monorepo at ``root``.

    Raises:
        ConfigError: If the file cannot be parsed or holds invalid values.
    """
    path = Path(root) / CONFIG_FILENAME
    if not path.exists():
        return AlignerConfig()

    try:
        doc = tomlkit.parse(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ParseError) as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc

    table = doc.unwrap().get(CONFIG_TABLE, {})
    if not isinstance(table, dict):
        raise ConfigError(f"[{CONFIG_TABLE}] in {path} must be a table")

    try:
        return AlignerConfig.model_validate(table)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings in {path}:\n{exc}") from exc
