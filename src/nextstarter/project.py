"""Project choices and the external commands that act on a project."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import ValidationError
from .registry import LATEST
from .utils import run

logger = logging.getLogger(__name__)

DEFAULT_IMPORT_ALIAS = "@/*"


@dataclass
class ProjectRequest:
    """Resolved user choices for one scaffold."""

    project_name: str = "my-app"
    typescript: bool = True
    eslint: bool = True
    tailwind: bool = True
    src_dir: bool = False
    app_router: bool = True
    turbo: bool = False
    import_alias: str = DEFAULT_IMPORT_ALIAS
    shadcn: bool = True
    pwa: bool = True
    pwa_mode: str = "manifest"
    next_version: str = LATEST
    node_version: Optional[str] = None

    @property
    def wants_overlay(self) -> bool:
        return self.shadcn or self.pwa

    def create_command(self, runner: str = "bun") -> List[str]:
        """argv for the create-next-app generator."""
        package = "next-app" if self.next_version == LATEST else f"next-app@{self.next_version}"

        def flag(name: str, enabled: bool) -> str:
            return f"--{name}" if enabled else f"--no-{name}"

        return [
            runner,
            "create",
            package,
            self.project_name,
            "--yes",
            "--ts" if self.typescript else "--js",
            flag("eslint", self.eslint),
            flag("tailwind", self.tailwind),
            flag("src-dir", self.src_dir),
            flag("app", self.app_router),
            flag("turbopack", self.turbo),
            "--import-alias",
            self.import_alias or DEFAULT_IMPORT_ALIAS,
        ]


def generate_project(request: ProjectRequest, cwd: Path, runner: str = "bun") -> Path:
    """Run create-next-app and return the created project directory."""
    run(request.create_command(runner), cwd=cwd)
    return cwd / request.project_name


def pin_node_version(project_dir: Path, version: str) -> None:
    """Write `version` to engines.node in the project's package.json."""
    manifest = Path(project_dir) / "package.json"
    try:
        data = json.loads(manifest.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ValidationError(f"Cannot read {manifest}: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError(f"{manifest} is not a JSON object")
    engines = data.get("engines")
    if not isinstance(engines, dict):
        engines = data["engines"] = {}
    engines["node"] = version
    manifest.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


class DependencyInstaller:
    """Adds packages to a project with the configured package runner."""

    def __init__(self, runner: str = "bun") -> None:
        self.runner = runner

    def install_command(self, packages: Sequence[str]) -> List[str]:
        return [self.runner, "add", *packages]

    def install(self, project_dir: Path, packages: Sequence[str]) -> None:
        if not packages:
            return
        logger.info("Installing %s", " ".join(packages))
        run(self.install_command(packages), cwd=project_dir)


def manual_setup_hints(
    template_url: str, default_dependencies: Sequence[str], runner: str = "bun"
) -> List[str]:
    """Steps to add the custom features by hand."""
    repo = template_url[:-4] if template_url.endswith(".git") else template_url
    return [
        f"1. Clone {repo}",
        "2. Copy the components/ and app/ folders to your project",
        f"3. Run: {runner} add {' '.join(default_dependencies)}",
    ]


def troubleshooting_hints(platform: Optional[str] = None) -> List[str]:
    """Platform-specific suggestions printed after a fatal error."""
    platform = platform or sys.platform
    if platform == "win32":
        return [
            "Run the terminal as Administrator",
            "Add the project folder to your antivirus exclusions; real-time scanning can lock files being copied",
            "Make sure no editor or dev server holds files open in the project folder",
        ]
    return [
        "Check that you own the target directory: ls -ld .",
        "Do not run the package runner with sudo; fix directory ownership instead",
        "If the cache directory is not writable, remove it or set NEXTSTARTER_CACHE_DIR",
    ]
