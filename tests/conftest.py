from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pytest

from nextstarter.config import settings as settings_mod
from nextstarter.errors import CollaboratorFetchError, NotFoundError


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path: Path):
    """Keep every test away from the real cache dir and user settings."""
    monkeypatch.setenv("NEXTSTARTER_CACHE_DIR", str(tmp_path / "cache-home"))
    monkeypatch.delenv("NEXTSTARTER_CONFIG", raising=False)
    settings_mod.get_settings.cache_clear()
    yield
    settings_mod.get_settings.cache_clear()


class FakeRegistry:
    """Resolves every name@version except the ones listed as missing."""

    def __init__(self, missing: Iterable[str] = (), resolved: Optional[Dict[str, str]] = None) -> None:
        self.missing = set(missing)
        self.resolved = resolved or {}
        self.calls: List[Tuple[str, str]] = []

    def resolve(self, name: str, version: str) -> str:
        self.calls.append((name, version))
        if name in self.missing or f"{name}@{version}" in self.missing:
            raise NotFoundError(f"Version {version} of {name} not found")
        return self.resolved.get(f"{name}@{version}", version)


class RecordingInstaller:
    def __init__(self) -> None:
        self.calls: List[Tuple[Path, List[str]]] = []

    def install(self, project_dir: Path, packages: Sequence[str]) -> None:
        self.calls.append((project_dir, list(packages)))


class CopyFetcher:
    """Stands in for git clone by copying a local template tree."""

    def __init__(self, source: Path, revision: Optional[str] = "abc1234") -> None:
        self.source = source
        self._revision = revision
        self.fetched: List[Path] = []

    def fetch(self, destination: Path) -> Path:
        if not self.source.exists():
            raise CollaboratorFetchError(f"Failed to clone {self.source}")
        shutil.copytree(self.source, destination)
        self.fetched.append(destination)
        return destination

    def revision(self, directory: Path) -> Optional[str]:
        return self._revision


def make_template(
    root: Path,
    directories: Sequence[str] = ("components", "app", "lib", "styles"),
    config_files: Sequence[str] = ("tailwind.config.ts", "postcss.config.js", "next.config.js"),
    dependencies: Optional[Dict[str, str]] = None,
    public: bool = True,
) -> Path:
    """Build a small template tree on disk."""
    root.mkdir(parents=True, exist_ok=True)
    for name in directories:
        (root / name).mkdir(parents=True, exist_ok=True)
        (root / name / "index.tsx").write_text(f"// {name}\n", encoding="utf-8")
    if "components" in directories:
        (root / "components" / "ui").mkdir(parents=True, exist_ok=True)
        (root / "components" / "ui" / "button.tsx").write_text("export const Button = 1\n", encoding="utf-8")
    for name in config_files:
        (root / name).write_text(f"// {name}\n", encoding="utf-8")
    if public:
        (root / "public").mkdir(exist_ok=True)
        (root / "public" / "manifest.json").write_text('{"name": "starter"}\n', encoding="utf-8")
        (root / "public" / "icon-192.png").write_bytes(b"\x89PNG\r\n\x1a\n\x00fake")
    deps = {"clsx": "2.1.1", "sonner": "1.5.0", "next": "14.2.3"} if dependencies is None else dependencies
    (root / "package.json").write_text(
        json.dumps({"name": "starter", "dependencies": deps}, indent=2), encoding="utf-8"
    )
    return root
