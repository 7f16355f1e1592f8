"""Settings management.

Settings discovery:
- Start from the defaults bundled with the package (`defaults.yml`).
- If a user settings file exists (`$NEXTSTARTER_CONFIG`, or `config.yml`
  inside the cache directory), its top-level keys replace the defaults.
- Expose a memoized getter so callers can treat it like a constant.
"""

from __future__ import annotations

import os
import sys
from functools import lru_cache
from importlib.resources import files
from pathlib import Path
from typing import Any, Dict, List, Optional, TypedDict

import yaml

from ..errors import ValidationError

APP_NAME = "nextstarter"
CONFIG_ENV = "NEXTSTARTER_CONFIG"
CACHE_DIR_ENV = "NEXTSTARTER_CACHE_DIR"

PWA_MODES = ("manifest", "full")


class TemplateSource(TypedDict):
    """Where the overlay template is cloned from."""

    url: str  # https://github.com/BA86work/next-starter-shadcn-pwa.git
    branch: str  # main


class OverlaySettings(TypedDict):
    directories: List[str]
    config_files: List[str]
    pwa_mode: str  # manifest | full


class StarterSettings(TypedDict):
    template: TemplateSource
    cache_max_age_hours: float
    registry_url: str
    registry_timeout: float
    package_runner: str
    core_dependencies: List[str]
    default_dependencies: List[str]
    overlay: OverlaySettings


def get_cache_dir() -> Path:
    """Get the platform-appropriate cache directory.

    - Windows: %LOCALAPPDATA%\\nextstarter\\cache
    - macOS: ~/Library/Caches/nextstarter
    - Linux: ~/.cache/nextstarter (XDG_CACHE_HOME if set)
    """
    override = os.environ.get(CACHE_DIR_ENV)
    if override:
        return Path(override).expanduser()
    if sys.platform == "win32":
        base = os.environ.get("LOCALAPPDATA")
        if base:
            return Path(base) / APP_NAME / "cache"
        return Path.home() / "AppData" / "Local" / APP_NAME / "cache"
    elif sys.platform == "darwin":
        return Path.home() / "Library" / "Caches" / APP_NAME
    else:
        xdg = os.environ.get("XDG_CACHE_HOME")
        if xdg:
            return Path(xdg) / APP_NAME
        return Path.home() / ".cache" / APP_NAME


def _str_list(value: object, key: str) -> List[str]:
    assert isinstance(value, list), f"{key} must be a list"
    assert all(isinstance(v, str) for v in value), f"{key} must contain strings"
    return list(value)


def _parse_settings(data: Dict[str, Any]) -> StarterSettings:
    template = data.get("template", {})
    assert isinstance(template, dict)
    url = template["url"]
    assert isinstance(url, str)
    branch = template.get("branch", "main")
    assert isinstance(branch, str)

    cache = data.get("cache", {}) or {}
    max_age = cache.get("max_age_hours", 24)
    assert isinstance(max_age, (int, float)) and max_age > 0

    registry = data.get("registry", {}) or {}
    registry_url = registry.get("url", "https://registry.npmjs.org")
    assert isinstance(registry_url, str)
    timeout = registry.get("timeout", 15)
    assert isinstance(timeout, (int, float))

    runner = data.get("package_runner", "bun")
    assert isinstance(runner, str)

    overlay = data.get("overlay", {}) or {}
    pwa_mode = overlay.get("pwa_mode", "manifest")
    assert pwa_mode in PWA_MODES, f"overlay.pwa_mode must be one of {PWA_MODES}"

    return StarterSettings(
        template=TemplateSource(url=url, branch=branch),
        cache_max_age_hours=float(max_age),
        registry_url=registry_url.rstrip("/"),
        registry_timeout=float(timeout),
        package_runner=runner,
        core_dependencies=_str_list(data.get("core_dependencies", []), "core_dependencies"),
        default_dependencies=_str_list(
            data.get("default_dependencies", []), "default_dependencies"
        ),
        overlay=OverlaySettings(
            directories=_str_list(overlay.get("directories", []), "overlay.directories"),
            config_files=_str_list(overlay.get("config_files", []), "overlay.config_files"),
            pwa_mode=pwa_mode,
        ),
    )


def load_bundled_defaults() -> Dict[str, Any]:
    """Load the default settings bundled with the package."""
    content = files("nextstarter.config").joinpath("defaults.yml").read_text(encoding="utf-8")
    data = yaml.safe_load(content) or {}
    assert isinstance(data, dict)
    return data


def discover_user_config_path() -> Optional[Path]:
    """Return the user settings file, if one exists."""
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        return Path(env_path).expanduser()
    candidate = get_cache_dir() / "config.yml"
    if candidate.exists():
        return candidate
    return None


def load_settings(path: Optional[Path] = None) -> StarterSettings:
    """Load bundled defaults, overlaid with the user file at `path` if given."""
    data = load_bundled_defaults()
    if path is None:
        return _parse_settings(data)
    try:
        with path.open("r", encoding="utf-8") as f:
            user_data = yaml.safe_load(f) or {}
        assert isinstance(user_data, dict), "top level must be a mapping"
        data.update(user_data)
        return _parse_settings(data)
    except (OSError, yaml.YAMLError, AssertionError, KeyError) as e:
        raise ValidationError(f"Invalid settings file {path}: {e}") from e


@lru_cache(maxsize=1)
def get_settings() -> StarterSettings:
    """Return settings, discovered or default (memoized)."""
    return load_settings(discover_user_config_path())
