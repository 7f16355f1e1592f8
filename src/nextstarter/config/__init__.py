"""Configuration management for nextstarter."""

from .settings import (
    PWA_MODES,
    StarterSettings,
    get_cache_dir,
    get_settings,
    load_settings,
)

__all__ = [
    "PWA_MODES",
    "StarterSettings",
    "get_cache_dir",
    "get_settings",
    "load_settings",
]
