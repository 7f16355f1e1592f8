"""Copying template content onto a generated project."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from ..config.settings import PWA_MODES
from ..errors import CommandError, SourceNotFoundError, ValidationError
from ..utils.platform import PlatformOps, get_platform_ops

logger = logging.getLogger(__name__)

DEFAULT_DIRECTORIES = ("components", "app", "lib", "styles")
DEFAULT_CONFIG_FILES = ("tailwind.config.ts", "postcss.config.js", "next.config.js")
PUBLIC_DIR = "public"
MANIFEST_FILE = "manifest.json"


@dataclass
class OverlayOptions:
    include_components: bool
    include_pwa: bool
    pwa_mode: str = "manifest"

    def __post_init__(self) -> None:
        if self.pwa_mode not in PWA_MODES:
            raise ValidationError(
                f"Unknown PWA mode \"{self.pwa_mode}\"; expected one of {', '.join(PWA_MODES)}"
            )


@dataclass
class OverlayReport:
    copied: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)


class TemplateOverlay:
    """Merge selected template directories and files into a project.

    Later copies overwrite same-named files. Every item is copied on its own:
    a missing or failing item becomes a warning and the next item is tried.
    Only a missing template root is an error.
    """

    def __init__(
        self,
        directories: Sequence[str] = DEFAULT_DIRECTORIES,
        config_files: Sequence[str] = DEFAULT_CONFIG_FILES,
        ops: Optional[PlatformOps] = None,
    ) -> None:
        self.directories = list(directories)
        self.config_files = list(config_files)
        self.ops = ops or get_platform_ops()

    def apply(self, source_dir: Path, target_dir: Path, options: OverlayOptions) -> OverlayReport:
        source_dir, target_dir = Path(source_dir), Path(target_dir)
        if not source_dir.is_dir():
            raise SourceNotFoundError(f"Template source directory not found: {source_dir}")

        report = OverlayReport()
        if options.include_components:
            for name in self.directories:
                self._copy_dir(source_dir / name, target_dir / name, name, report)
            for name in self.config_files:
                self._copy_file(source_dir / name, target_dir / name, name, report)

        if options.include_pwa:
            self._apply_pwa(source_dir, target_dir, options.pwa_mode, report)
        return report

    def _apply_pwa(
        self, source_dir: Path, target_dir: Path, mode: str, report: OverlayReport
    ) -> None:
        public = target_dir / PUBLIC_DIR
        try:
            public.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            report.warn(f"Could not create {public}: {e}")
            return
        if mode == "full":
            self._copy_dir(source_dir / PUBLIC_DIR, public, PUBLIC_DIR, report)
        else:
            item = f"{PUBLIC_DIR}/{MANIFEST_FILE}"
            self._copy_file(source_dir / PUBLIC_DIR / MANIFEST_FILE, public / MANIFEST_FILE, item, report)

    def _copy_dir(self, src: Path, dst: Path, item: str, report: OverlayReport) -> None:
        if not src.is_dir():
            report.warn(f"Template has no {item} directory, skipping")
            return
        try:
            self.ops.copy_tree(src, dst)
        except (OSError, CommandError) as e:
            report.warn(f"Could not copy {item} directory: {e}")
            return
        report.copied.append(item)

    def _copy_file(self, src: Path, dst: Path, item: str, report: OverlayReport) -> None:
        if not src.is_file():
            report.warn(f"Template has no {item}, skipping")
            return
        try:
            self.ops.copy_file(src, dst)
        except OSError as e:
            report.warn(f"Could not copy {item}: {e}")
            return
        report.copied.append(item)
