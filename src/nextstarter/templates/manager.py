"""Template acquisition, validation, overlay and caching for one scaffold."""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from ..cache import TEMPLATE_VERSION, CacheStore
from ..config import StarterSettings
from ..errors import CacheError, CommandError, DependencyValidationError, ValidationError
from ..project import DependencyInstaller, ProjectRequest
from ..registry import DependencyValidationResult, DependencyValidator, Registry
from ..utils.platform import PlatformOps, get_platform_ops
from .fetch import GitTemplateFetcher, TemplateFetcher
from .manifest import additional_packages, read_template_dependencies
from .overlay import OverlayOptions, OverlayReport, TemplateOverlay

logger = logging.getLogger(__name__)

DEFAULT_CORE_DEPENDENCIES = ("react", "react-dom", "next")
DEFAULT_DEPENDENCIES = (
    "@radix-ui/react-slot",
    "sonner",
    "class-variance-authority",
    "clsx",
    "tailwind-merge",
    "lucide-react",
)


@dataclass
class ScaffoldResult:
    """What a `TemplateManager.run` call did."""

    cache_hit: bool = False
    cached: bool = False
    template_version: Optional[str] = None
    dependency_result: Optional[DependencyValidationResult] = None
    installed: List[str] = field(default_factory=list)
    overlay: Optional[OverlayReport] = None
    warnings: List[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)


class TemplateManager:
    """Runs CheckCache -> (Fetch) -> ValidateDeps -> Overlay -> (CachePopulate).

    Only a failed fetch or a missing template root aborts; dependency,
    installation and caching problems are recorded as warnings.
    """

    def __init__(
        self,
        fetcher: TemplateFetcher,
        validator: DependencyValidator,
        overlay: TemplateOverlay,
        installer: DependencyInstaller,
        cache: Optional[CacheStore] = None,
        core_dependencies: Sequence[str] = DEFAULT_CORE_DEPENDENCIES,
        default_dependencies: Sequence[str] = DEFAULT_DEPENDENCIES,
        ops: Optional[PlatformOps] = None,
        workdir_root: Optional[Path] = None,
    ) -> None:
        self.fetcher = fetcher
        self.validator = validator
        self.overlay = overlay
        self.installer = installer
        self.cache = cache
        self.core_dependencies = list(core_dependencies)
        self.default_dependencies = list(default_dependencies)
        self.ops = ops or get_platform_ops()
        self.workdir_root = workdir_root

    @classmethod
    def from_settings(
        cls,
        settings: StarterSettings,
        registry: Registry,
        cache: Optional[CacheStore] = None,
        template_url: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> "TemplateManager":
        """Wire a manager from loaded settings."""
        ops = get_platform_ops()
        return cls(
            fetcher=GitTemplateFetcher(
                template_url or settings["template"]["url"],
                branch or settings["template"]["branch"],
            ),
            validator=DependencyValidator(registry),
            overlay=TemplateOverlay(
                directories=settings["overlay"]["directories"],
                config_files=settings["overlay"]["config_files"],
                ops=ops,
            ),
            installer=DependencyInstaller(settings["package_runner"]),
            cache=cache,
            core_dependencies=settings["core_dependencies"],
            default_dependencies=settings["default_dependencies"],
            ops=ops,
        )

    def run(self, request: ProjectRequest, target_dir: Path) -> ScaffoldResult:
        """Overlay the template onto `target_dir` according to `request`.

        Raises `CollaboratorFetchError` when no template could be obtained and
        `SourceNotFoundError` when the template root is missing.
        """
        result = ScaffoldResult()
        if not request.wants_overlay:
            return result

        source_dir = self.cache.get_cached() if self.cache is not None else None
        workdir: Optional[Path] = None
        try:
            if source_dir is not None:
                result.cache_hit = True
                result.template_version = self._cached_version()
            else:
                workdir = Path(tempfile.mkdtemp(prefix="nextstarter-", dir=self.workdir_root))
                source_dir = self.fetcher.fetch(workdir / "template")
                result.template_version = self.fetcher.revision(source_dir) or TEMPLATE_VERSION

            deps, result.dependency_result = self._validate_dependencies(source_dir)
            if request.shadcn:
                self._install(target_dir, deps, result)

            result.overlay = self.overlay.apply(
                source_dir,
                target_dir,
                OverlayOptions(
                    include_components=request.shadcn,
                    include_pwa=request.pwa,
                    pwa_mode=request.pwa_mode,
                ),
            )
            result.warnings.extend(result.overlay.warnings)

            if workdir is not None and self.cache is not None:
                self._populate_cache(source_dir, deps, result)
        finally:
            if workdir is not None:
                self._cleanup(workdir)
        return result

    def _cached_version(self) -> Optional[str]:
        assert self.cache is not None
        entry = self.cache.read_entry()
        return entry.template_version if entry is not None else None

    def _validate_dependencies(
        self, source_dir: Path
    ) -> Tuple[Dict[str, str], DependencyValidationResult]:
        try:
            deps = read_template_dependencies(source_dir)
        except ValidationError as e:
            return {}, DependencyValidationResult(is_valid=False, errors=[str(e)])
        return deps, self.validator.validate_all(deps)

    def _install(self, target_dir: Path, deps: Dict[str, str], result: ScaffoldResult) -> None:
        validation = result.dependency_result
        if validation is not None and validation.is_valid:
            packages = additional_packages(deps, self.core_dependencies)
        else:
            errors = validation.errors if validation is not None else []
            for error in errors:
                result.warn(error)
            result.warn("Could not validate template dependencies, installing defaults")
            packages = list(self.default_dependencies)
        try:
            self.installer.install(target_dir, packages)
        except CommandError as e:
            result.warn(f"Dependency installation failed: {e}")
            return
        result.installed = packages

    def _populate_cache(
        self, source_dir: Path, deps: Dict[str, str], result: ScaffoldResult
    ) -> None:
        assert self.cache is not None
        try:
            self.cache.populate(source_dir, deps, result.template_version or TEMPLATE_VERSION)
        except (CacheError, DependencyValidationError) as e:
            result.warn(f"Template was not cached: {e}")
            return
        result.cached = True

    def _cleanup(self, workdir: Path) -> None:
        try:
            self.ops.remove_tree(workdir)
        except OSError as e:
            logger.warning("Could not remove working directory %s: %s", workdir, e)
