"""On-disk cache for the overlay template.

Layout under the cache directory:

    cache.json    metadata: {"lastUpdated": ms, "templateVersion": str, "dependencies": {...}}
    cache.lock    advisory lock shared by every process using this cache
    template/     full copy of the last fetched template tree

A populate copies into `template.tmp/` first, swaps it into place and only
then writes `cache.json`, so an interrupted populate leaves no metadata
claiming a fresh tree.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Callable, Dict, Iterator, Mapping, Optional

from filelock import FileLock, Timeout

from ..errors import (
    CachePopulationError,
    CacheUnavailableError,
    CommandError,
    DependencyValidationError,
    SourceNotFoundError,
)
from ..registry import DependencyValidator
from ..utils.filesystem import missing_files
from ..utils.platform import PlatformOps, get_platform_ops

logger = logging.getLogger(__name__)

TEMPLATE_VERSION = "1.0.0"
DEFAULT_MAX_AGE = timedelta(hours=24)


@dataclass
class CacheEntry:
    """Metadata of the last successfully cached template."""

    last_updated: int  # epoch milliseconds
    template_version: str
    dependencies: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "lastUpdated": self.last_updated,
            "templateVersion": self.template_version,
            "dependencies": dict(self.dependencies),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "CacheEntry":
        last_updated = data["lastUpdated"]
        if isinstance(last_updated, bool) or not isinstance(last_updated, (int, float)):
            raise ValueError("lastUpdated must be a number")
        template_version = data.get("templateVersion", TEMPLATE_VERSION)
        if not isinstance(template_version, str):
            raise ValueError("templateVersion must be a string")
        dependencies = data.get("dependencies") or {}
        if not isinstance(dependencies, dict):
            raise ValueError("dependencies must be an object")
        return cls(
            last_updated=int(last_updated),
            template_version=template_version,
            dependencies={str(k): str(v) for k, v in dependencies.items()},
        )


def _atomic_write_json(path: Path, data: Mapping[str, object]) -> None:
    """Write JSON to `path` via a temp file and rename."""
    temp_path: Optional[Path] = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        ) as f:
            temp_path = Path(f.name)
            json.dump(data, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, path)
    except BaseException:
        if temp_path is not None and temp_path.exists():
            temp_path.unlink()
        raise


class CacheStore:
    """Owns the cache directory; nothing else reads or writes it."""

    METADATA_FILE = "cache.json"
    TEMPLATE_DIR = "template"
    STAGING_DIR = "template.tmp"
    LOCK_FILE = "cache.lock"
    POPULATE_LOCK_TIMEOUT = 60
    READ_LOCK_TIMEOUT = 10

    def __init__(
        self,
        cache_dir: Path,
        validator: DependencyValidator,
        max_age: timedelta = DEFAULT_MAX_AGE,
        ops: Optional[PlatformOps] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.validator = validator
        self.max_age = max_age
        self.ops = ops or get_platform_ops()
        self.clock = clock

    @property
    def metadata_path(self) -> Path:
        return self.cache_dir / self.METADATA_FILE

    @property
    def template_dir(self) -> Path:
        return self.cache_dir / self.TEMPLATE_DIR

    def now_ms(self) -> int:
        return int(self.clock() * 1000)

    def ensure_ready(self) -> Path:
        """Create the cache directory if needed and return it."""
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheUnavailableError(
                f"Cannot create cache directory {self.cache_dir}: {e}"
            ) from e
        if not os.access(self.cache_dir, os.W_OK):
            raise CacheUnavailableError(f"Cache directory {self.cache_dir} is not writable")
        return self.cache_dir

    @contextmanager
    def _locked(self, timeout: float) -> Iterator[None]:
        with FileLock(str(self.cache_dir / self.LOCK_FILE), timeout=timeout):
            yield

    def read_entry(self) -> Optional[CacheEntry]:
        """Return the stored metadata, or None when missing or unreadable."""
        try:
            with self.metadata_path.open("r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                return None
            return CacheEntry.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.debug("Cache metadata unusable: %s", e)
            return None

    def is_fresh(self, entry: CacheEntry) -> bool:
        """An entry is stale once its age reaches max_age."""
        age_ms = self.now_ms() - entry.last_updated
        return age_ms < self.max_age.total_seconds() * 1000

    def get_cached(self) -> Optional[Path]:
        """Return the cached template directory if it is fresh, else None.

        Every failure (no metadata, corrupt JSON, stale entry, missing tree,
        lock contention) is reported as a miss.
        """
        if not self.metadata_path.exists():
            logger.info("Template cache miss: no metadata in %s", self.cache_dir)
            return None
        try:
            with self._locked(self.READ_LOCK_TIMEOUT):
                entry = self.read_entry()
                if entry is None:
                    logger.info("Template cache miss: unreadable metadata")
                    return None
                if not self.is_fresh(entry):
                    logger.info("Template cache miss: entry is stale")
                    return None
                if not self.template_dir.is_dir():
                    logger.info("Template cache miss: %s is missing", self.template_dir)
                    return None
        except (OSError, Timeout) as e:
            logger.info("Template cache miss: %s", e)
            return None
        logger.info("Template cache hit: %s", self.template_dir)
        return self.template_dir

    def populate(
        self,
        source_dir: Path,
        dependencies: Mapping[str, str],
        template_version: str = TEMPLATE_VERSION,
    ) -> CacheEntry:
        """Replace the cached template with a copy of `source_dir`.

        Raises `SourceNotFoundError`, `DependencyValidationError`,
        `CacheUnavailableError` or `CachePopulationError`. The existing cache
        is left untouched unless the new copy is complete.
        """
        source_dir = Path(source_dir)
        if not source_dir.is_dir():
            raise SourceNotFoundError(f"Source template directory not found: {source_dir}")

        result = self.validator.validate_all(dependencies)
        if not result.is_valid:
            raise DependencyValidationError(result.errors)

        self.ensure_ready()
        try:
            with self._locked(self.POPULATE_LOCK_TIMEOUT):
                return self._populate_locked(source_dir, dependencies, template_version)
        except Timeout as e:
            raise CachePopulationError(f"Timed out waiting for cache lock: {e}") from e

    def _populate_locked(
        self,
        source_dir: Path,
        dependencies: Mapping[str, str],
        template_version: str,
    ) -> CacheEntry:
        staging = self.cache_dir / self.STAGING_DIR
        try:
            self.ops.remove_tree(staging)
            self.ops.copy_tree(source_dir, staging)
            missing = missing_files(source_dir, staging)
            if missing:
                raise CachePopulationError(
                    f"{len(missing)} file(s) missing from cached copy, e.g. {sorted(missing)[0]}"
                )
        except (OSError, CommandError) as e:
            self._discard(staging)
            raise CachePopulationError(f"Failed to cache template: {e}") from e
        except CachePopulationError:
            self._discard(staging)
            raise

        entry = CacheEntry(
            last_updated=self.now_ms(),
            template_version=template_version,
            dependencies=dict(dependencies),
        )
        try:
            # no metadata may exist while template/ is being swapped
            self.metadata_path.unlink(missing_ok=True)
            self.ops.remove_tree(self.template_dir)
            staging.rename(self.template_dir)
            _atomic_write_json(self.metadata_path, entry.to_dict())
        except OSError as e:
            raise CachePopulationError(f"Failed to commit cached template: {e}") from e
        logger.info(
            "Cached template %s (%d dependencies) in %s",
            template_version,
            len(entry.dependencies),
            self.template_dir,
        )
        return entry

    def _discard(self, path: Path) -> None:
        try:
            self.ops.remove_tree(path)
        except OSError as e:
            logger.warning("Could not remove %s: %s", path, e)

    def clear(self) -> None:
        """Remove the cached template and its metadata."""
        if not self.cache_dir.exists():
            return
        with self._locked(self.POPULATE_LOCK_TIMEOUT):
            self.metadata_path.unlink(missing_ok=True)
            self.ops.remove_tree(self.template_dir)
            self.ops.remove_tree(self.cache_dir / self.STAGING_DIR)
