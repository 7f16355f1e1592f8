"""Filesystem operations chosen once per platform.

Everything that used to branch on the host OS (recursive copy, recursive
delete, the shell fallback used when a native copy fails) lives behind one
`PlatformOps` object. Callers receive it at construction time and never look
at `sys.platform` themselves.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Union

from .subprocess_utils import run_command

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


def _windows_copy_command(src: Path, dst: Path) -> List[str]:
    return ["xcopy", str(src), str(dst), "/E", "/I", "/Y", "/Q"]


def _posix_copy_command(src: Path, dst: Path) -> List[str]:
    return ["cp", "-R", f"{src}{os.sep}.", str(dst)]


def _clear_readonly(func, path, _exc) -> None:
    # git marks pack files read-only on Windows
    os.chmod(path, stat.S_IWRITE)
    func(path)


@dataclass(frozen=True)
class PlatformOps:
    """Copy/remove/join primitives for one host platform."""

    name: str
    fallback_copy_command: Callable[[Path, Path], List[str]]

    def path_join(self, base: PathLike, *parts: str) -> Path:
        return Path(base).joinpath(*parts)

    def copy_tree(self, src: PathLike, dst: PathLike) -> None:
        """Recursively copy `src` into `dst`, merging with existing content.

        Falls back to the platform copy command when the native copy fails.
        Raises `CommandError` when both mechanisms fail.
        """
        src, dst = Path(src), Path(dst)
        try:
            shutil.copytree(src, dst, dirs_exist_ok=True)
            return
        except (OSError, shutil.Error) as e:
            logger.warning("Native copy of %s failed (%s), retrying with %s", src, e, self.name)
        dst.mkdir(parents=True, exist_ok=True)
        run_command(self.fallback_copy_command(src, dst))

    def copy_file(self, src: PathLike, dst: PathLike) -> None:
        """Copy a single file, overwriting `dst` and creating its parent."""
        dst = Path(dst)
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, dst)

    def remove_tree(self, path: PathLike) -> None:
        """Delete a directory tree if it exists."""
        path = Path(path)
        if not path.exists() and not path.is_symlink():
            return
        if path.is_file() or path.is_symlink():
            path.unlink()
            return
        if sys.version_info >= (3, 12):
            shutil.rmtree(path, onexc=_clear_readonly)
        else:
            shutil.rmtree(path, onerror=_clear_readonly)


WINDOWS = PlatformOps(name="windows", fallback_copy_command=_windows_copy_command)
MACOS = PlatformOps(name="macos", fallback_copy_command=_posix_copy_command)
LINUX = PlatformOps(name="linux", fallback_copy_command=_posix_copy_command)


def get_platform_ops(platform: str = sys.platform) -> PlatformOps:
    """Return the `PlatformOps` for a `sys.platform` value."""
    if platform == "win32":
        return WINDOWS
    if platform == "darwin":
        return MACOS
    return LINUX
