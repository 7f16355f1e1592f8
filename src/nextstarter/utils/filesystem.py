"""File system utilities."""

from __future__ import annotations

from pathlib import Path
from typing import Set

IGNORED_DIRS = {".git"}


def list_files(directory: Path, include_git: bool = False) -> Set[Path]:
    """Return every file under `directory` as a path relative to it."""
    files: Set[Path] = set()
    for file_path in directory.rglob("*"):
        relative_path = file_path.relative_to(directory)
        if not include_git and relative_path.parts[0] in IGNORED_DIRS:
            continue
        if file_path.is_file():
            files.add(relative_path)
    return files


def missing_files(source: Path, copy: Path) -> Set[Path]:
    """Return files present under `source` but absent under `copy`."""
    return list_files(source, include_git=True) - list_files(copy, include_git=True)
