"""Fetching the remote overlay template."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol

from ..errors import CollaboratorFetchError, CommandError
from ..utils import command_output, run_command

logger = logging.getLogger(__name__)


class TemplateFetcher(Protocol):
    def fetch(self, destination: Path) -> Path:
        """Populate `destination` with the template tree and return it."""
        ...

    def revision(self, directory: Path) -> Optional[str]:
        """Return an identifier for the fetched template, if one is known."""
        ...


class GitTemplateFetcher:
    """Shallow `git clone` of the template repository."""

    def __init__(self, url: str, branch: Optional[str] = None) -> None:
        self.url = url
        self.branch = branch

    def clone_command(self, destination: Path) -> list[str]:
        cmd = ["git", "clone", "--depth", "1"]
        if self.branch:
            cmd += ["--branch", self.branch]
        return cmd + [self.url, str(destination)]

    def fetch(self, destination: Path) -> Path:
        logger.info("Cloning %s into %s", self.url, destination)
        try:
            run_command(self.clone_command(destination))
        except CommandError as e:
            raise CollaboratorFetchError(f"Failed to clone {self.url}: {e}") from e
        if not destination.is_dir():
            raise CollaboratorFetchError(f"Clone of {self.url} produced no directory")
        return destination

    def revision(self, directory: Path) -> Optional[str]:
        try:
            return command_output(["git", "rev-parse", "HEAD"], cwd=directory) or None
        except CommandError as e:
            logger.debug("No revision for %s: %s", directory, e)
            return None
