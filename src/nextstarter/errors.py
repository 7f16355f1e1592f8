"""Error types raised by nextstarter."""

from __future__ import annotations

from typing import List, Optional, Sequence


class NextStarterError(Exception):
    """Base class for every error nextstarter raises on purpose"""


class ValidationError(NextStarterError):
    """Raise when user input is malformed (bad version syntax, bad package name)"""


class NotFoundError(NextStarterError):
    """Raise when the package registry does not know the requested name@version"""


class CacheError(NextStarterError):
    """Base class for template cache failures; callers downgrade these to warnings"""


class CacheUnavailableError(CacheError):
    """Raise when the cache directory cannot be created or locked"""


class CachePopulationError(CacheError):
    """Raise when the template tree could not be copied into the cache"""


class SourceNotFoundError(NextStarterError):
    """Raise when a required source directory does not exist"""


class DependencyValidationError(NextStarterError):
    """Raise when a dependency set fails registry validation"""

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors: List[str] = list(errors)
        super().__init__(
            f"{len(self.errors)} invalid dependenc{'y' if len(self.errors) == 1 else 'ies'}: "
            + "; ".join(self.errors)
        )


class CollaboratorFetchError(NextStarterError):
    """Raise when the remote template could not be fetched"""


class CommandError(NextStarterError):
    """Raise when an external command exits with a non-zero status"""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        output: Optional[str] = None,
    ) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.output = output or ""
        message = f"Command failed with exit code {returncode}: {' '.join(self.command)}"
        if self.output.strip():
            message += f"\n{self.output.strip()}"
        super().__init__(message)
