"""Dependency set validation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Mapping

from ..errors import NextStarterError
from .client import Registry
from .versions import validate_package_name

logger = logging.getLogger(__name__)


@dataclass
class DependencyValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)


class DependencyValidator:
    """Check every name@version of a dependency mapping against the registry.

    A bad entry never stops the batch; every failure is reported so the
    caller can show all problems at once.
    """

    def __init__(self, registry: Registry) -> None:
        self.registry = registry

    def validate_all(self, deps: Mapping[str, str]) -> DependencyValidationResult:
        errors: List[str] = []
        for name, version in deps.items():
            try:
                validate_package_name(name)
                self.registry.resolve(name, version)
            except NextStarterError as e:
                logger.debug("Dependency %s@%s failed: %s", name, version, e)
                errors.append(f"Invalid dependency: {name}@{version}")
        return DependencyValidationResult(is_valid=not errors, errors=errors)
