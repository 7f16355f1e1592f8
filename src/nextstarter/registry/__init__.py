"""Package registry lookups."""

from .client import NpmRegistry, Registry
from .dependencies import DependencyValidationResult, DependencyValidator
from .versions import (
    CURRENT,
    LATEST,
    NodeVersionValidator,
    VersionValidator,
    current_node_version,
    is_semver,
    validate_package_name,
)

__all__ = [
    "NpmRegistry",
    "Registry",
    "DependencyValidationResult",
    "DependencyValidator",
    "CURRENT",
    "LATEST",
    "NodeVersionValidator",
    "VersionValidator",
    "current_node_version",
    "is_semver",
    "validate_package_name",
]
