"""Version string validation."""

from __future__ import annotations

import re
from typing import Callable

from ..errors import CommandError, ValidationError
from ..utils import command_output
from .client import Registry

LATEST = "latest"
CURRENT = "current"
FALLBACK_NODE_VERSION = "18.x"

SEMVER_PATTERN = re.compile(r"(\d+\.\d+\.\d+)(-[0-9A-Za-z-]+(\.[0-9A-Za-z-]+)*)?")
NODE_VERSION_PATTERN = re.compile(r"(\d+)(?:\.(?:x|\d+)(?:\.(?:x|\d+))?)?")


def is_semver(version: str) -> bool:
    return SEMVER_PATTERN.fullmatch(version) is not None


class VersionValidator:
    """Validate a pinned version against the registry."""

    def __init__(self, registry: Registry) -> None:
        self.registry = registry

    def validate(self, version: str, package_name: str) -> str:
        """Return the registry-resolved version for `package_name@version`.

        "latest" is returned unchanged without a registry query. Anything that
        is not MAJOR.MINOR.PATCH[-prerelease] fails before any query is made.
        """
        if version == LATEST:
            return version
        if not is_semver(version):
            raise ValidationError(
                f'Invalid version format "{version}". Use semver (e.g., 13.4.0) or "latest"'
            )
        return self.registry.resolve(package_name, version)


def current_node_version() -> str:
    """Version of the `node` on PATH, or 18.x when it cannot be run."""
    try:
        output = command_output(["node", "--version"])
    except CommandError:
        return FALLBACK_NODE_VERSION
    return output.lstrip("v") or FALLBACK_NODE_VERSION


class NodeVersionValidator:
    """Validate a Node.js engine pin such as 18, 18.x or 18.17.0."""

    def __init__(self, current: Callable[[], str] = current_node_version) -> None:
        self.current = current

    def validate(self, version: str) -> str:
        if version == CURRENT:
            return self.current()
        if NODE_VERSION_PATTERN.fullmatch(version) is None:
            raise ValidationError(
                f'Invalid Node.js version format "{version}". Use: 18.x, 18, 18.17.0 or "current"'
            )
        return version


PACKAGE_NAME_PATTERN = re.compile(r"(@[a-z0-9-~][a-z0-9-._~]*/)?[a-z0-9-~][a-z0-9-._~]*")


def validate_package_name(name: str) -> str:
    """Return `name` if it is a valid npm package name."""
    if len(name) > 214 or not PACKAGE_NAME_PATTERN.fullmatch(name):
        raise ValidationError(f'Invalid package name "{name}"')
    return name
