"""Reading the template's package.json."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, List, Mapping

from ..errors import ValidationError

PACKAGE_JSON = "package.json"


def read_template_dependencies(template_dir: Path) -> Dict[str, str]:
    """Return the `dependencies` object declared by the template.

    Raises `ValidationError` when package.json is missing or malformed.
    """
    path = template_dir / PACKAGE_JSON
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ValidationError(f"Could not read template dependencies from {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError(f"Invalid package.json structure in {path}")
    deps = data.get("dependencies")
    if not isinstance(deps, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in deps.items()
    ):
        raise ValidationError(f"Invalid package.json structure in {path}")
    return dict(deps)


def additional_packages(deps: Mapping[str, str], exclude: Iterable[str]) -> List[str]:
    """name@version specs for `deps`, minus packages the generator already installs."""
    skip = set(exclude)
    return [f"{name}@{version}" for name, version in deps.items() if name not in skip]
