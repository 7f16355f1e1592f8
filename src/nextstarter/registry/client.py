"""npm registry client.

Only one question is ever asked of the registry: does `name@version` exist,
and if so which exact version does it resolve to. The registry resolves
dist-tags and ranges server side, so the answer is read from the `version`
field of the returned document.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol, Tuple, Union
from urllib.parse import quote

import requests

from ..errors import NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://registry.npmjs.org"


class Registry(Protocol):
    def resolve(self, name: str, version: str) -> str:
        """Return the exact version `name@version` resolves to.

        Raises `NotFoundError` on a miss or when the query fails.
        """
        ...


class NpmRegistry:
    """Read-only lookups against an npm-compatible registry over HTTP."""

    def __init__(
        self,
        base_url: str = DEFAULT_REGISTRY_URL,
        timeout: float = 15,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self._resolved: Dict[Tuple[str, str], Union[str, NotFoundError]] = {}

    def version_url(self, name: str, version: str) -> str:
        # scoped names keep their leading "@" but the slash must be escaped
        return f"{self.base_url}/{quote(name, safe='@')}/{quote(version, safe='')}"

    def resolve(self, name: str, version: str) -> str:
        key = (name, version)
        if key not in self._resolved:
            try:
                self._resolved[key] = self._query(name, version)
            except NotFoundError as e:
                self._resolved[key] = e
        answer = self._resolved[key]
        if isinstance(answer, NotFoundError):
            raise answer
        return answer

    def _query(self, name: str, version: str) -> str:
        url = self.version_url(name, version)
        logger.debug("GET %s", url)
        try:
            r = self.session.get(
                url, headers={"Accept": "application/json"}, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise NotFoundError(f"Version {version} of {name} not found ({e})") from e
        if r.status_code == 404:
            raise NotFoundError(f"Version {version} of {name} not found")
        if r.status_code >= 300:
            raise NotFoundError(
                f"Version {version} of {name} not found (registry answered {r.status_code})"
            )
        try:
            data = r.json()
        except ValueError as e:
            raise NotFoundError(
                f"Version {version} of {name} not found (unreadable registry response)"
            ) from e
        resolved = data.get("version") if isinstance(data, dict) else None
        if not isinstance(resolved, str) or not resolved.strip():
            raise NotFoundError(f"Version {version} of {name} not found")
        return resolved.strip()
