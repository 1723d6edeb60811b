"""
remote.py

Responsibility: Isolate all HTTP fetches of published devimage resources.

This module must be the only place that:
- Builds URLs under the raw-content base location
- Sends HTTP requests
- Decides whether a response counts as a successful fetch

A failed fetch is fatal to the caller; nothing is retried.
"""

from __future__ import annotations

import logging

import requests

from devimage.errors import DevImageError
from devimage.versions import VersionMatrix, parse_versions

logger = logging.getLogger(__name__)

VERSIONS_RESOURCE = "versions.json"
TEMPLATE_RESOURCE = "devcontainer.json"


class FetchError(DevImageError):
    pass


class RemoteClient:
    def __init__(self, base_url: str, timeout: float = 30) -> None:
        if not base_url.strip():
            raise FetchError("A base URL is required.")
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @property
    def base_url(self) -> str:
        return self._base_url

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": "devimage"}

    def url_for(self, name: str) -> str:
        return f"{self._base_url}/{name.lstrip('/')}"

    def fetch_text(self, name: str) -> str:
        """
        GET a resource and return its body. Errors, non-success statuses and
        empty bodies all raise FetchError.
        """
        url = self.url_for(name)
        logger.debug("GET %s", url)
        try:
            r = requests.get(url, headers=self._headers(), timeout=self._timeout)
        except requests.RequestException as e:
            raise FetchError(f"Failed to fetch {name}: {e}") from e

        if r.status_code >= 400:
            raise FetchError(f"Failed to fetch {name}: HTTP {r.status_code} from {url}")
        if not r.text or not r.text.strip():
            raise FetchError(f"Failed to fetch {name}: empty response from {url}")
        return r.text

    def fetch_versions(self) -> VersionMatrix:
        return parse_versions(self.fetch_text(VERSIONS_RESOURCE))

    def fetch_template(self) -> str:
        return self.fetch_text(TEMPLATE_RESOURCE)
