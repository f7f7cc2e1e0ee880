"""SonarQube client for the ReSharper rule repositories of a server.

Usage:
    client = SonarClient(url="https://sonar.example.com", token="squ_xxx")
    rules  = client.search_rules("resharper-cs")
"""

import logging
from typing import Any

import requests

from resharper_sonar import __version__

logger = logging.getLogger(__name__)

RULES_ENDPOINT = "/api/rules/search"
RULE_FIELDS = "internalKey,name,severity,sysTags"
PAGE_SIZE = 500


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class SonarClientError(Exception):
    """Base exception for all client errors."""


class AuthenticationError(SonarClientError):
    """Raised on HTTP 401: the token is rejected."""


class NotFoundError(SonarClientError):
    """Raised on HTTP 404, e.g. a server without the rules API."""


class NetworkError(SonarClientError):
    """Raised when the server cannot be reached in time."""


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class SonarClient:
    """Reads rule definitions from a SonarQube server."""

    def __init__(self, url: str, token: str, timeout: int = 30) -> None:
        self.base_url = url.rstrip("/")
        self._timeout = timeout
        self._session = requests.Session()
        # token as username, empty password
        self._session.auth = (token, "")
        self._session.headers["User-Agent"] = f"resharper-sonar/{__version__}"

    def search_rules(self, repository: str) -> list[dict]:
        """Return every rule of *repository* as raw ``/api/rules/search`` entries.

        Only the fields the catalog needs are requested. The rule count is
        read from ``paging.total`` when the server sends it, otherwise from
        the top-level ``total`` of older servers.

        Raises:
            AuthenticationError: HTTP 401
            NotFoundError:       HTTP 404
            SonarClientError:    any other non-2xx response
            NetworkError:        timeout or connection failure
        """
        rules: list[dict] = []
        page = 1
        while True:
            data = self._get(RULES_ENDPOINT, {
                "repositories": repository,
                "f":  RULE_FIELDS,
                "ps": PAGE_SIZE,
                "p":  page,
            })
            batch = data.get("rules", [])
            rules.extend(batch)
            total = _rule_total(data, default=len(rules))
            logger.debug("Fetched %d/%d rules of repository '%s'", len(rules), total, repository)

            if not batch or len(rules) >= total:
                return rules
            page += 1

    def _get(self, endpoint: str, params: dict[str, Any]) -> dict:
        url = f"{self.base_url}{endpoint}"
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
        except requests.exceptions.Timeout as exc:
            raise NetworkError(
                f"Request timed out after {self._timeout}s while contacting '{url}'"
            ) from exc
        except requests.exceptions.ConnectionError as exc:
            raise NetworkError(
                f"Unable to reach SonarQube server at '{self.base_url}'"
            ) from exc

        if response.status_code == 401:
            raise AuthenticationError(
                f"SonarQube rejected the token for '{self.base_url}' (HTTP 401)"
            )
        if response.status_code == 404:
            raise NotFoundError(f"No rules API at {url}")
        if not response.ok:
            raise SonarClientError(
                f"Unexpected response {response.status_code} from {url}: {response.text[:200]}"
            )
        return response.json()


def _rule_total(data: dict, default: int) -> int:
    paging = data.get("paging")
    if paging and "total" in paging:
        return paging["total"]
    return data.get("total", default)
