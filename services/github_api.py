"""Wrapper for the GitHub REST API (read-only repository access)."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

import config
from utils.logger import get_logger
from utils.error_handler import APIError, UpstreamUnavailable
from utils.retry import retry_on_exception
from api_clients import build_client
from auth import get_github_token

logger = get_logger()

# Only transport failures are retried; an HTTP status is a definitive answer
RETRYABLE_GITHUB_ERRORS = (httpx.TransportError,)

JSON_CONTENT_TYPE = "application/vnd.github.v3+json"
RAW_CONTENT_TYPE = "application/vnd.github.v3.raw"


@dataclass(frozen=True)
class RepoEntry:
    """One item of a repository directory listing."""
    name: str
    path: str
    type: str
    size: int = 0

    @property
    def is_file(self) -> bool:
        return self.type == "file"

    @property
    def is_dir(self) -> bool:
        return self.type == "dir"


class GitHubService:
    """Provides methods to read repository metadata and contents."""

    SERVICE_NAME = 'github'

    def __init__(self, token: Optional[str] = None, client: Optional[httpx.Client] = None):
        """Initializes the GitHubService.

        Args:
            token: Optional read-only token. Resolved through ``auth`` when omitted.
            client: Pre-built HTTP client (tests pass one with a mock transport).
        """
        logger.debug("Initializing GitHubService...")
        if client is None:
            client = build_client(token if token is not None else get_github_token())
        self.client = client

    @retry_on_exception(exceptions=RETRYABLE_GITHUB_ERRORS)
    def _send(self, url: str, accept: str = JSON_CONTENT_TYPE) -> httpx.Response:
        return self.client.get(url, headers={"Accept": accept})

    def _get(self, url: str, accept: str = JSON_CONTENT_TYPE) -> httpx.Response:
        try:
            return self._send(url, accept)
        except httpx.TransportError as e:
            logger.error(f"Hosting API unreachable for {url}: {type(e).__name__}: {e}", exc_info=config.DEBUG)
            raise UpstreamUnavailable(
                f"GitHub API unreachable: {type(e).__name__}",
                service=self.SERVICE_NAME
            ) from e

    def get_repository(self, owner: str, repo: str) -> Dict[str, Any]:
        """Fetches repository metadata.

        Raises:
            APIError: If the repository does not exist, is private, or the
                API answers with any other non-success status.
            UpstreamUnavailable: If the API cannot be reached.
        """
        url = f"/repos/{quote(owner)}/{quote(repo)}"
        logger.debug(f"Fetching repository metadata: {owner}/{repo}")
        response = self._get(url)
        if response.status_code != 200:
            logger.info(f"Repository lookup for {owner}/{repo} returned {response.status_code}")
            raise APIError(
                f"Repository {owner}/{repo} not found or is private",
                status_code=response.status_code,
                service=self.SERVICE_NAME
            )
        try:
            data = response.json()
        except ValueError as e:
            raise APIError(
                f"Invalid JSON in repository metadata for {owner}/{repo}",
                status_code=response.status_code,
                service=self.SERVICE_NAME
            ) from e
        if not isinstance(data, dict):
            raise APIError(
                f"Unexpected repository metadata for {owner}/{repo}",
                status_code=response.status_code,
                service=self.SERVICE_NAME
            )
        if data.get("private"):
            raise APIError(f"Repository {owner}/{repo} is private", status_code=200, service=self.SERVICE_NAME)
        return data

    def list_directory(self, owner: str, repo: str, path: str = "") -> List[RepoEntry]:
        """Lists the entries of a repository directory (root when ``path`` is empty).

        Raises:
            APIError: On a non-success status or a response that is not a listing.
            UpstreamUnavailable: If the API cannot be reached.
        """
        url = f"/repos/{quote(owner)}/{quote(repo)}/contents"
        if path:
            url += "/" + quote(path)
        logger.debug(f"Listing {owner}/{repo}:/{path}")
        response = self._get(url)
        if response.status_code != 200:
            raise APIError(
                f"Could not list '{path or '/'}' in {owner}/{repo}",
                status_code=response.status_code,
                service=self.SERVICE_NAME
            )
        try:
            items = response.json()
        except ValueError as e:
            raise APIError(f"Invalid JSON listing '{path or '/'}'", service=self.SERVICE_NAME) from e
        if not isinstance(items, list):
            raise APIError(f"'{path or '/'}' is not a directory", service=self.SERVICE_NAME)

        entries = [
            RepoEntry(
                name=item.get("name", ""),
                path=item.get("path", item.get("name", "")),
                type=item.get("type", "file"),
                size=item.get("size") or 0,
            )
            for item in items
            if isinstance(item, dict)
        ]
        logger.debug(f"Found {len(entries)} entries in {owner}/{repo}:/{path}")
        return entries

    def get_file_content(self, owner: str, repo: str, path: str) -> str:
        """Downloads a file's raw text content.

        Raises:
            APIError: On a non-success status.
            UpstreamUnavailable: If the API cannot be reached.
        """
        url = f"/repos/{quote(owner)}/{quote(repo)}/contents/{quote(path)}"
        logger.debug(f"Downloading {owner}/{repo}:/{path}")
        response = self._get(url, accept=RAW_CONTENT_TYPE)
        if response.status_code != 200:
            raise APIError(
                f"Could not download '{path}'",
                status_code=response.status_code,
                service=self.SERVICE_NAME
            )
        return response.text
