"""Factory function for creating the HTTP client used against the hosting API."""

from typing import Optional

import httpx

import config
from utils.logger import get_logger

logger = get_logger()

# Transport-level cache only: clients hold connection pools, never grading state
_client_cache: dict[tuple[str, Optional[str]], httpx.Client] = {}

def build_client(token: Optional[str] = None, base_url: str = config.GITHUB_API_URL) -> httpx.Client:
    """Builds and returns an HTTP client for the repository hosting API.

    Uses a cached client if one exists for the same base URL and token.

    Args:
        token: Optional read-only token sent as a bearer credential.
        base_url: Root URL of the hosting REST API.

    Returns:
        httpx.Client: A client with the API headers and timeout applied.
    """
    cache_key = (base_url, token)
    cached = _client_cache.get(cache_key)
    if cached is not None and not cached.is_closed:
        logger.debug(f"Using cached HTTP client for {base_url}")
        return cached

    headers = {
        "Accept": "application/vnd.github.v3+json",
        "User-Agent": config.GITHUB_USER_AGENT,
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"

    logger.debug(f"Building new HTTP client for {base_url} (authenticated={bool(token)})")
    client = httpx.Client(
        base_url=base_url,
        headers=headers,
        timeout=config.GITHUB_TIMEOUT_SECONDS,
        follow_redirects=True,
    )
    _client_cache[cache_key] = client
    return client

def close_clients() -> None:
    """Closes and forgets every cached client."""
    for client in _client_cache.values():
        client.close()
    _client_cache.clear()
