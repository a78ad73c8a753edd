"""Resolves the read-only credential used for the repository hosting API."""

import os
from typing import Optional

import config
from utils.logger import get_logger

logger = get_logger()

def get_github_token(token_file: Optional[str] = None) -> Optional[str]:
    """Returns the hosting API token, or None when none is configured.

    Checks the ``GITHUB_TOKEN`` environment setting first, then the token
    file. A missing token is not an error: anonymous requests are allowed
    but subject to lower rate limits.

    Args:
        token_file: Path to a file holding the token on its first line.
            Defaults to ``config.GITHUB_TOKEN_FILE``.

    Returns:
        The token string, or None.
    """
    if config.GITHUB_TOKEN:
        logger.debug("Using hosting API token from environment.")
        return config.GITHUB_TOKEN

    path = token_file or config.GITHUB_TOKEN_FILE
    if not path or not os.path.exists(path):
        logger.info("No hosting API token configured; using anonymous access.")
        return None

    try:
        with open(path, "r", encoding="utf-8") as fh:
            token = fh.readline().strip()
    except OSError as e:
        logger.warning(f"Could not read token file {path}: {e}. Continuing without a token.")
        return None

    if not token:
        logger.warning(f"Token file {path} is empty. Continuing without a token.")
        return None

    logger.debug(f"Loaded hosting API token from {path}")
    return token
