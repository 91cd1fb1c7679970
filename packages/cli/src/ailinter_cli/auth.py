"""Where ailinter gets its GitHub token.

This module is the only place the token is looked up; the review command
stores the result in the loaded config for the core to use.

Sources, first match wins:
  1. GITHUB_TOKEN                   Actions token or GitHub App installation token
  2. GITHUB_PERSONAL_ACCESS_TOKEN   personal access token
  3. `gh auth token`                local GitHub CLI session
"""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Callable, Optional

logger = logging.getLogger(__name__)

TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GITHUB_PERSONAL_ACCESS_TOKEN")


def _token_from_env() -> Optional[str]:
    for name in TOKEN_ENV_VARS:
        if os.environ.get(name):
            logger.debug("Using GitHub token from %s.", name)
            return os.environ[name]
    return None


def _token_from_gh_cli() -> Optional[str]:
    try:
        result = subprocess.run(["gh", "auth", "token"], capture_output=True, text=True, timeout=5)
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        logger.debug("gh CLI unavailable: %s", e)
        return None
    token = result.stdout.strip() if result.returncode == 0 else ""
    if not token:
        return None
    logger.debug("Using GitHub token from the gh CLI session.")
    return token


_SOURCES: tuple[Callable[[], Optional[str]], ...] = (_token_from_env, _token_from_gh_cli)


def resolve_github_token() -> str | None:
    """Return the first available GitHub token, or None.

    Does not raise; the caller turns None into a UsageError.
    """
    for source in _SOURCES:
        token = source()
        if token:
            return token
    return None
