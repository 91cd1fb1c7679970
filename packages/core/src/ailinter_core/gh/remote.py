"""Repository owner/name detection from the local git remote."""

from __future__ import annotations

import re
import subprocess
from pathlib import Path

_SSH_RE = re.compile(r"^git@github\.com:(?P<owner>[^/]+)/(?P<name>.+?)(?:\.git)?/?$")
_HTTPS_RE = re.compile(r"github\.com/(?P<owner>[^/]+)/(?P<name>.+?)(?:\.git)?/?$")


def get_remote_origin_url(repo_path: str | Path) -> str | None:
    """Return ``remote.origin.url`` for the repository at ``repo_path``, or None."""
    try:
        result = subprocess.run(
            ["git", "config", "--get", "remote.origin.url"],
            cwd=Path(repo_path).resolve(),
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def parse_github_remote(url: str) -> tuple[str, str] | None:
    """Split an SSH or HTTPS GitHub remote URL into (owner, name).

    git@github.com:owner/repo.git      →  ("owner", "repo")
    https://github.com/owner/repo.git  →  ("owner", "repo")
    """
    match = _SSH_RE.match(url) or _HTTPS_RE.search(url)
    if not match:
        return None
    return match.group("owner"), match.group("name")


def detect_github_repo(repo_path: str | Path) -> tuple[str, str]:
    url = get_remote_origin_url(repo_path)
    if not url:
        raise ValueError(f"No remote origin URL found for repository at {repo_path}")
    parsed = parse_github_remote(url)
    if parsed is None:
        raise ValueError(f"Cannot parse GitHub owner and repository from URL: {url}")
    return parsed
