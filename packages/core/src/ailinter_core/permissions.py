"""Decide whether the agent may submit a REQUEST_CHANGES review.

GitHub rejects REQUEST_CHANGES on your own pull request, so the verdict is
only offered when the acting principal is not the PR author. Any failure
while deciding falls back to False: the agent then only comments.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ailinter_core.errors import PlatformRequestError
from ailinter_core.models import AccountRef, IdentityKind

if TYPE_CHECKING:
    from ailinter_core.gh.client import GithubClient
    from ailinter_core.identity import IdentityResolver

logger = logging.getLogger(__name__)


class PermissionEvaluator:
    def __init__(self, client: GithubClient, resolver: IdentityResolver):
        self._client = client
        self._resolver = resolver

    def can_request_changes(self, repo_owner: str, repo_name: str, pr_number: int | None) -> bool:
        if not repo_owner or not repo_name or not pr_number:
            return False

        try:
            author = self._client.get_pull_author(repo_owner, repo_name, pr_number)
            identity = self._resolver.resolve(repo_owner, repo_name)

            if identity.kind is IdentityKind.APPLICATION:
                return self._can_app_request_changes(repo_owner, repo_name, author)

            return author.id != identity.id
        except Exception as e:
            logger.error("Error checking PR permissions: %s", e)
            return False

    def _can_app_request_changes(self, repo_owner: str, repo_name: str, author: AccountRef) -> bool:
        """An app has no "self"; the installing account stands in for it.

        Installed on an organization the app may always request changes.
        Installed on a user account it may not do so on that user's own PRs.
        """
        try:
            installation = self._client.get_repo_installation(repo_owner, repo_name)
        except PlatformRequestError as e:
            logger.warning("Could not determine app installation context: %s", e)
            return False

        account = installation.account
        if account.is_organization:
            return True
        if account.type == "User":
            return author.id != account.id
        return False
