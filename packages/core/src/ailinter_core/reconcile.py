"""Remove pending reviews left behind by earlier ailinter runs.

A run that crashed or was cancelled mid-review leaves its pending review on
the PR, and GitHub allows only one pending review per account. Before a new
session starts, every pending review attributable to the resolved identity
is deleted. Deletions are best-effort: each one succeeds or fails on its own
and none of them can fail the session.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ailinter_core.models import Identity, IdentityKind, Review, ReviewState

if TYPE_CHECKING:
    from ailinter_core.gh.client import GithubClient
    from ailinter_core.identity import IdentityResolver

logger = logging.getLogger(__name__)

_MAX_DELETE_WORKERS = 8


@dataclass(frozen=True)
class DeletionResult:
    review_id: int
    deleted: bool
    error: str | None = None


@dataclass
class ReconcileReport:
    identity: Identity
    results: list[DeletionResult] = field(default_factory=list)

    @property
    def matched(self) -> int:
        return len(self.results)

    @property
    def deleted(self) -> int:
        return sum(1 for r in self.results if r.deleted)

    @property
    def failed(self) -> list[DeletionResult]:
        return [r for r in self.results if not r.deleted]


def select_owned_pending_reviews(reviews: list[Review], identity: Identity) -> list[Review]:
    """Return the pending reviews attributable to ``identity``.

    - application: author id or login matches, or the author is any Bot
      account (apps post through bot accounts)
    - bot: author login matches, or the author is a Bot whose login contains
      the identity's display name
    - user: author id matches
    """
    pending = [r for r in reviews if r.state is ReviewState.PENDING and r.author is not None]

    if identity.kind is IdentityKind.APPLICATION:
        return [
            r for r in pending if r.author.id == identity.id or r.author.login == identity.login or r.author.is_bot
        ]

    if identity.kind is IdentityKind.BOT:
        # Name-fragment matching can also claim another bot whose login shares
        # the fragment; kept as-is.
        return [
            r
            for r in pending
            if r.author.login == identity.login or (r.author.is_bot and identity.display_name in r.author.login)
        ]

    return [r for r in pending if r.author.id == identity.id]


class PendingReviewReconciler:
    def __init__(self, client: GithubClient, resolver: IdentityResolver):
        self._client = client
        self._resolver = resolver

    def reconcile(self, repo_owner: str, repo_name: str, pr_number: int) -> ReconcileReport:
        """Delete this tool's pending reviews on the PR.

        Failure to list reviews or resolve the identity propagates; failure to
        delete an individual review is recorded in the report.
        """
        with ThreadPoolExecutor(max_workers=2) as executor:
            reviews_future = executor.submit(self._client.list_reviews, repo_owner, repo_name, pr_number)
            identity_future = executor.submit(self._resolver.resolve, repo_owner, repo_name)
            reviews = reviews_future.result()
            identity = identity_future.result()

        owned = select_owned_pending_reviews(reviews, identity)
        logger.debug("Found %d pending review(s) by %s", len(owned), identity.login)

        report = ReconcileReport(identity=identity)
        if not owned:
            return report

        logger.info("Cleaning up %d pending review(s)...", len(owned))
        workers = min(len(owned), _MAX_DELETE_WORKERS)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            report.results = list(
                executor.map(lambda r: self._delete(repo_owner, repo_name, pr_number, r.id), owned)
            )

        logger.info("Successfully cleaned up %d/%d pending review(s)", report.deleted, report.matched)
        return report

    def _delete(self, repo_owner: str, repo_name: str, pr_number: int, review_id: int) -> DeletionResult:
        try:
            self._client.delete_pending_review(repo_owner, repo_name, pr_number, review_id)
        except Exception as e:
            logger.error("Failed to delete review %d: %s", review_id, e)
            return DeletionResult(review_id, deleted=False, error=str(e))
        return DeletionResult(review_id, deleted=True)
