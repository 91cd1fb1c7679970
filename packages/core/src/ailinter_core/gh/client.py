"""Authenticated accessor for the parts of the GitHub REST API ailinter needs.

Every call returns ailinter model objects and translates GithubException into
PlatformRequestError, so callers decide recovery without knowing PyGithub.
Endpoints that PyGithub only wraps behind GitHub App JWT auth (``/app``,
installations) go through the client's requester with the same bearer token.
"""

from __future__ import annotations

import logging
from typing import Any

from github import Auth, Github, GithubException

from ailinter_core.errors import PlatformRequestError
from ailinter_core.models import AccountRef, Application, Installation, Review, ReviewState

logger = logging.getLogger(__name__)


def _account_from_json(data: dict) -> AccountRef:
    return AccountRef(id=data["id"], login=data["login"], type=data.get("type", "User"), name=data.get("name"))


def _account_from_user(user, with_name: bool = False) -> AccountRef | None:
    """Map a PyGithub user to an AccountRef.

    Users nested in reviews and pull requests only carry id, login and type;
    reading ``name`` on them makes PyGithub fetch /users/{login}. Only pass
    ``with_name`` for users that were fetched in full.
    """
    if user is None:
        return None
    name = user.name if with_name else None
    return AccountRef(id=user.id, login=user.login, type=user.type or "User", name=name)


def _installation_from_json(data: dict) -> Installation:
    return Installation(
        id=data["id"],
        app_id=data["app_id"],
        app_slug=data["app_slug"],
        account=_account_from_json(data["account"]),
    )


def _application_from_json(data: dict) -> Application:
    return Application(id=data["id"], slug=data["slug"], name=data.get("name") or data["slug"])


def _request_error(action: str, exc: GithubException) -> PlatformRequestError:
    detail = exc.data.get("message") if isinstance(exc.data, dict) else None
    return PlatformRequestError(f"{action} failed ({exc.status}): {detail or exc}", status=exc.status)


class GithubClient:
    def __init__(self, token: str, base_url: str | None = None, github: Github | None = None):
        self.token = token
        if github is None:
            kwargs: dict[str, Any] = {"auth": Auth.Token(token)}
            if base_url:
                kwargs["base_url"] = base_url
            github = Github(**kwargs)
        self._gh = github

    def _get_json(self, url: str, action: str) -> Any:
        try:
            _, data = self._gh.requester.requestJsonAndCheck("GET", url)
        except GithubException as e:
            raise _request_error(action, e) from e
        return data

    # ------------------------------------------------------------------ #
    # Identity                                                            #
    # ------------------------------------------------------------------ #

    def get_authenticated_user(self) -> AccountRef:
        """Return the user behind a personal access token."""
        try:
            return _account_from_user(self._gh.get_user(), with_name=True)
        except GithubException as e:
            raise _request_error("GET /user", e) from e

    def get_authenticated_app(self) -> Application:
        """Return the GitHub App behind an application (JWT) credential."""
        return _application_from_json(self._get_json("/app", "GET /app"))

    def get_repo_installation(self, owner: str, name: str) -> Installation:
        url = f"/repos/{owner}/{name}/installation"
        return _installation_from_json(self._get_json(url, f"GET {url}"))

    def get_installation(self, installation_id: int) -> Installation:
        url = f"/app/installations/{installation_id}"
        return _installation_from_json(self._get_json(url, f"GET {url}"))

    def list_installation_repositories(self) -> list[str]:
        """Return full names of repositories visible to an installation token."""
        data = self._get_json("/installation/repositories", "GET /installation/repositories")
        return [repo["full_name"] for repo in data.get("repositories", [])]

    def get_app(self, slug: str) -> Application:
        url = f"/apps/{slug}"
        return _application_from_json(self._get_json(url, f"GET {url}"))

    def get_user(self, login: str) -> AccountRef:
        try:
            return _account_from_user(self._gh.get_user(login), with_name=True)
        except GithubException as e:
            raise _request_error(f"GET /users/{login}", e) from e

    # ------------------------------------------------------------------ #
    # Pull requests and reviews                                           #
    # ------------------------------------------------------------------ #

    def _get_pull(self, owner: str, name: str, number: int):
        return self._gh.get_repo(f"{owner}/{name}").get_pull(number)

    def get_pull_author(self, owner: str, name: str, number: int) -> AccountRef:
        try:
            author = _account_from_user(self._get_pull(owner, name, number).user)
        except GithubException as e:
            raise _request_error(f"GET {owner}/{name}#{number}", e) from e
        if author is None:
            raise PlatformRequestError(f"{owner}/{name}#{number} has no author")
        return author

    def list_reviews(self, owner: str, name: str, number: int) -> list[Review]:
        try:
            return [
                Review(id=r.id, state=ReviewState(r.state), author=_account_from_user(r.user))
                for r in self._get_pull(owner, name, number).get_reviews()
            ]
        except GithubException as e:
            raise _request_error(f"list reviews on {owner}/{name}#{number}", e) from e

    def delete_pending_review(self, owner: str, name: str, number: int, review_id: int) -> None:
        url = f"/repos/{owner}/{name}/pulls/{number}/reviews/{review_id}"
        try:
            self._gh.requester.requestJsonAndCheck("DELETE", url)
        except GithubException as e:
            raise _request_error(f"DELETE review {review_id}", e) from e
        logger.debug("Deleted pending review %d on %s/%s#%d", review_id, owner, name, number)
