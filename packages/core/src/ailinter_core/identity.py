"""Identity resolution: who is ailinter acting as on GitHub?

Exactly one of three credential shapes is live in any environment:

  1. a personal access token          → GET /user succeeds          → user
  2. a GitHub App JWT                 → GET /app succeeds           → application
  3. a GitHub App installation token  → installation lookups        → bot

The resolver runs one probe per shape, in that order, and keeps the first
non-None result. Probes never raise: a failed API call means "not this
shape", so the chain moves on. Only when all probes come back empty does
resolution fail with IdentityUnresolvedError.

The resolved identity is cached on the resolver, so the reconciler and the
permission evaluator share a single resolution per session.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import TYPE_CHECKING, Callable, Optional

from ailinter_core.errors import IdentityUnresolvedError, PlatformRequestError
from ailinter_core.models import Application, Identity, IdentityKind, Installation

if TYPE_CHECKING:
    from ailinter_core.gh.client import GithubClient

logger = logging.getLogger(__name__)

Probe = Callable[[str, str], Optional[Identity]]


def installation_id_from_token(token: str | None) -> int | None:
    """Read an installation id claim from a JWT-shaped credential, if present."""
    if not token or token.count(".") != 2:
        return None
    payload = token.split(".")[1]
    try:
        claims = json.loads(base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4)))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None
    if not isinstance(claims, dict):
        return None
    for key in ("installation_id", "iid"):
        value = claims.get(key)
        if isinstance(value, int) or (isinstance(value, str) and value.isdigit()):
            return int(value)
    return None


class IdentityResolver:
    def __init__(self, client: GithubClient, config: dict | None = None):
        self._client = client
        self._config = config or {}
        self._identity: Identity | None = None
        self.probes: list[Probe] = [
            self._probe_authenticated_user,
            self._probe_authenticated_app,
            self._probe_installation_bot,
        ]

    def resolve(self, repo_owner: str, repo_name: str) -> Identity:
        if self._identity is not None:
            return self._identity

        for probe in self.probes:
            identity = probe(repo_owner, repo_name)
            if identity is not None:
                logger.debug("Resolved identity %s (%s, id=%d)", identity.login, identity.kind.value, identity.id)
                self._identity = identity
                return identity

        raise IdentityUnresolvedError(
            "Unable to determine the authenticated GitHub identity. "
            "The token is neither a user token, an app token, nor an installation token "
            f"with access to {repo_owner}/{repo_name}."
        )

    # ------------------------------------------------------------------ #
    # Probes                                                               #
    # ------------------------------------------------------------------ #

    def _probe_authenticated_user(self, repo_owner: str, repo_name: str) -> Identity | None:
        try:
            user = self._client.get_authenticated_user()
        except PlatformRequestError as e:
            logger.debug("User probe failed: %s", e)
            return None
        return Identity(IdentityKind.USER, user.id, user.login, user.name or user.login)

    def _probe_authenticated_app(self, repo_owner: str, repo_name: str) -> Identity | None:
        try:
            app = self._client.get_authenticated_app()
        except PlatformRequestError as e:
            logger.debug("Application probe failed: %s", e)
            return None
        return Identity(IdentityKind.APPLICATION, app.id, app.slug, app.name)

    def _probe_installation_bot(self, repo_owner: str, repo_name: str) -> Identity | None:
        configured = self._configured_bot()
        if configured is not None:
            return configured

        installation = self._find_installation(repo_owner, repo_name)
        if installation is None:
            logger.debug("Bot probe failed: no installation found for %s/%s", repo_owner, repo_name)
            return None

        app = self._installation_app(installation)
        bot_login = f"{app.slug}[bot]"
        try:
            bot = self._client.get_user(bot_login)
        except PlatformRequestError as e:
            logger.debug("Bot account %s not found (%s); using app %s as identity", bot_login, e, app.slug)
            return Identity(IdentityKind.BOT, app.id, bot_login, app.slug)
        return Identity(IdentityKind.BOT, bot.id, bot.login, app.slug)

    # ------------------------------------------------------------------ #
    # Bot probe helpers                                                    #
    # ------------------------------------------------------------------ #

    def _configured_bot(self) -> Identity | None:
        """Bot identity exported by the CI workflow, when both id and login are set."""
        bot_id = self._config.get("bot_id")
        bot_login = self._config.get("bot_login")
        if bot_id is None or not bot_login:
            return None
        logger.debug("Using bot identity %s from environment", bot_login)
        return Identity(IdentityKind.BOT, int(bot_id), bot_login, self._config.get("bot_name") or bot_login)

    def _find_installation(self, repo_owner: str, repo_name: str) -> Installation | None:
        try:
            return self._client.get_repo_installation(repo_owner, repo_name)
        except PlatformRequestError as e:
            logger.debug("Repository installation lookup failed: %s", e)

        try:
            repositories = self._client.list_installation_repositories()
            if repositories:
                owner, _, name = repositories[0].partition("/")
                return self._client.get_repo_installation(owner, name)
        except PlatformRequestError as e:
            logger.debug("Accessible repository lookup failed: %s", e)

        installation_id = self._config.get("installation_id") or installation_id_from_token(self._client.token)
        if installation_id is None:
            return None
        try:
            return self._client.get_installation(int(installation_id))
        except PlatformRequestError as e:
            logger.debug("Installation %s lookup failed: %s", installation_id, e)
            return None

    def _installation_app(self, installation: Installation) -> Application:
        try:
            return self._client.get_app(installation.app_slug)
        except PlatformRequestError as e:
            logger.debug("App %s lookup failed: %s", installation.app_slug, e)
            return Application(id=installation.app_id, slug=installation.app_slug, name=installation.app_slug)
