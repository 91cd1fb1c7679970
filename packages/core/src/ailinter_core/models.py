"""Data model shared by the orchestration components.

All records are frozen: an Identity is resolved once and never changes, and
the PR context is built once per invocation.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class IdentityKind(str, Enum):
    USER = "user"
    APPLICATION = "application"
    BOT = "bot"


@dataclass(frozen=True)
class Identity:
    """The principal this tool acts as on GitHub."""

    kind: IdentityKind
    id: int
    login: str
    display_name: str


@dataclass(frozen=True)
class AccountRef:
    """A GitHub account as it appears on reviews, pull requests and installations."""

    id: int
    login: str
    type: str  # "User" | "Bot" | "Organization"
    name: str | None = None

    @property
    def is_bot(self) -> bool:
        return self.type == "Bot"

    @property
    def is_organization(self) -> bool:
        return self.type == "Organization"


@dataclass(frozen=True)
class Application:
    id: int
    slug: str
    name: str


@dataclass(frozen=True)
class Installation:
    id: int
    app_id: int
    app_slug: str
    account: AccountRef


class ReviewState(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    CHANGES_REQUESTED = "CHANGES_REQUESTED"
    COMMENTED = "COMMENTED"
    DISMISSED = "DISMISSED"


@dataclass(frozen=True)
class Review:
    id: int
    state: ReviewState
    author: AccountRef | None  # None when the author account was deleted


@dataclass(frozen=True)
class PRContext:
    """Descriptive, read-only data about the pull request under review."""

    pr_number: int
    base_ref: str
    head_ref: str | None
    repo_owner: str
    repo_name: str


class SessionStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    INTERRUPTED = "interrupted"


@dataclass(frozen=True)
class SessionOutcome:
    """Terminal result of supervising the review agent."""

    status: SessionStatus
    exit_code: int | None = None
