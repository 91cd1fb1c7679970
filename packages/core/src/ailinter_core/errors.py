"""Error kinds raised by the orchestration core.

Everything derives from AILinterError so the CLI can report any fatal
failure with a single handler. Which of these are recovered locally and which
end the invocation is decided by the component that catches them, not here.
"""

from __future__ import annotations


class AILinterError(Exception):
    """Base class for all ailinter failures."""


class IdentityUnresolvedError(AILinterError):
    """Every identity probe was exhausted without finding a principal."""


class PlatformRequestError(AILinterError):
    """A GitHub API call failed (auth, network, not found, rate limit)."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class AgentSpawnError(AILinterError):
    """The review agent could not be started."""


class AgentExitError(AILinterError):
    """The review agent exited with a nonzero status."""

    def __init__(self, exit_code: int | None):
        super().__init__(f"Review agent exited with code {exit_code}")
        self.exit_code = exit_code


class SessionInterruptedError(AILinterError):
    """The operator cancelled the session after the agent was spawned."""

    def __init__(self, message: str = "Review session was interrupted"):
        super().__init__(message)
