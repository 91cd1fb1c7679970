"""Supervision of the external review agent process.

One ReviewSessionController runs one agent process through a small state
machine:

    idle ──spawn──▶ running ──exit 0──────────────▶ completed
      │                │ ──exit ≠ 0───────────────▶ failed
      │                └─SIGINT/SIGTERM───────────▶ interrupted
      └──spawn error──▶ failed  (AgentSpawnError; never running)

While running, SIGINT and SIGTERM are forwarded to the child as a single
terminate(), and the outcome is "interrupted" whatever exit code follows.
The handlers go in just before the spawn and are restored exactly once,
whether the spawn fails or the child exits.
"""

from __future__ import annotations

import logging
import shutil
import signal
import subprocess
import threading
from enum import Enum
from pathlib import Path
from typing import Callable, Mapping

from ailinter_core.errors import AgentSpawnError
from ailinter_core.models import SessionOutcome, SessionStatus

logger = logging.getLogger(__name__)

FORWARDED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SessionState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    INTERRUPTED = "interrupted"


def locate_mcp_server(config: dict) -> str:
    """Return the path of the GitHub MCP server executable the agent will launch."""
    server = config.get("mcp_server") or "github-mcp-server"
    found = shutil.which(server)
    if found:
        return found
    path = Path(server).expanduser()
    if path.is_file():
        return str(path.resolve())
    raise AgentSpawnError(f"GitHub MCP server not found at: {server}. Run `ailinter setup-mcp` to build it.")


def build_agent_command(config: dict, brief: str, token: str, mcp_server: str) -> list[str]:
    """Build the Codex CLI invocation that runs one non-interactive review."""
    return [
        config.get("agent_command") or "codex",
        "exec",
        "--full-auto",
        "--skip-git-repo-check",
        "--model",
        config["model"],
        "--config",
        'model_providers.openai.name="OpenAI"',
        "--config",
        'wire_api="responses"',
        "--config",
        f'mcp_servers.github.command="{mcp_server}"',
        "--config",
        'mcp_servers.github.args=["stdio"]',
        "--config",
        f'mcp_servers.github.env={{GITHUB_PERSONAL_ACCESS_TOKEN="{token}"}}',
        "--",
        brief,
    ]


def mask_command(command: list[str], secret: str | None) -> str:
    text = " ".join(command)
    return text.replace(secret, "********") if secret else text


class ReviewSessionController:
    def __init__(
        self,
        command: list[str],
        env: Mapping[str, str] | None = None,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ):
        self._command = command
        self._env = dict(env) if env is not None else None
        self._popen = popen
        self._state = SessionState.IDLE
        self._process: subprocess.Popen | None = None
        self._interrupt_requested = False
        self._previous_handlers: dict[int, object] | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def interrupt_requested(self) -> bool:
        return self._interrupt_requested

    def run(self) -> SessionOutcome:
        """Spawn the agent, wait for it, and return the terminal outcome.

        Raises AgentSpawnError if the process cannot be started.
        """
        if self._state is not SessionState.IDLE:
            raise RuntimeError(f"Session already {self._state.value}; a controller runs once.")

        # Installed before spawning so a signal during Popen cannot orphan the child.
        self._install_handlers()
        try:
            try:
                # stdin/stdout/stderr are inherited so the operator sees the agent work.
                self._process = self._popen(self._command, env=self._env)
            except OSError as e:
                self._state = SessionState.FAILED
                raise AgentSpawnError(f"Failed to start review agent {self._command[0]!r}: {e}") from e

            self._state = SessionState.RUNNING
            if self._interrupt_requested:
                self._process.terminate()
            exit_code = self._process.wait()
        finally:
            self._restore_handlers()

        return self._finish(exit_code)

    def _finish(self, exit_code: int) -> SessionOutcome:
        killed_by_signal = exit_code in (-signal.SIGINT, -signal.SIGTERM)
        if self._interrupt_requested or killed_by_signal:
            self._state = SessionState.INTERRUPTED
            return SessionOutcome(SessionStatus.INTERRUPTED, exit_code)
        if exit_code == 0:
            self._state = SessionState.COMPLETED
            return SessionOutcome(SessionStatus.COMPLETED, 0)
        self._state = SessionState.FAILED
        return SessionOutcome(SessionStatus.FAILED, exit_code)

    # ------------------------------------------------------------------ #
    # Signal forwarding                                                    #
    # ------------------------------------------------------------------ #

    def _on_signal(self, signum, frame) -> None:
        if self._interrupt_requested:
            return
        self._interrupt_requested = True
        logger.warning("Received %s, stopping the review agent...", signal.Signals(signum).name)
        # Still spawning: run() terminates the child once Popen returns.
        if self._process is None:
            return
        if self._process.poll() is None:
            self._process.terminate()

    def _install_handlers(self) -> None:
        # signal.signal() is only allowed on the main thread.
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread; signal forwarding disabled.")
            return
        self._previous_handlers = {sig: signal.getsignal(sig) for sig in FORWARDED_SIGNALS}
        for sig in FORWARDED_SIGNALS:
            signal.signal(sig, self._on_signal)

    def _restore_handlers(self) -> None:
        if self._previous_handlers is None:
            return
        previous, self._previous_handlers = self._previous_handlers, None
        for sig, handler in previous.items():
            # getsignal() returns None for handlers not installed from Python.
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)
