"""Tests for review agent supervision."""

import signal
import sys
import threading
from unittest.mock import MagicMock

import pytest

from ailinter_core.errors import AgentSpawnError
from ailinter_core.models import SessionOutcome, SessionStatus
from ailinter_core.session import (
    ReviewSessionController,
    SessionState,
    build_agent_command,
    locate_mcp_server,
    mask_command,
)


class FakeProcess:
    """Stands in for subprocess.Popen; ``on_wait`` runs while the child is "alive"."""

    def __init__(self, exit_code=0, on_wait=None):
        self.exit_code = exit_code
        self.on_wait = on_wait
        self.returncode = None
        self.terminate_calls = 0

    def poll(self):
        return self.returncode

    def wait(self):
        if self.on_wait is not None:
            self.on_wait(self)
        self.returncode = self.exit_code
        return self.exit_code

    def terminate(self):
        self.terminate_calls += 1


def _deliver(*signums):
    """Invoke whatever handlers are installed, as the interpreter would on delivery."""

    def on_wait(process):
        for signum in signums:
            signal.getsignal(signum)(signum, None)

    return on_wait


def _controller(process):
    return ReviewSessionController(["codex", "exec"], popen=MagicMock(return_value=process))


class TestExitMapping:
    def test_exit_zero_completes(self):
        controller = _controller(FakeProcess(0))
        assert controller.run() == SessionOutcome(SessionStatus.COMPLETED, 0)
        assert controller.state is SessionState.COMPLETED

    def test_nonzero_exit_fails_with_code(self):
        controller = _controller(FakeProcess(2))
        assert controller.run() == SessionOutcome(SessionStatus.FAILED, 2)
        assert controller.state is SessionState.FAILED

    @pytest.mark.parametrize("code", [-signal.SIGTERM, -signal.SIGINT])
    def test_child_killed_by_signal_is_interrupted(self, code):
        controller = _controller(FakeProcess(code))
        assert controller.run().status is SessionStatus.INTERRUPTED

    def test_real_process_exit_code(self):
        controller = ReviewSessionController([sys.executable, "-c", "import sys; sys.exit(3)"])
        assert controller.run() == SessionOutcome(SessionStatus.FAILED, 3)


class TestCancellation:
    def test_signal_before_clean_exit_is_interrupted(self):
        process = FakeProcess(0, on_wait=_deliver(signal.SIGINT))
        controller = _controller(process)

        outcome = controller.run()

        assert outcome.status is SessionStatus.INTERRUPTED
        assert outcome.status is not SessionStatus.COMPLETED
        assert controller.state is SessionState.INTERRUPTED
        assert process.terminate_calls == 1

    def test_sigterm_forwarded(self):
        process = FakeProcess(0, on_wait=_deliver(signal.SIGTERM))
        assert _controller(process).run().status is SessionStatus.INTERRUPTED
        assert process.terminate_calls == 1

    def test_second_signal_does_not_terminate_again(self):
        process = FakeProcess(1, on_wait=_deliver(signal.SIGINT, signal.SIGTERM, signal.SIGINT))
        controller = _controller(process)

        assert controller.run().status is SessionStatus.INTERRUPTED
        assert process.terminate_calls == 1
        assert controller.interrupt_requested

    def test_handlers_restored_after_run(self):
        before = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)}
        _controller(FakeProcess(0, on_wait=_deliver(signal.SIGINT))).run()
        after = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)}
        assert after == before

    def test_handlers_installed_only_while_running(self):
        seen = {}

        def on_wait(process):
            seen["handler"] = signal.getsignal(signal.SIGINT)

        controller = _controller(FakeProcess(0, on_wait=on_wait))
        controller.run()
        assert seen["handler"] == controller._on_signal
        assert signal.getsignal(signal.SIGINT) != controller._on_signal

    def test_handlers_restored_when_wait_raises(self):
        before = signal.getsignal(signal.SIGINT)

        def on_wait(process):
            raise RuntimeError("wait failed")

        with pytest.raises(RuntimeError):
            _controller(FakeProcess(0, on_wait=on_wait)).run()
        assert signal.getsignal(signal.SIGINT) == before

    def test_signal_while_spawning_terminates_child_once_started(self):
        process = FakeProcess(0)

        def popen(*args, **kwargs):
            signal.getsignal(signal.SIGINT)(signal.SIGINT, None)
            return process

        controller = ReviewSessionController(["codex", "exec"], popen=popen)
        outcome = controller.run()

        assert outcome.status is SessionStatus.INTERRUPTED
        assert controller.state is SessionState.INTERRUPTED
        assert process.terminate_calls == 1

    def test_handlers_restored_when_spawn_fails(self):
        before = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)}
        seen = {}

        def popen(*args, **kwargs):
            seen["handler"] = signal.getsignal(signal.SIGINT)
            raise FileNotFoundError("codex")

        controller = ReviewSessionController(["codex"], popen=popen)
        with pytest.raises(AgentSpawnError):
            controller.run()

        assert seen["handler"] == controller._on_signal
        assert {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)} == before

    def test_runs_off_main_thread_without_forwarding(self):
        result = {}

        def target():
            result["outcome"] = _controller(FakeProcess(0)).run()

        thread = threading.Thread(target=target)
        thread.start()
        thread.join()
        assert result["outcome"].status is SessionStatus.COMPLETED


class TestSpawn:
    def test_missing_executable_raises_spawn_error(self):
        before = signal.getsignal(signal.SIGINT)
        controller = ReviewSessionController(["/nonexistent/ailinter-test-agent", "exec"])

        with pytest.raises(AgentSpawnError):
            controller.run()

        assert controller.state is SessionState.FAILED
        assert signal.getsignal(signal.SIGINT) == before

    def test_spawn_error_never_reaches_running(self):
        states = []
        controller = None

        def popen(*args, **kwargs):
            states.append(controller.state)
            raise PermissionError("not executable")

        controller = ReviewSessionController(["codex"], popen=popen)
        with pytest.raises(AgentSpawnError):
            controller.run()
        assert states == [SessionState.IDLE]
        assert controller.state is SessionState.FAILED

    def test_stdio_inherited_and_env_passed(self):
        popen = MagicMock(return_value=FakeProcess(0))
        ReviewSessionController(["codex", "exec"], env={"A": "1"}, popen=popen).run()
        popen.assert_called_once_with(["codex", "exec"], env={"A": "1"})

    def test_controller_runs_once(self):
        controller = _controller(FakeProcess(0))
        controller.run()
        with pytest.raises(RuntimeError):
            controller.run()


class TestAgentCommand:
    def test_command_shape(self):
        config = {"agent_command": "codex", "model": "o4-mini"}
        command = build_agent_command(config, "do the review", "tok123", "/opt/mcp/github-mcp-server")

        assert command[:6] == ["codex", "exec", "--full-auto", "--skip-git-repo-check", "--model", "o4-mini"]
        assert 'mcp_servers.github.command="/opt/mcp/github-mcp-server"' in command
        assert 'mcp_servers.github.args=["stdio"]' in command
        assert 'mcp_servers.github.env={GITHUB_PERSONAL_ACCESS_TOKEN="tok123"}' in command
        assert command[-2:] == ["--", "do the review"]

    def test_default_agent_command(self):
        command = build_agent_command({"model": "o3"}, "brief", "tok", "mcp")
        assert command[0] == "codex"

    def test_mask_command_hides_token(self):
        masked = mask_command(["codex", 'env={TOKEN="secret"}'], "secret")
        assert "secret" not in masked
        assert "********" in masked


class TestLocateMcpServer:
    def test_found_on_path(self, mocker):
        mocker.patch("ailinter_core.session.shutil.which", return_value="/usr/local/bin/github-mcp-server")
        assert locate_mcp_server({"mcp_server": "github-mcp-server"}) == "/usr/local/bin/github-mcp-server"

    def test_found_as_file(self, tmp_path, mocker):
        mocker.patch("ailinter_core.session.shutil.which", return_value=None)
        binary = tmp_path / "github-mcp-server"
        binary.write_text("")
        assert locate_mcp_server({"mcp_server": str(binary)}) == str(binary.resolve())

    def test_missing_raises_spawn_error(self, tmp_path, mocker):
        mocker.patch("ailinter_core.session.shutil.which", return_value=None)
        with pytest.raises(AgentSpawnError, match="setup-mcp"):
            locate_mcp_server({"mcp_server": str(tmp_path / "missing")})
