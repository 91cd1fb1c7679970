"""setup-mcp command: build the GitHub MCP server used by the review agent.

The Codex agent reaches GitHub through github/github-mcp-server over stdio.
The server is a Go program distributed as source; this command clones a
pinned tag, builds it, and points .ailinter.yml at the binary.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys
import tempfile
from pathlib import Path

import click
import yaml
from rich.console import Console

console = Console()
logger = logging.getLogger(__name__)

GITHUB_MCP_VERSION = "v0.10.0"
GITHUB_MCP_REPO_URL = "https://github.com/github/github-mcp-server.git"
BINARY_NAME = "github-mcp-server.exe" if sys.platform == "win32" else "github-mcp-server"
DEFAULT_OUTPUT = Path(".ailinter") / "bin" / BINARY_NAME


def _go_installed() -> bool:
    try:
        return subprocess.run(["go", "version"], capture_output=True, timeout=15).returncode == 0
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return False


def build_github_mcp(version: str, output: Path) -> Path:
    """Clone github-mcp-server at ``version`` and build it to ``output``.

    Raises subprocess.CalledProcessError if git or go fails.
    """
    output = output.resolve()
    output.parent.mkdir(parents=True, exist_ok=True)

    build_dir = Path(tempfile.mkdtemp(prefix="ailinter-mcp-build-"))
    try:
        console.print(f"Cloning GitHub MCP Server {version}...")
        subprocess.run(
            ["git", "clone", "--depth", "1", "--branch", version, GITHUB_MCP_REPO_URL, str(build_dir / "src")],
            check=True,
        )

        console.print("Building binary...")
        subprocess.run(
            ["go", "build", "-o", str(output)],
            cwd=build_dir / "src" / "cmd" / "github-mcp-server",
            check=True,
        )
        if sys.platform != "win32":
            os.chmod(output, 0o755)
    finally:
        console.print("[dim]Cleaning up build directory...[/dim]")
        shutil.rmtree(build_dir, ignore_errors=True)

    return output


def _write_config(config_path: Path, updates: dict) -> None:
    """Write or update the config file, preserving any existing keys."""
    existing: dict = {}
    if config_path.exists():
        existing = yaml.safe_load(config_path.read_text()) or {}
    existing.update(updates)
    config_path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))


@click.command("setup-mcp")
@click.option("--version", "mcp_version", default=GITHUB_MCP_VERSION, show_default=True, help="Tag to build.")
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_OUTPUT,
    show_default=True,
    help="Where to write the server binary.",
)
@click.pass_context
def setup_mcp_cmd(ctx, mcp_version: str, output: Path):
    """Build the GitHub MCP server and record it in the configuration file.

    Requires git and Go on PATH.
    """
    if not _go_installed():
        raise click.ClickException("Go is not installed. Please install Go first: https://go.dev/dl/")

    console.print("[bold cyan]Building GitHub MCP Server...[/bold cyan]")
    try:
        binary = build_github_mcp(mcp_version, output)
    except subprocess.CalledProcessError as e:
        logger.debug("Build command failed: %s", e.cmd)
        raise click.ClickException(f"Build failed: {e}")

    config_path = Path((ctx.obj or {}).get("config_path", ".ailinter.yml"))
    _write_config(config_path, {"mcp_server": str(binary)})

    console.print("[green]GitHub MCP Server built successfully![/green]")
    console.print(f"Binary location: {binary}")
    console.print(f"[dim]Recorded mcp_server in {config_path}[/dim]")
